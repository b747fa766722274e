"""Exception hierarchy for the churn risk engine."""

from typing import Optional


class ChurnEngineError(Exception):
    """Base class for all engine errors."""


class DuplicateFactorIdError(ChurnEngineError, ValueError):
    """A factor with the same id is already registered."""

    def __init__(self, factor_id: str):
        self.factor_id = factor_id
        super().__init__(f"Factor id already registered: {factor_id!r}")


class UnknownFactorError(ChurnEngineError, KeyError):
    """No factor with the given id is registered."""

    def __init__(self, factor_id: str):
        self.factor_id = factor_id
        super().__init__(f"Unknown factor: {factor_id!r}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class InvalidWeightError(ChurnEngineError, ValueError):
    """Factor weight outside [0, 1]."""

    def __init__(self, factor_id: str, weight: float):
        self.factor_id = factor_id
        self.weight = weight
        super().__init__(
            f"Weight for factor {factor_id!r} must be in [0, 1], got {weight!r}"
        )


class FeatureValueError(ChurnEngineError, ValueError):
    """Observed feature value outside [0, 1]."""

    def __init__(self, factor_id: str, value: float):
        self.factor_id = factor_id
        self.value = value
        super().__init__(
            f"Feature value for {factor_id!r} must be in [0, 1], got {value!r}"
        )


class NoActiveFactorsError(ChurnEngineError, ValueError):
    """No enabled factor has a usable value, so no score can be produced."""


class ThresholdOrderViolationError(ChurnEngineError, ValueError):
    """Thresholds are not strictly increasing inside (0, 1)."""


class StaleConfigVersionError(ChurnEngineError):
    """An update was based on a config version that is no longer current."""

    def __init__(self, expected_version: int, current_version: int):
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Config update based on version {expected_version}, "
            f"but current version is {current_version}; re-read and retry"
        )


class ConfigValidationError(ChurnEngineError, ValueError):
    """A draft config failed validation.

    Attributes:
        issues: Every ValidationIssue found, in check order
    """

    def __init__(self, issues: list, message: Optional[str] = None):
        self.issues = list(issues)
        if message is None:
            message = "Invalid scoring config: " + "; ".join(
                issue.message for issue in self.issues
            )
        super().__init__(message)

"""
Config validation and pure config transitions.

A draft ScoringConfig only becomes active after ConfigValidator finds no
issues. Validation collects every issue instead of stopping at the first,
so the admin layer can show them all at once.

Edits are expressed as commands and applied with `apply`, which never
mutates its input:

    result = apply(active, SetFactorWeight("payment_failures", 0.3))
    if result.ok:
        active = result.config
    else:
        show(result.issues)
"""

import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .config import Factor, ScoringConfig, ThresholdSet
from .errors import ConfigValidationError, DuplicateFactorIdError, UnknownFactorError
from .registry import is_valid_weight

logger = logging.getLogger(__name__)


class ValidationCode(str, Enum):
    INVALID_WEIGHT = "invalid_weight"
    NO_ACTIVE_FACTORS = "no_active_factors"
    THRESHOLD_ORDER_VIOLATION = "threshold_order_violation"
    INVALID_WINDOW_POLICY = "invalid_window_policy"
    DUPLICATE_FACTOR_ID = "duplicate_factor_id"


@dataclass(frozen=True)
class ValidationIssue:
    code: ValidationCode
    message: str
    field: str = ""

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a draft.

    Attributes:
        config: The config, ready to activate; None if any issue was found
        issues: Every issue found, in check order
    """

    config: Optional[ScoringConfig]
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.issues

    def codes(self) -> list[ValidationCode]:
        return [issue.code for issue in self.issues]

    def raise_for_issues(self) -> ScoringConfig:
        """Return the config, or raise ConfigValidationError."""
        if self.issues:
            raise ConfigValidationError(list(self.issues))
        return self.config


class ConfigValidator:
    """
    Checks a draft config before it may become active.

    Checks, in order:
    1. Every factor weight in [0, 1]
    2. At least one factor enabled
    3. Thresholds strictly increasing and within (0, 1)
    4. minimum_data_points >= 1 and prediction_window_days >= 1
    5. Factor ids unique
    """

    def validate(self, draft: ScoringConfig) -> ValidationResult:
        issues = (
            self._check_weights(draft)
            + self._check_enabled(draft)
            + self._check_thresholds(draft.thresholds)
            + self._check_window_policy(draft)
            + self._check_unique_ids(draft)
        )
        if issues:
            logger.info(
                "Rejected config version %d: %s",
                draft.version,
                ", ".join(issue.code.value for issue in issues),
            )
            return ValidationResult(config=None, issues=tuple(issues))
        return ValidationResult(config=draft)

    def _check_weights(self, draft: ScoringConfig) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                ValidationCode.INVALID_WEIGHT,
                f"Weight for factor {f.id!r} must be in [0, 1], got {f.weight!r}",
                field=f"factors.{f.id}.weight",
            )
            for f in draft.factors
            if not is_valid_weight(f.weight)
        ]

    def _check_enabled(self, draft: ScoringConfig) -> list[ValidationIssue]:
        if any(f.enabled for f in draft.factors):
            return []
        return [
            ValidationIssue(
                ValidationCode.NO_ACTIVE_FACTORS,
                "At least one factor must be enabled",
                field="factors",
            )
        ]

    def _check_thresholds(self, thresholds: ThresholdSet) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                ValidationCode.THRESHOLD_ORDER_VIOLATION, problem, field="thresholds"
            )
            for problem in thresholds.violations()
        ]

    def _check_window_policy(self, draft: ScoringConfig) -> list[ValidationIssue]:
        issues = []
        if draft.minimum_data_points < 1:
            issues.append(
                ValidationIssue(
                    ValidationCode.INVALID_WINDOW_POLICY,
                    f"minimum_data_points must be >= 1, got {draft.minimum_data_points}",
                    field="minimum_data_points",
                )
            )
        if draft.prediction_window_days < 1:
            issues.append(
                ValidationIssue(
                    ValidationCode.INVALID_WINDOW_POLICY,
                    f"prediction_window_days must be >= 1, got {draft.prediction_window_days}",
                    field="prediction_window_days",
                )
            )
        return issues

    def _check_unique_ids(self, draft: ScoringConfig) -> list[ValidationIssue]:
        counts = Counter(draft.factor_ids)
        return [
            ValidationIssue(
                ValidationCode.DUPLICATE_FACTOR_ID,
                f"Factor id {factor_id!r} appears {n} times",
                field="factors",
            )
            for factor_id, n in counts.items()
            if n > 1
        ]


# === Commands ===


@dataclass(frozen=True)
class AddFactor:
    factor: Factor


@dataclass(frozen=True)
class RemoveFactor:
    factor_id: str


@dataclass(frozen=True)
class SetFactorWeight:
    factor_id: str
    weight: float


@dataclass(frozen=True)
class SetFactorEnabled:
    factor_id: str
    enabled: bool


@dataclass(frozen=True)
class SetThresholds:
    thresholds: ThresholdSet


@dataclass(frozen=True)
class SetWindowPolicy:
    prediction_window_days: int
    minimum_data_points: int


ConfigCommand = Union[
    AddFactor,
    RemoveFactor,
    SetFactorWeight,
    SetFactorEnabled,
    SetThresholds,
    SetWindowPolicy,
]


def _replace_factor(config: ScoringConfig, factor_id: str, **changes) -> ScoringConfig:
    if config.get_factor(factor_id) is None:
        raise UnknownFactorError(factor_id)
    return config.with_factors(
        dataclasses.replace(f, **changes) if f.id == factor_id else f
        for f in config.factors
    )


def build_draft(config: ScoringConfig, command: ConfigCommand) -> ScoringConfig:
    """
    Produce the unvalidated draft a command would lead to.

    Raises:
        UnknownFactorError: If the command names a factor that does not exist
        DuplicateFactorIdError: If AddFactor reuses an existing id
        TypeError: For an unrecognized command
    """
    if isinstance(command, AddFactor):
        if config.get_factor(command.factor.id) is not None:
            raise DuplicateFactorIdError(command.factor.id)
        return config.with_factors(config.factors + (command.factor,))
    if isinstance(command, RemoveFactor):
        if config.get_factor(command.factor_id) is None:
            raise UnknownFactorError(command.factor_id)
        return config.with_factors(
            f for f in config.factors if f.id != command.factor_id
        )
    if isinstance(command, SetFactorWeight):
        return _replace_factor(config, command.factor_id, weight=command.weight)
    if isinstance(command, SetFactorEnabled):
        return _replace_factor(config, command.factor_id, enabled=bool(command.enabled))
    if isinstance(command, SetThresholds):
        return config.replace(thresholds=command.thresholds)
    if isinstance(command, SetWindowPolicy):
        return config.replace(
            prediction_window_days=command.prediction_window_days,
            minimum_data_points=command.minimum_data_points,
        )
    raise TypeError(f"Unknown config command: {command!r}")


def apply(
    config: ScoringConfig,
    command: ConfigCommand,
    validator: Optional[ConfigValidator] = None,
) -> ValidationResult:
    """
    Pure transition: config + command -> validated next config.

    The returned config carries `config.version + 1`. The input is never
    modified, and a failing draft never becomes a config.
    """
    validator = validator or ConfigValidator()
    draft = build_draft(config, command).next_version()
    return validator.validate(draft)

"""
Scoring configuration for the churn risk engine.

A ScoringConfig is an immutable value: factors, tier thresholds and the
prediction window policy. Edits never mutate a config in place; they
produce a new one that must pass ConfigValidator before it becomes active.

Defaults mirror the churn-algorithm panel of the admin dashboard:
- Nine weighted factors across four categories
- Tier cut points at 0.30 / 0.50 / 0.70 / 0.85
- 30-day prediction window, 10 observations minimum
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml


class FactorCategory(str, Enum):
    """Signal family a factor belongs to."""

    BEHAVIORAL = "behavioral"
    FINANCIAL = "financial"
    ENGAGEMENT = "engagement"
    SUPPORT = "support"


@dataclass(frozen=True)
class Factor:
    """
    A named, weighted risk signal.

    Weight and enabled are independent: a disabled factor keeps its weight
    so it can be re-enabled later without re-entering it. Range checks on
    weight happen in FactorRegistry and ConfigValidator, not here, so that
    drafts with bad weights can still be built and reported on.
    """

    id: str
    name: str
    weight: float
    enabled: bool = True
    category: FactorCategory = FactorCategory.BEHAVIORAL
    description: str = ""

    def __post_init__(self):
        # Accept plain strings from JSON/YAML
        if not isinstance(self.category, FactorCategory):
            object.__setattr__(self, "category", FactorCategory(self.category))

    def with_weight(self, weight: float) -> "Factor":
        return dataclasses.replace(self, weight=weight)

    def with_enabled(self, enabled: bool) -> "Factor":
        return dataclasses.replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "weight": self.weight,
            "enabled": self.enabled,
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Factor":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            weight=float(data["weight"]),
            enabled=bool(data.get("enabled", True)),
            category=data.get("category", FactorCategory.BEHAVIORAL),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class ThresholdSet:
    """
    Four cut points partitioning [0, 1] into five risk tiers.

    Valid only when 0 < low < medium < high < critical < 1.
    """

    low: float = 0.30
    medium: float = 0.50
    high: float = 0.70
    critical: float = 0.85

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.low, self.medium, self.high, self.critical)

    def violations(self) -> list[str]:
        """
        Describe every way this set breaks the ordering invariant.

        Returns:
            List of human-readable problems; empty when the set is valid
        """
        problems = []
        names = ("low", "medium", "high", "critical")
        for name, value in zip(names, self.as_tuple()):
            if not 0.0 < value < 1.0:
                problems.append(f"threshold {name}={value!r} must be in (0, 1)")
        for (lo_name, lo), (hi_name, hi) in zip(
            zip(names, self.as_tuple()), zip(names[1:], self.as_tuple()[1:])
        ):
            if not lo < hi:
                problems.append(
                    f"threshold {lo_name}={lo!r} must be below {hi_name}={hi!r}"
                )
        return problems

    def is_valid(self) -> bool:
        return not self.violations()

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ThresholdSet":
        return cls(
            low=float(data["low"]),
            medium=float(data["medium"]),
            high=float(data["high"]),
            critical=float(data["critical"]),
        )


DEFAULT_FACTORS: tuple[Factor, ...] = (
    Factor(
        id="payment_failures",
        name="Payment Failures",
        description="Number of failed payment attempts in the last 30 days",
        weight=0.25,
        category=FactorCategory.FINANCIAL,
    ),
    Factor(
        id="service_usage",
        name="Service Usage Decline",
        description="Decrease in service bookings compared to historical average",
        weight=0.20,
        category=FactorCategory.BEHAVIORAL,
    ),
    Factor(
        id="support_tickets",
        name="Support Ticket Frequency",
        description="Increase in support tickets indicating dissatisfaction",
        weight=0.15,
        category=FactorCategory.SUPPORT,
    ),
    Factor(
        id="login_frequency",
        name="Login Frequency",
        description="Decrease in platform login frequency",
        weight=0.10,
        category=FactorCategory.ENGAGEMENT,
    ),
    Factor(
        id="subscription_age",
        name="Subscription Age",
        description="Time since subscription started (higher risk in early months)",
        weight=0.08,
        category=FactorCategory.BEHAVIORAL,
    ),
    Factor(
        id="price_sensitivity",
        name="Price Sensitivity",
        description="Response to price changes and promotional offers",
        weight=0.07,
        category=FactorCategory.FINANCIAL,
    ),
    Factor(
        id="feature_adoption",
        name="Feature Adoption",
        description="Usage of premium features and benefits",
        weight=0.06,
        category=FactorCategory.ENGAGEMENT,
    ),
    Factor(
        id="communication_response",
        name="Communication Response",
        description="Response rate to marketing emails and notifications",
        weight=0.05,
        category=FactorCategory.ENGAGEMENT,
    ),
    Factor(
        id="seasonal_patterns",
        name="Seasonal Patterns",
        description="Historical churn patterns based on time of year",
        weight=0.04,
        enabled=False,
        category=FactorCategory.BEHAVIORAL,
    ),
)


@dataclass(frozen=True)
class ScoringConfig:
    """
    Complete engine configuration.

    Load from YAML:
        config = ScoringConfig.from_yaml("scoring.yaml")

    From the admin layer's JSON payload:
        config = ScoringConfig.from_dict(payload)

    `version` is the optimistic-concurrency token; it advances by one on
    every successful update (see ConfigStore).
    """

    factors: tuple[Factor, ...] = DEFAULT_FACTORS
    thresholds: ThresholdSet = field(default_factory=ThresholdSet)
    prediction_window_days: int = 30
    minimum_data_points: int = 10
    version: int = 0

    # Consumed by the retention layer, carried through untouched
    enable_auto_retention: bool = False

    def __post_init__(self):
        if not isinstance(self.factors, tuple):
            object.__setattr__(self, "factors", tuple(self.factors))

    @property
    def factor_ids(self) -> list[str]:
        return [factor.id for factor in self.factors]

    def get_factor(self, factor_id: str) -> Optional[Factor]:
        for factor in self.factors:
            if factor.id == factor_id:
                return factor
        return None

    def replace(self, **changes: Any) -> "ScoringConfig":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def with_factors(self, factors: Iterable[Factor]) -> "ScoringConfig":
        return self.replace(factors=tuple(factors))

    def next_version(self) -> "ScoringConfig":
        return self.replace(version=self.version + 1)

    def to_dict(self) -> dict:
        """Serialize to the admin layer's camelCase JSON shape."""
        return {
            "factors": [factor.to_dict() for factor in self.factors],
            "thresholds": self.thresholds.to_dict(),
            "predictionWindowDays": self.prediction_window_days,
            "minimumDataPoints": self.minimum_data_points,
            "enableAutoRetention": self.enable_auto_retention,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringConfig":
        """
        Build a draft config from a JSON/YAML mapping.

        Accepts both camelCase (admin API) and snake_case keys. Missing
        sections fall back to defaults. The result is NOT validated.
        """

        def pick(camel: str, snake: str, default: Any) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        # Older dashboard payloads call the window "predictionWindow"
        if "predictionWindow" in data and "predictionWindowDays" not in data:
            data = {**data, "predictionWindowDays": data["predictionWindow"]}

        factors = data.get("factors")
        thresholds = data.get("thresholds")
        return cls(
            factors=(
                tuple(Factor.from_dict(f) for f in factors)
                if factors is not None
                else DEFAULT_FACTORS
            ),
            thresholds=(
                ThresholdSet.from_dict(thresholds)
                if thresholds is not None
                else ThresholdSet()
            ),
            prediction_window_days=int(
                pick("predictionWindowDays", "prediction_window_days", 30)
            ),
            minimum_data_points=int(
                pick("minimumDataPoints", "minimum_data_points", 10)
            ),
            version=int(data.get("version", 0)),
            enable_auto_retention=bool(
                pick("enableAutoRetention", "enable_auto_retention", False)
            ),
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ScoringConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


# Default configuration instance
DEFAULT_CONFIG = ScoringConfig()

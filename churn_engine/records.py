"""Prediction and outcome records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .classifier import RiskTier


@dataclass(frozen=True)
class Prediction:
    """
    A risk prediction for one subject. Immutable once created.

    Attributes:
        subject_id: Subject the prediction is about
        score: Risk score in [0, 1]
        tier: Tier the score classified to
        computed_at: When the prediction was made
        window_days: Forward horizon the prediction claims to cover
        config_version: Version of the active config that produced it
        contributions: Factor id -> share of the score
    """

    subject_id: str
    score: float
    tier: RiskTier
    computed_at: datetime
    window_days: int
    config_version: int = 0
    contributions: dict[str, float] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "score": self.score,
            "tier": self.tier.value,
            "computed_at": self.computed_at.isoformat(),
            "window_days": self.window_days,
            "config_version": self.config_version,
            "contributions": dict(self.contributions),
        }


@dataclass(frozen=True)
class Outcome:
    """Observed churn status for a subject at a point in time."""

    subject_id: str
    churned: bool
    observed_at: datetime


class RejectionReason(str, Enum):
    INSUFFICIENT_DATA_POINTS = "insufficient_data_points"
    NO_ACTIVE_FACTORS = "no_active_factors"


@dataclass(frozen=True)
class PredictionRejected:
    """
    Returned instead of a Prediction when one cannot be made.

    This is an expected outcome, not an error: callers branch on it.
    """

    subject_id: str
    reason: RejectionReason
    detail: str = ""

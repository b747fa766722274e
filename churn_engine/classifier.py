"""Threshold-based risk tier classification."""

import math
from bisect import bisect_right
from enum import Enum
from typing import Union

import numpy as np
import pandas as pd

from .config import ThresholdSet
from .errors import ThresholdOrderViolationError


class RiskTier(str, Enum):
    """
    Ordinal risk tier.

    Compare tiers with `rank`, not with `<` on the enum: this is a str
    enum, so plain comparison would be alphabetical.
    """

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    def at_least(self, other: "RiskTier") -> bool:
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Union[str, "RiskTier"]) -> "RiskTier":
        """Accept "high", "HIGH" or RiskTier.HIGH."""
        if isinstance(value, RiskTier):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in TIER_ORDER)
            raise ValueError(f"Unknown risk tier {value!r}; expected one of: {valid}") from None


TIER_ORDER: tuple[RiskTier, ...] = (
    RiskTier.NONE,
    RiskTier.LOW,
    RiskTier.MEDIUM,
    RiskTier.HIGH,
    RiskTier.CRITICAL,
)


class ThresholdClassifier:
    """
    Map a score in [0, 1] to a RiskTier.

    Intervals are half-open at each cut point and a score equal to a cut
    point belongs to the higher tier:

        score <  low              -> none
        low      <= score < medium   -> low
        medium   <= score < high     -> medium
        high     <= score < critical -> high
        critical <= score            -> critical

    The ordering check runs once, at construction. After that only a
    non-finite score can fail classification: NaN is "not scored", which
    has no tier.
    """

    def __init__(self, thresholds: ThresholdSet):
        problems = thresholds.violations()
        if problems:
            raise ThresholdOrderViolationError("; ".join(problems))
        self.thresholds = thresholds
        self._cuts = thresholds.as_tuple()

    def classify(self, score: float) -> RiskTier:
        if not math.isfinite(score):
            raise ValueError(f"Cannot classify non-finite score {score!r}")
        return TIER_ORDER[bisect_right(self._cuts, score)]

    def classify_series(self, scores: pd.Series) -> pd.Series:
        """
        Vectorized classification.

        NaN scores (subjects that could not be scored) map to None.
        """
        idx = np.searchsorted(np.asarray(self._cuts), scores.to_numpy(dtype=float), side="right")
        tiers = pd.Series(
            [TIER_ORDER[i].value for i in idx], index=scores.index, dtype=object
        )
        return tiers.where(scores.notna(), None)

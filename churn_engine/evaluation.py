"""
Evaluation of stored predictions against observed outcomes.

A prediction counts as predicted-churn when its tier is at or above the
chosen positive tier; an outcome counts as actual-churn when `churned` is
true. The four confusion-matrix cells then give accuracy, precision,
recall and F1.

Zero-denominator policy: any ratio whose denominator is zero is reported
as 0.0 (an "optimistic zero", not "undefined"). Dashboards reading a
snapshot therefore never see NaN and evaluation never raises on a
degenerate pair set, including an empty one.

Snapshots are always recomputed from the full pair set; nothing is kept
between calls.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from .classifier import TIER_ORDER, RiskTier
from .records import Outcome, Prediction
from .schemas import CHURNED, EVALUATION_FRAME_SCHEMA, RISK_TIER

logger = logging.getLogger(__name__)

PredictionOutcomePair = tuple[Prediction, Outcome]


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True)
class ConfusionCounts:
    """
    The four confusion-matrix cells.

    Counts from disjoint chunks of pairs add up to the counts of the
    whole, so chunks can be counted in parallel and summed afterwards.
    """

    true_positives: int = 0
    false_positives: int = 0
    true_negatives: int = 0
    false_negatives: int = 0

    @property
    def total(self) -> int:
        return (
            self.true_positives
            + self.false_positives
            + self.true_negatives
            + self.false_negatives
        )

    def __add__(self, other: "ConfusionCounts") -> "ConfusionCounts":
        if not isinstance(other, ConfusionCounts):
            return NotImplemented
        return ConfusionCounts(
            true_positives=self.true_positives + other.true_positives,
            false_positives=self.false_positives + other.false_positives,
            true_negatives=self.true_negatives + other.true_negatives,
            false_negatives=self.false_negatives + other.false_negatives,
        )

    @classmethod
    def from_labels(cls, y_true: np.ndarray, y_pred: np.ndarray) -> "ConfusionCounts":
        """Count cells from boolean actual/predicted arrays."""
        if len(y_true) == 0:
            return cls()
        cm = confusion_matrix(
            np.asarray(y_true, dtype=bool),
            np.asarray(y_pred, dtype=bool),
            labels=[False, True],
        )
        return cls(
            true_positives=int(cm[1, 1]),
            false_positives=int(cm[0, 1]),
            true_negatives=int(cm[0, 0]),
            false_negatives=int(cm[1, 0]),
        )


@dataclass(frozen=True)
class PerformanceSnapshot:
    """
    Classification performance at one point in time.

    Derived data: rebuild it from the prediction/outcome pairs rather than
    editing it.
    """

    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int
    accuracy: float
    precision: float
    recall: float
    f1: float
    computed_at: datetime
    positive_tier: RiskTier = RiskTier.HIGH

    @classmethod
    def from_counts(
        cls,
        counts: ConfusionCounts,
        positive_tier: RiskTier = RiskTier.HIGH,
        computed_at: Optional[datetime] = None,
    ) -> "PerformanceSnapshot":
        tp = counts.true_positives
        fp = counts.false_positives
        tn = counts.true_negatives
        fn = counts.false_negatives

        precision = safe_ratio(tp, tp + fp)
        recall = safe_ratio(tp, tp + fn)
        return cls(
            true_positives=tp,
            false_positives=fp,
            true_negatives=tn,
            false_negatives=fn,
            accuracy=safe_ratio(tp + tn, counts.total),
            precision=precision,
            recall=recall,
            f1=safe_ratio(2 * precision * recall, precision + recall),
            computed_at=computed_at or datetime.now(timezone.utc),
            positive_tier=positive_tier,
        )

    @property
    def counts(self) -> ConfusionCounts:
        return ConfusionCounts(
            self.true_positives,
            self.false_positives,
            self.true_negatives,
            self.false_negatives,
        )

    @property
    def total_predictions(self) -> int:
        return self.counts.total

    @property
    def correct_predictions(self) -> int:
        return self.true_positives + self.true_negatives

    @property
    def incorrect_predictions(self) -> int:
        return self.false_positives + self.false_negatives

    def to_dict(self) -> dict:
        return {
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "true_negatives": self.true_negatives,
            "false_negatives": self.false_negatives,
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "total_predictions": self.total_predictions,
            "correct_predictions": self.correct_predictions,
            "incorrect_predictions": self.incorrect_predictions,
            "positive_tier": self.positive_tier.value,
            "computed_at": self.computed_at.isoformat(),
        }

    def summary(self) -> str:
        """Human-readable summary."""
        return (
            f"Positive tier: >= {self.positive_tier.value}\n"
            f"  Pairs:     {self.total_predictions}\n"
            f"  Accuracy:  {self.accuracy:.1%}\n"
            f"  Precision: {self.precision:.1%}\n"
            f"  Recall:    {self.recall:.1%}\n"
            f"  F1:        {self.f1:.3f}\n"
            f"  TP={self.true_positives} FP={self.false_positives} "
            f"TN={self.true_negatives} FN={self.false_negatives}"
        )


class EvaluationEngine:
    """
    Compares predictions with outcomes.

    Usage:
        engine = EvaluationEngine(positive_tier="high")
        pairs = join_within_window(predictions, outcomes)
        snapshot = engine.evaluate(pairs)
        print(snapshot.summary())
    """

    def __init__(self, positive_tier: Union[str, RiskTier] = RiskTier.HIGH):
        self.positive_tier = RiskTier.parse(positive_tier)

    def _resolve_tier(self, positive_tier: Union[str, RiskTier, None]) -> RiskTier:
        if positive_tier is None:
            return self.positive_tier
        return RiskTier.parse(positive_tier)

    def count(
        self,
        pairs: Iterable[PredictionOutcomePair],
        positive_tier: Union[str, RiskTier, None] = None,
    ) -> ConfusionCounts:
        """Confusion-matrix cells for a set of pairs (any iterable)."""
        pairs = list(pairs)
        tier = self._resolve_tier(positive_tier)
        y_true = np.array([outcome.churned for _, outcome in pairs], dtype=bool)
        y_pred = np.array(
            [prediction.tier.rank >= tier.rank for prediction, _ in pairs],
            dtype=bool,
        )
        return ConfusionCounts.from_labels(y_true, y_pred)

    def evaluate(
        self,
        pairs: Iterable[PredictionOutcomePair],
        positive_tier: Union[str, RiskTier, None] = None,
        computed_at: Optional[datetime] = None,
    ) -> PerformanceSnapshot:
        """
        Build a PerformanceSnapshot from windowed (prediction, outcome) pairs.

        Args:
            pairs: Pairs already restricted to each prediction's window
            positive_tier: Lowest tier counted as predicted-churn
            computed_at: Timestamp for the snapshot (default: now, UTC)

        Returns:
            PerformanceSnapshot; never raises for empty or one-sided input
        """
        tier = self._resolve_tier(positive_tier)
        counts = self.count(pairs, tier)
        snapshot = PerformanceSnapshot.from_counts(counts, tier, computed_at)
        logger.debug(
            "Evaluated %d pairs at tier >= %s: f1=%.3f",
            counts.total,
            tier.value,
            snapshot.f1,
        )
        return snapshot

    def evaluate_parallel(
        self,
        pairs: Iterable[PredictionOutcomePair],
        positive_tier: Union[str, RiskTier, None] = None,
        chunk_size: int = 10_000,
        max_workers: Optional[int] = None,
        computed_at: Optional[datetime] = None,
    ) -> PerformanceSnapshot:
        """
        Same result as `evaluate`, counting chunks on a thread pool.

        Each pair's cell is independent of every other pair, so chunks are
        counted concurrently and their counts summed serially.
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        tier = self._resolve_tier(positive_tier)
        pairs = list(pairs)
        chunks = [pairs[i:i + chunk_size] for i in range(0, len(pairs), chunk_size)]

        total = ConfusionCounts()
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            for counts in pool.map(lambda chunk: self.count(chunk, tier), chunks):
                total = total + counts
        return PerformanceSnapshot.from_counts(total, tier, computed_at)

    def evaluate_frame(
        self,
        df: pd.DataFrame,
        positive_tier: Union[str, RiskTier, None] = None,
        computed_at: Optional[datetime] = None,
    ) -> PerformanceSnapshot:
        """
        Vectorized evaluation of a joined frame.

        Args:
            df: One row per windowed pair with RISK_TIER and CHURNED columns
            positive_tier: Lowest tier counted as predicted-churn
            computed_at: Timestamp for the snapshot (default: now, UTC)
        """
        tier = self._resolve_tier(positive_tier)
        df = EVALUATION_FRAME_SCHEMA.validate(df)
        ranks = {t.value: t.rank for t in TIER_ORDER}
        y_pred = df[RISK_TIER].map(ranks).to_numpy() >= tier.rank
        y_true = df[CHURNED].to_numpy(dtype=bool)
        counts = ConfusionCounts.from_labels(y_true, y_pred)
        return PerformanceSnapshot.from_counts(counts, tier, computed_at)

    def sweep(
        self,
        pairs: Iterable[PredictionOutcomePair],
        computed_at: Optional[datetime] = None,
    ) -> pd.DataFrame:
        """
        Metrics for every candidate positive tier.

        Useful for choosing which tier should trigger retention work.

        Returns:
            DataFrame with one row per tier (low..critical)
        """
        pairs = list(pairs)
        computed_at = computed_at or datetime.now(timezone.utc)
        rows = []
        for tier in TIER_ORDER[1:]:
            snapshot = self.evaluate(pairs, tier, computed_at)
            rows.append({
                "positive_tier": tier.value,
                "accuracy": snapshot.accuracy,
                "precision": snapshot.precision,
                "recall": snapshot.recall,
                "f1": snapshot.f1,
                "true_positives": snapshot.true_positives,
                "false_positives": snapshot.false_positives,
                "true_negatives": snapshot.true_negatives,
                "false_negatives": snapshot.false_negatives,
            })
        return pd.DataFrame(rows)

    @staticmethod
    def best_tier(sweep_df: pd.DataFrame, metric: str = "f1") -> RiskTier:
        """Tier with the highest value of `metric` in a sweep (lowest tier on ties)."""
        if metric not in ("accuracy", "precision", "recall", "f1"):
            raise ValueError(f"Unknown metric: {metric}")
        best_idx = sweep_df[metric].idxmax()
        return RiskTier.parse(sweep_df.loc[best_idx, "positive_tier"])

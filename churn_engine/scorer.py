"""
RiskScorer - combines feature values with factor weights into a risk score.

Usage:
    from churn_engine import RiskScorer, FactorRegistry, DEFAULT_CONFIG

    registry = FactorRegistry.from_config(DEFAULT_CONFIG)
    scorer = RiskScorer()

    # One subject
    result = scorer.score({"payment_failures": 0.8}, registry.active_factors())
    print(result.score, result.contributions)

    # Many subjects (one row per subject, one column per factor id)
    batch = scorer.score_frame(df, registry.active_factors(), classifier)
    print(batch.tier_distribution())
"""

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from .classifier import TIER_ORDER, ThresholdClassifier
from .config import Factor
from .errors import FeatureValueError, NoActiveFactorsError
from .schemas import RISK_SCORE, RISK_TIER, SUBJECT_ID, feature_frame_schema


@dataclass(frozen=True)
class FactorContribution:
    """
    One factor's share of a score.

    `contribution` is weight * value / total_weight, so contributions of
    all used factors sum to the (unclamped) score.
    """

    factor_id: str
    weight: float
    value: float
    contribution: float


@dataclass(frozen=True)
class ScoreResult:
    """
    Score for one subject with its explanation.

    Attributes:
        score: Normalized risk score in [0, 1]
        contributions: Per-factor breakdown, keyed by factor id
        missing_factors: Enabled factors with no value in the feature vector
        total_weight: Sum of weights actually used (the denominator)
    """

    score: float
    contributions: dict[str, FactorContribution]
    missing_factors: tuple[str, ...]
    total_weight: float

    def top_contributors(self, n: int = 3) -> list[FactorContribution]:
        """Largest contributions first; ties broken by factor id."""
        ranked = sorted(
            self.contributions.values(),
            key=lambda c: (-c.contribution, c.factor_id),
        )
        return ranked[:n]


def _is_missing(value: Optional[float]) -> bool:
    # None, NaN, NaT and pd.NA from nullable columns
    return value is None or bool(pd.isna(value))


def _clamp(score: float) -> float:
    return min(1.0, max(0.0, score))


class RiskScorer:
    """
    Weighted-average risk scoring.

        score = sum(weight_i * value_i) / sum(weight_i)

    over enabled factors that have a value in the feature vector. Enabled
    factors without a value are left out of BOTH sums rather than counted
    as zero, so a subject is not penalized for data nobody collected.
    Weights therefore do not need to add up to 1.

    Zero-weight factors carry no signal and are skipped as well. Sums use
    math.fsum, which is exactly rounded: the same inputs give the same
    bits no matter how the factor set happens to iterate.
    """

    def score(
        self,
        features: Mapping[str, Optional[float]],
        factors: Iterable[Factor],
    ) -> ScoreResult:
        """
        Score one feature vector.

        Args:
            features: Factor id -> observed value in [0, 1]
            factors: Factors to consider; disabled ones are ignored

        Returns:
            ScoreResult with score and contribution breakdown

        Raises:
            NoActiveFactorsError: If no enabled factor has a usable value
            FeatureValueError: If a present value is outside [0, 1]
        """
        used: list[tuple[Factor, float]] = []
        missing = []

        for factor in sorted((f for f in factors if f.enabled), key=lambda f: f.id):
            value = features.get(factor.id)
            if _is_missing(value):
                missing.append(factor.id)
                continue
            value = float(value)
            if not 0.0 <= value <= 1.0:
                raise FeatureValueError(factor.id, value)
            if factor.weight > 0:
                used.append((factor, value))

        if not used:
            raise NoActiveFactorsError(
                "No enabled factor with non-zero weight has a value "
                f"(missing: {', '.join(missing) or 'none'})"
            )

        total_weight = math.fsum(factor.weight for factor, _ in used)
        weighted = math.fsum(factor.weight * value for factor, value in used)

        contributions = {
            factor.id: FactorContribution(
                factor_id=factor.id,
                weight=factor.weight,
                value=value,
                contribution=factor.weight * value / total_weight,
            )
            for factor, value in used
        }

        return ScoreResult(
            score=_clamp(weighted / total_weight),
            contributions=contributions,
            missing_factors=tuple(missing),
            total_weight=total_weight,
        )

    def score_frame(
        self,
        df: pd.DataFrame,
        factors: Iterable[Factor],
        classifier: Optional[ThresholdClassifier] = None,
    ) -> "ScoringResult":
        """
        Vectorized scoring for many subjects.

        Args:
            df: One row per subject: SUBJECT_ID plus one column per factor id
            factors: Factors to consider; disabled ones are ignored
            classifier: If given, RISK_TIER is added

        Returns:
            ScoringResult with RISK_SCORE, optional RISK_TIER and
            <factor>_contribution columns. Rows with no usable factor get a
            NaN score (and no tier).

        Raises:
            NoActiveFactorsError: If no factor is enabled with non-zero weight
        """
        active = sorted(
            (f for f in factors if f.enabled and f.weight > 0),
            key=lambda f: f.id,
        )
        if not active:
            raise NoActiveFactorsError("No enabled factor with non-zero weight")

        result = feature_frame_schema(f.id for f in active).validate(df.copy())

        ids = [f.id for f in active if f.id in result.columns]
        weights = pd.Series({f.id: f.weight for f in active})[ids]

        values = result[ids].astype(float)
        weighted = values.mul(weights, axis=1)
        denominator = values.notna().astype(float).mul(weights, axis=1).sum(axis=1)
        denominator = denominator.where(denominator > 0)

        contribution_cols = []
        for factor_id in ids:
            col_name = f"{factor_id}_contribution"
            result[col_name] = weighted[factor_id].div(denominator).fillna(0.0)
            contribution_cols.append(col_name)

        result[RISK_SCORE] = weighted.sum(axis=1).div(denominator).clip(0.0, 1.0)
        if classifier is not None:
            result[RISK_TIER] = classifier.classify_series(result[RISK_SCORE])

        return ScoringResult(df=result, contribution_columns=contribution_cols)


@dataclass
class ScoringResult:
    """
    Container for batch scoring results with contribution breakdown.

    Attributes:
        df: Input DataFrame with scores added
        contribution_columns: Per-factor contribution column names
    """

    df: pd.DataFrame
    contribution_columns: list[str]

    def scored(self) -> pd.DataFrame:
        """Rows that received a score."""
        return self.df[self.df[RISK_SCORE].notna()]

    def unscored(self) -> pd.DataFrame:
        """Rows with no usable factor value."""
        return self.df[self.df[RISK_SCORE].isna()]

    def get_high_risk(self, min_tier: str = "high") -> pd.DataFrame:
        """
        Get subjects at or above a risk tier.

        Args:
            min_tier: Minimum tier ("none", "low", "medium", "high", "critical")

        Returns:
            DataFrame filtered to subjects at or above the tier
        """
        self._require_tiers()
        values = [t.value for t in TIER_ORDER]
        valid = values[values.index(str(min_tier).lower()):]
        return self.df[self.df[RISK_TIER].isin(valid)]

    def tier_distribution(self) -> pd.DataFrame:
        """
        Count and average score per tier, in tier order.

        Returns:
            DataFrame indexed by tier with count, share and avg_score
        """
        self._require_tiers()
        order = [t.value for t in TIER_ORDER]
        scored = self.scored()
        stats = scored.groupby(RISK_TIER).agg(
            count=(SUBJECT_ID, "count"),
            avg_score=(RISK_SCORE, "mean"),
        )
        stats = stats.reindex(order).fillna({"count": 0}).astype({"count": int})
        total = stats["count"].sum()
        stats["share"] = stats["count"] / total if total else 0.0
        return stats.round(3)

    def component_breakdown(self) -> pd.DataFrame:
        """
        Show average contribution of each factor.

        Returns:
            DataFrame with contribution statistics per factor
        """
        stats = {}
        scored = self.scored()
        for col in self.contribution_columns:
            factor_id = col.replace("_contribution", "")
            stats[factor_id] = {
                "mean": scored[col].mean(),
                "max": scored[col].max(),
                "min": scored[col].min(),
            }
        return pd.DataFrame(stats).T.round(3)

    def _require_tiers(self) -> None:
        if RISK_TIER not in self.df.columns:
            raise ValueError("Scores were computed without a classifier; no RISK_TIER column")


def generate_sample_data(
    factor_ids: Iterable[str],
    n_subjects: int = 100,
    missing_rate: float = 0.1,
    seed: int = 42,
) -> pd.DataFrame:
    """
    Generate sample feature vectors for testing.

    Values are drawn from a Beta(2, 5) distribution so most subjects look
    healthy with a long tail of risky ones; about `missing_rate` of the
    cells are left empty.
    """
    rng = np.random.RandomState(seed)
    factor_ids = list(factor_ids)

    data = {SUBJECT_ID: [f"SUBJ_{i:05d}" for i in range(n_subjects)]}
    for factor_id in factor_ids:
        values = rng.beta(2.0, 5.0, size=n_subjects).round(3)
        mask = rng.random_sample(n_subjects) < missing_rate
        data[factor_id] = np.where(mask, np.nan, values)

    return pd.DataFrame(data)

"""
Pytest fixtures for churn risk engine tests.
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

# Add packages to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from churn_engine.classifier import RiskTier, ThresholdClassifier
from churn_engine.config import Factor, FactorCategory, ScoringConfig, ThresholdSet
from churn_engine.predictor import ChurnPredictor
from churn_engine.records import Outcome, Prediction
from churn_engine.registry import FactorRegistry
from churn_engine.scorer import RiskScorer, generate_sample_data


T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    """Fixed reference timestamp."""
    return T0


@pytest.fixture
def default_config():
    """Default scoring configuration."""
    return ScoringConfig()


@pytest.fixture
def default_thresholds():
    """Dashboard default cut points: 0.30 / 0.50 / 0.70 / 0.85."""
    return ThresholdSet(low=0.3, medium=0.5, high=0.7, critical=0.85)


@pytest.fixture
def two_factors():
    """The worked example: A weighs 0.6, B weighs 0.4."""
    return (
        Factor(id="A", name="Factor A", weight=0.6, category=FactorCategory.FINANCIAL),
        Factor(id="B", name="Factor B", weight=0.4, category=FactorCategory.ENGAGEMENT),
    )


@pytest.fixture
def two_factor_config(two_factors, default_thresholds):
    """Config built on the two example factors."""
    return ScoringConfig(
        factors=two_factors,
        thresholds=default_thresholds,
        prediction_window_days=30,
        minimum_data_points=5,
        version=1,
    )


@pytest.fixture
def registry(two_factors):
    """Registry holding the two example factors."""
    return FactorRegistry(two_factors)


@pytest.fixture
def scorer():
    """Stateless risk scorer."""
    return RiskScorer()


@pytest.fixture
def classifier(default_thresholds):
    """Classifier on the default cut points."""
    return ThresholdClassifier(default_thresholds)


@pytest.fixture
def predictor(two_factor_config):
    """Predictor on the two-factor config."""
    return ChurnPredictor(two_factor_config)


@pytest.fixture
def sample_data(default_config):
    """200 subjects over the default factors, ~10% of cells missing."""
    return generate_sample_data(default_config.factor_ids, n_subjects=200, seed=42)


def make_prediction(subject_id, tier, computed_at=T0, window_days=30, score=None):
    """Prediction with a plausible score for its tier."""
    tier = RiskTier.parse(tier)
    default_scores = {
        RiskTier.NONE: 0.1,
        RiskTier.LOW: 0.4,
        RiskTier.MEDIUM: 0.6,
        RiskTier.HIGH: 0.75,
        RiskTier.CRITICAL: 0.9,
    }
    return Prediction(
        subject_id=subject_id,
        score=default_scores[tier] if score is None else score,
        tier=tier,
        computed_at=computed_at,
        window_days=window_days,
    )


def make_outcome(subject_id, churned, days_after=10, base=T0):
    """Outcome observed `days_after` days after `base`."""
    return Outcome(
        subject_id=subject_id,
        churned=churned,
        observed_at=base + timedelta(days=days_after),
    )


@pytest.fixture
def labelled_pairs():
    """
    Ten windowed pairs with a known confusion matrix at tier >= high:

    TP=3 (high/critical, churned), FP=1 (high, retained),
    TN=4 (none/low/medium, retained), FN=2 (low/medium, churned).
    """
    spec = [
        ("s01", "critical", True),
        ("s02", "high", True),
        ("s03", "high", True),
        ("s04", "high", False),
        ("s05", "none", False),
        ("s06", "low", False),
        ("s07", "medium", False),
        ("s08", "low", False),
        ("s09", "medium", True),
        ("s10", "low", True),
    ]
    return [
        (make_prediction(sid, tier), make_outcome(sid, churned))
        for sid, tier, churned in spec
    ]


@pytest.fixture
def predictions_frame():
    """Stored predictions as they come out of the scoring job."""
    return pd.DataFrame([
        {"SUBJECT_ID": "s01", "RISK_SCORE": 0.9, "RISK_TIER": "critical",
         "COMPUTED_AT": "2026-01-01T00:00:00Z", "WINDOW_DAYS": 30, "CONFIG_VERSION": 3},
        {"SUBJECT_ID": "s02", "RISK_SCORE": 0.2, "RISK_TIER": "none",
         "COMPUTED_AT": "2026-01-01T00:00:00Z", "WINDOW_DAYS": 30, "CONFIG_VERSION": 3},
        {"SUBJECT_ID": "s03", "RISK_SCORE": 0.75, "RISK_TIER": "high",
         "COMPUTED_AT": "2026-01-01T00:00:00Z", "WINDOW_DAYS": 30, "CONFIG_VERSION": 3},
    ])


@pytest.fixture
def outcomes_frame():
    """Outcomes; s03's churn lands after its window closes."""
    return pd.DataFrame([
        {"SUBJECT_ID": "s01", "CHURNED": True, "OBSERVED_AT": "2026-01-15T00:00:00Z"},
        {"SUBJECT_ID": "s02", "CHURNED": False, "OBSERVED_AT": "2026-01-20T00:00:00Z"},
        {"SUBJECT_ID": "s03", "CHURNED": True, "OBSERVED_AT": "2026-03-01T00:00:00Z"},
    ])

"""
Regression tests for scoring behavior.

Tests that scores are deterministic and reproducible, and that configs
saved by the admin dashboard keep loading.
"""

import json

import pandas as pd
import pytest

from churn_engine import ChurnPredictor, RiskScorer, RiskTier, ScoringConfig, ThresholdClassifier
from churn_engine.scorer import generate_sample_data
from churn_engine.validator import ConfigValidator
from churn_reports.run import main


# Payload shape the admin dashboard has always saved
DASHBOARD_PAYLOAD = {
    "factors": [
        {
            "id": "payment_failures",
            "name": "Payment Failures",
            "description": "Number of failed payment attempts in the last 30 days",
            "weight": 0.25,
            "enabled": True,
            "category": "financial",
        },
        {
            "id": "login_frequency",
            "name": "Login Frequency",
            "description": "Decrease in platform login frequency",
            "weight": 0.10,
            "enabled": True,
            "category": "engagement",
        },
        {
            "id": "seasonal_patterns",
            "name": "Seasonal Patterns",
            "description": "Historical churn patterns based on time of year",
            "weight": 0.04,
            "enabled": False,
            "category": "behavioral",
        },
    ],
    "thresholds": {"low": 0.3, "medium": 0.5, "high": 0.7, "critical": 0.85},
    "predictionWindow": 45,
    "minimumDataPoints": 10,
    "enableAutoRetention": False,
}


class TestScoringDeterminism:
    """Same inputs, same bits."""

    def test_sample_data_reproducible(self, default_config):
        """Fixed seed gives the same extract."""
        a = generate_sample_data(default_config.factor_ids, n_subjects=100, seed=42)
        b = generate_sample_data(default_config.factor_ids, n_subjects=100, seed=42)
        pd.testing.assert_frame_equal(a, b)

    def test_frame_scores_identical_on_rerun(self, default_config, sample_data):
        """Two scorers over the same frame agree exactly."""
        classifier = ThresholdClassifier(default_config.thresholds)
        result1 = RiskScorer().score_frame(sample_data, default_config.factors, classifier)
        result2 = RiskScorer().score_frame(sample_data, default_config.factors, classifier)

        pd.testing.assert_series_equal(
            result1.df["RISK_SCORE"], result2.df["RISK_SCORE"], check_exact=True
        )
        pd.testing.assert_series_equal(result1.df["RISK_TIER"], result2.df["RISK_TIER"])

    def test_contribution_columns_identical_on_rerun(self, default_config, sample_data):
        scorer = RiskScorer()
        result1 = scorer.score_frame(sample_data, default_config.factors)
        result2 = scorer.score_frame(sample_data, default_config.factors)

        for col in result1.contribution_columns:
            pd.testing.assert_series_equal(result1.df[col], result2.df[col], check_exact=True)

    def test_input_frame_not_modified(self, default_config, sample_data):
        before = sample_data.copy()
        RiskScorer().score_frame(sample_data, default_config.factors)
        pd.testing.assert_frame_equal(sample_data, before)

    def test_single_prediction_deterministic(self, default_config, t0):
        features = {fid: 0.4 + 0.05 * i for i, fid in enumerate(default_config.factor_ids)}
        predictor = ChurnPredictor(default_config)

        first = predictor.predict("sub", features, 20, computed_at=t0)
        second = predictor.predict("sub", features, 20, computed_at=t0)

        assert first == second
        assert first.contributions == second.contributions


class TestGoldenScores:
    """Known inputs with hand-computed results."""

    def test_two_factor_example(self, predictor, t0):
        result = predictor.predict("sub", {"A": 0.8, "B": 0.2}, 10, computed_at=t0)
        assert result.score == pytest.approx(0.56)
        assert result.tier is RiskTier.MEDIUM

    def test_default_weights(self, default_config, t0):
        """payment_failures alone at 1.0, everything else 0 -> 0.25 / 0.96."""
        features = {fid: 0.0 for fid in default_config.factor_ids}
        features["payment_failures"] = 1.0

        result = ChurnPredictor(default_config).predict("sub", features, 10, computed_at=t0)

        # seasonal_patterns (0.04) is disabled, so active weight is 0.96
        assert result.score == pytest.approx(0.25 / 0.96)
        assert result.tier is RiskTier.NONE


class TestConfigBackwardCompatibility:
    """Configs saved by older tooling must keep loading."""

    def test_dashboard_payload_loads(self):
        config = ScoringConfig.from_dict(DASHBOARD_PAYLOAD)

        assert config.factor_ids == ["payment_failures", "login_frequency", "seasonal_patterns"]
        assert config.prediction_window_days == 45
        assert config.minimum_data_points == 10
        assert ConfigValidator().validate(config).ok

    def test_dashboard_payload_from_json_file(self, tmp_path, capsys):
        """The CLI validates the same payload from disk."""
        path = tmp_path / "algorithm.json"
        path.write_text(json.dumps(DASHBOARD_PAYLOAD))

        assert main(["validate", str(path)]) == 0
        assert "2/3 factors enabled" in capsys.readouterr().out

    def test_round_trip_preserves_payload_fields(self):
        data = ScoringConfig.from_dict(DASHBOARD_PAYLOAD).to_dict()

        assert data["factors"] == DASHBOARD_PAYLOAD["factors"]
        assert data["thresholds"] == DASHBOARD_PAYLOAD["thresholds"]
        assert data["predictionWindowDays"] == 45

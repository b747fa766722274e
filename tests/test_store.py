"""
Tests for the config store and the record stores.
"""

import threading
from datetime import timedelta

import pytest

from churn_engine.config import ScoringConfig, ThresholdSet
from churn_engine.errors import ConfigValidationError, StaleConfigVersionError
from churn_engine.store import ConfigStore, OutcomeStore, PredictionStore
from churn_engine.validator import SetFactorEnabled, SetFactorWeight, SetThresholds

from conftest import make_outcome, make_prediction


@pytest.fixture
def config_store(two_factor_config):
    """Store whose active config is at version 5."""
    return ConfigStore(two_factor_config.replace(version=5))


class TestConfigStore:
    """Tests for versioned config activation."""

    def test_defaults_when_no_initial(self):
        store = ConfigStore()
        assert store.version == 0
        assert len(store.active.factors) == 9

    def test_invalid_initial_config_raises(self, two_factors):
        """The store never holds an invalid config, even at startup."""
        with pytest.raises(ConfigValidationError):
            ConfigStore(ScoringConfig(factors=[f.with_enabled(False) for f in two_factors]))

    def test_update_advances_version(self, config_store):
        """A valid update based on the current version activates v+1."""
        result = config_store.update(SetFactorWeight("A", 0.5), expected_version=5)

        assert result.ok
        assert config_store.version == 6
        assert config_store.active.get_factor("A").weight == 0.5

    def test_stale_update_rejected(self, config_store):
        """Two editors both read v5; the second write is refused."""
        config_store.update(SetFactorWeight("A", 0.5), expected_version=5)

        with pytest.raises(StaleConfigVersionError) as exc_info:
            config_store.update(SetFactorWeight("B", 0.1), expected_version=5)

        assert exc_info.value.expected_version == 5
        assert exc_info.value.current_version == 6
        assert config_store.active.get_factor("B").weight == 0.4

    def test_invalid_update_keeps_active(self, config_store):
        """A failing draft is reported and nothing changes."""
        before = config_store.active
        result = config_store.update(
            SetThresholds(ThresholdSet(low=0.5, medium=0.4, high=0.7, critical=0.85)),
            expected_version=5,
        )

        assert not result.ok
        assert config_store.active is before
        assert config_store.version == 5

    def test_update_with_full_config(self, config_store, two_factor_config):
        """A complete draft is accepted; its own version is ignored."""
        draft = two_factor_config.replace(minimum_data_points=20, version=99)
        result = config_store.update(draft, expected_version=5)

        assert result.ok
        assert config_store.version == 6
        assert config_store.active.minimum_data_points == 20

    def test_readers_see_old_or_new(self, config_store):
        """A config read before an update is unaffected by it."""
        snapshot = config_store.active
        config_store.update(SetFactorEnabled("B", False), expected_version=5)

        assert snapshot.get_factor("B").enabled is True
        assert config_store.active.get_factor("B").enabled is False

    def test_concurrent_writers_single_winner(self, config_store):
        """Of many writers racing from the same version, exactly one wins."""
        outcomes = []
        barrier = threading.Barrier(8)

        def writer(weight):
            barrier.wait()
            try:
                config_store.update(SetFactorWeight("A", weight), expected_version=5)
                outcomes.append("ok")
            except StaleConfigVersionError:
                outcomes.append("stale")

        threads = [threading.Thread(target=writer, args=(0.1 * i,)) for i in range(1, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("stale") == 7
        assert config_store.version == 6


class TestPredictionStore:
    """Tests for the append-only prediction log."""

    def test_append_and_query(self, t0):
        store = PredictionStore()
        store.append(make_prediction("s1", "low", computed_at=t0))
        store.extend([
            make_prediction("s2", "high", computed_at=t0),
            make_prediction("s1", "critical", computed_at=t0 + timedelta(days=30)),
        ])

        assert len(store) == 3
        assert len(store.for_subject("s1")) == 2
        assert store.latest("s1").tier.value == "critical"
        assert store.latest("unknown") is None

    def test_all_is_a_snapshot(self, t0):
        """all() cannot be used to mutate the log."""
        store = PredictionStore([make_prediction("s1", "low", computed_at=t0)])
        snapshot = store.all()
        store.append(make_prediction("s2", "low", computed_at=t0))

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_to_frame(self, t0):
        store = PredictionStore([make_prediction("s1", "high", computed_at=t0)])
        df = store.to_frame()

        assert list(df.columns) == [
            "SUBJECT_ID", "RISK_SCORE", "RISK_TIER", "COMPUTED_AT", "WINDOW_DAYS", "CONFIG_VERSION",
        ]
        assert df.loc[0, "RISK_TIER"] == "high"

    def test_empty_frame_has_columns(self):
        assert "RISK_TIER" in PredictionStore().to_frame().columns


class TestOutcomeStore:
    """Tests for the append-only outcome log."""

    def test_record_and_query(self):
        store = OutcomeStore()
        store.record(make_outcome("s1", True))
        store.extend([make_outcome("s2", False), make_outcome("s1", False, days_after=40)])

        assert len(store) == 3
        assert [o.churned for o in store.for_subject("s1")] == [True, False]

    def test_to_frame(self):
        df = OutcomeStore([make_outcome("s1", True)]).to_frame()
        assert list(df.columns) == ["SUBJECT_ID", "CHURNED", "OBSERVED_AT"]
        assert bool(df.loc[0, "CHURNED"]) is True

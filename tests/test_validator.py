"""
Tests for config validation and config commands.
"""

import pytest

from churn_engine.config import Factor, ScoringConfig, ThresholdSet
from churn_engine.errors import (
    ConfigValidationError,
    DuplicateFactorIdError,
    UnknownFactorError,
)
from churn_engine.validator import (
    AddFactor,
    ConfigValidator,
    RemoveFactor,
    SetFactorEnabled,
    SetFactorWeight,
    SetThresholds,
    SetWindowPolicy,
    ValidationCode,
    apply,
    build_draft,
)


@pytest.fixture
def validator():
    return ConfigValidator()


class TestConfigValidator:
    """Tests for draft validation."""

    def test_default_config_is_valid(self, validator, default_config):
        """Shipped defaults pass every check."""
        result = validator.validate(default_config)
        assert result.ok
        assert result.config is default_config

    def test_collects_every_issue(self, validator, two_factors):
        """All problems are reported at once, in check order."""
        draft = ScoringConfig(
            factors=[f.with_weight(1.5).with_enabled(False) for f in two_factors],
            thresholds=ThresholdSet(low=0.6, medium=0.5, high=0.7, critical=0.85),
            minimum_data_points=0,
        )
        result = validator.validate(draft)

        assert not result.ok
        assert result.config is None
        assert result.codes() == [
            ValidationCode.INVALID_WEIGHT,
            ValidationCode.INVALID_WEIGHT,
            ValidationCode.NO_ACTIVE_FACTORS,
            ValidationCode.THRESHOLD_ORDER_VIOLATION,
            ValidationCode.INVALID_WINDOW_POLICY,
        ]

    def test_disabled_factor_with_bad_weight_still_flagged(self, validator, two_factors):
        """Weight range applies to disabled factors too."""
        a, b = two_factors
        result = validator.validate(ScoringConfig(factors=[a, b.with_weight(-0.2).with_enabled(False)]))

        assert result.codes() == [ValidationCode.INVALID_WEIGHT]
        assert result.issues[0].field == "factors.B.weight"

    def test_no_enabled_factors(self, validator, two_factors):
        """At least one factor must be enabled."""
        draft = ScoringConfig(factors=[f.with_enabled(False) for f in two_factors])
        assert validator.validate(draft).codes() == [ValidationCode.NO_ACTIVE_FACTORS]

    @pytest.mark.parametrize("thresholds", [
        ThresholdSet(low=0.3, medium=0.3, high=0.7, critical=0.85),
        ThresholdSet(low=0.3, medium=0.5, high=0.7, critical=1.0),
        ThresholdSet(low=0.0, medium=0.5, high=0.7, critical=0.85),
    ])
    def test_threshold_violations(self, validator, two_factors, thresholds):
        """Equal, out-of-range and boundary cut points are rejected."""
        result = validator.validate(ScoringConfig(factors=two_factors, thresholds=thresholds))
        assert ValidationCode.THRESHOLD_ORDER_VIOLATION in result.codes()

    def test_window_policy_bounds(self, validator, two_factors):
        """Both window and minimum must be at least 1."""
        draft = ScoringConfig(
            factors=two_factors, prediction_window_days=0, minimum_data_points=0
        )
        result = validator.validate(draft)

        assert result.codes() == [ValidationCode.INVALID_WINDOW_POLICY] * 2
        assert {i.field for i in result.issues} == {"minimum_data_points", "prediction_window_days"}

    def test_duplicate_ids(self, validator, two_factors):
        """Two factors with the same id cannot coexist."""
        draft = ScoringConfig(factors=two_factors + (Factor("A", "Copy", 0.1),))
        assert validator.validate(draft).codes() == [ValidationCode.DUPLICATE_FACTOR_ID]

    def test_raise_for_issues(self, validator, two_factors):
        """raise_for_issues surfaces every issue on the exception."""
        draft = ScoringConfig(factors=[f.with_enabled(False) for f in two_factors], minimum_data_points=0)

        with pytest.raises(ConfigValidationError) as exc_info:
            validator.validate(draft).raise_for_issues()
        assert len(exc_info.value.issues) == 2
        assert "At least one factor must be enabled" in str(exc_info.value)

    def test_issue_to_dict(self, validator, two_factors):
        """Issues serialize for the admin layer."""
        draft = ScoringConfig(factors=[f.with_enabled(False) for f in two_factors])
        [issue] = validator.validate(draft).issues

        assert issue.to_dict() == {
            "code": "no_active_factors",
            "message": "At least one factor must be enabled",
            "field": "factors",
        }


class TestApply:
    """Tests for pure config transitions."""

    def test_set_weight_bumps_version(self, two_factor_config):
        """A valid command yields version + 1 and leaves the input alone."""
        result = apply(two_factor_config, SetFactorWeight("A", 0.3))

        assert result.ok
        assert result.config.version == two_factor_config.version + 1
        assert result.config.get_factor("A").weight == 0.3
        assert two_factor_config.get_factor("A").weight == 0.6

    def test_invalid_weight_rejected(self, two_factor_config):
        """A draft with a bad weight never becomes a config."""
        result = apply(two_factor_config, SetFactorWeight("A", 1.2))

        assert not result.ok
        assert result.config is None
        assert result.codes() == [ValidationCode.INVALID_WEIGHT]

    def test_disable_last_factor_rejected(self, two_factor_config):
        """Disabling every factor leaves nothing to score."""
        after_a = apply(two_factor_config, SetFactorEnabled("A", False)).config
        result = apply(after_a, SetFactorEnabled("B", False))

        assert result.codes() == [ValidationCode.NO_ACTIVE_FACTORS]

    def test_disable_keeps_weight(self, two_factor_config):
        """Re-enabling restores the stored weight."""
        off = apply(two_factor_config, SetFactorEnabled("A", False)).config
        on = apply(off, SetFactorEnabled("A", True)).config

        assert off.get_factor("A").weight == 0.6
        assert on.get_factor("A") == two_factor_config.get_factor("A")
        assert on.version == two_factor_config.version + 2

    def test_add_and_remove_factor(self, two_factor_config):
        """Adding appends; removing drops by id."""
        added = apply(two_factor_config, AddFactor(Factor("C", "Factor C", 0.2))).config
        assert added.factor_ids == ["A", "B", "C"]

        removed = apply(added, RemoveFactor("A")).config
        assert removed.factor_ids == ["B", "C"]

    def test_add_duplicate_raises(self, two_factor_config):
        with pytest.raises(DuplicateFactorIdError):
            apply(two_factor_config, AddFactor(Factor("A", "Again", 0.2)))

    @pytest.mark.parametrize("command", [
        RemoveFactor("missing"),
        SetFactorWeight("missing", 0.5),
        SetFactorEnabled("missing", True),
    ])
    def test_unknown_factor_raises(self, two_factor_config, command):
        with pytest.raises(UnknownFactorError):
            apply(two_factor_config, command)

    def test_set_thresholds(self, two_factor_config):
        """New cut points are validated before use."""
        good = ThresholdSet(low=0.2, medium=0.4, high=0.6, critical=0.8)
        assert apply(two_factor_config, SetThresholds(good)).config.thresholds == good

        bad = ThresholdSet(low=0.2, medium=0.8, high=0.6, critical=0.9)
        result = apply(two_factor_config, SetThresholds(bad))
        assert result.codes() == [ValidationCode.THRESHOLD_ORDER_VIOLATION]

    def test_set_window_policy(self, two_factor_config):
        result = apply(two_factor_config, SetWindowPolicy(60, 20))

        assert result.config.prediction_window_days == 60
        assert result.config.minimum_data_points == 20

    def test_build_draft_unknown_command(self, two_factor_config):
        """Only the known command types are accepted."""
        with pytest.raises(TypeError, match="Unknown config command"):
            build_draft(two_factor_config, "set everything to zero")

    def test_build_draft_is_unvalidated(self, two_factor_config):
        """Drafts can hold invalid values so they can be reported on."""
        draft = build_draft(two_factor_config, SetFactorWeight("A", 7.0))

        assert draft.get_factor("A").weight == 7.0
        assert draft.version == two_factor_config.version

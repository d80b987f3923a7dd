"""
Unit tests for src/services/scout/weights.py
"""

import pytest
from pydantic import ValidationError

from src.services.scout.models import QualityTier, ScoreBreakdown
from src.services.scout.weights import (
    DEFAULT_WEIGHTS,
    OutreachOutcome,
    ScoutWeights,
    WeightSource,
    auto_tune,
    default_weights,
    load_weights_from_env,
    normalize_weights,
    outcome_weight,
    parse_weight,
    resolve_weights,
)


def breakdown(**overrides):
    values = dict(
        company_alignment=24,
        role_alignment=9,
        relationship=18,
        connector_influence=0,
        target_confidence=6,
        ask_fit=8,
        safety=0,
        total_before_guardrails=65,
        guardrail_penalty=0,
        quality_tier=QualityTier.MEDIUM,
    )
    values.update(overrides)
    return ScoreBreakdown(**values)


class TestScoutWeights:
    """Tests for the weight profile model."""

    def test_defaults_sum_to_100(self):
        """The default profile is normalized."""
        weights = default_weights()
        assert weights.total == 100
        assert weights.as_dict() == DEFAULT_WEIGHTS
        assert weights.source == WeightSource.DEFAULT
        assert weights.version == 1

    def test_profile_is_immutable(self):
        """Profiles cannot be edited in place."""
        with pytest.raises(ValidationError):
            default_weights().safety = 50

    def test_with_overrides_renormalizes(self):
        """Overrides merge, ignore unknown keys and bad values, and bump the version."""
        weights = default_weights().with_overrides({"company_alignment": 0, "bogus": 5, "safety": "x"})

        assert weights.company_alignment == 0
        assert weights.role_alignment == 23.68
        assert weights.safety == 7.9
        assert weights.target_confidence == 15.79
        assert weights.total == pytest.approx(100, abs=0.01)
        assert weights.source == WeightSource.MANUAL
        assert weights.version == 2

    def test_with_overrides_clamps(self):
        """Override values are clamped to [0, 100] before normalizing."""
        weights = default_weights().with_overrides({"company_alignment": 1000})
        assert weights.company_alignment == pytest.approx(100 / 176 * 100, abs=0.01)


class TestNormalizeWeights:
    """Tests for normalize_weights()."""

    def test_rescales_to_100(self):
        """Proportions are kept and the total becomes 100."""
        result = normalize_weights({"company_alignment": 50, "safety": 50})
        assert result["company_alignment"] == 50
        assert result["safety"] == 50
        assert result["role_alignment"] == 0

    def test_equal_weights_sum_exactly_to_100(self):
        """Leftover hundredths go to the first dimensions so the total stays 100."""
        result = normalize_weights({dimension: 1 for dimension in DEFAULT_WEIGHTS})

        assert list(result.values()) == [14.29, 14.29, 14.29, 14.29, 14.28, 14.28, 14.28]
        assert sum(result.values()) == pytest.approx(100, abs=1e-9)

    def test_each_weight_within_a_hundredth_of_exact_share(self):
        """Largest remainders receive the leftover; no weight drifts more than 0.01."""
        raw = {"company_alignment": 48, "role_alignment": 18, "relationship": 18,
               "connector_influence": 14, "target_confidence": 12, "ask_fit": 8, "safety": 6}

        result = normalize_weights(raw)

        assert result["company_alignment"] == 38.71
        assert result["safety"] == 4.84
        assert result["relationship"] == 14.51
        for dimension, value in raw.items():
            assert abs(result[dimension] - value / 124 * 100) <= 0.01
        assert sum(result.values()) == pytest.approx(100, abs=1e-9)

    def test_resolved_equal_overrides_total_100(self):
        """Overrides through resolve_weights keep the exact total."""
        weights = resolve_weights({dimension: 1 for dimension in DEFAULT_WEIGHTS}, environ={})
        assert weights.total == pytest.approx(100, abs=0.01)

    def test_non_positive_total_gives_defaults(self):
        """All-zero weights fall back to the defaults."""
        assert normalize_weights({}) == DEFAULT_WEIGHTS


class TestEnvironmentWeights:
    """Tests for parse_weight() and load_weights_from_env()."""

    @pytest.mark.parametrize("raw,expected", [(None, 7), ("", 7), ("abc", 7), ("12.5", 12.5), ("500", 100), ("-3", 0)])
    def test_parse_weight(self, raw, expected):
        """Blank or garbage uses the fallback; numbers clamp to [0, 100]."""
        assert parse_weight(raw, 7) == expected

    def test_no_env_means_defaults(self):
        """Without overrides the default profile is returned."""
        weights = load_weights_from_env({})
        assert weights.source == WeightSource.DEFAULT
        assert weights.as_dict() == DEFAULT_WEIGHTS

    def test_env_override_is_normalized(self):
        """One overridden dimension renormalizes the whole profile."""
        weights = load_weights_from_env({"SCOUT_V2_WEIGHT_COMPANY_ALIGNMENT": "48"})

        assert weights.source == WeightSource.ENV
        assert weights.company_alignment == 38.71
        assert weights.total == pytest.approx(100, abs=0.01)

    def test_reads_process_environment(self, monkeypatch):
        """os.environ is used when no mapping is given."""
        monkeypatch.setenv("SCOUT_V2_WEIGHT_SAFETY", "0")
        weights = load_weights_from_env()
        assert weights.safety == 0


class TestResolveWeights:
    """Tests for resolve_weights()."""

    def test_full_profile_is_used_as_is(self):
        """A ScoutWeights instance wins."""
        profile = ScoutWeights(label="custom", version=7)
        assert resolve_weights(profile, environ={"SCOUT_V2_WEIGHT_SAFETY": "90"}) is profile

    def test_partial_overrides_merge_onto_env(self):
        """A dict is merged onto the environment profile."""
        weights = resolve_weights({"ask_fit": 0}, environ={})
        assert weights.ask_fit == 0
        assert weights.source == WeightSource.MANUAL

    def test_none_uses_env(self):
        """None resolves to the environment profile."""
        assert resolve_weights(None, environ={}).as_dict() == DEFAULT_WEIGHTS


class TestOutcomeWeight:
    """Tests for outcome_weight()."""

    def test_best_and_worst(self):
        """Accepted intros weigh most, rejections least."""
        assert outcome_weight(OutreachOutcome.INTRO_ACCEPTED) == pytest.approx(1.0)
        assert outcome_weight("not_interested") == pytest.approx(0.6 / 2.2)

    def test_unknown_outcome_is_neutral(self):
        """Unknown outcomes use a zero scalar."""
        assert outcome_weight("ghosted") == pytest.approx(1.2 / 2.2)


class TestAutoTune:
    """Tests for auto_tune()."""

    def test_too_few_samples(self):
        """Below the minimum no profile is produced."""
        samples = [(breakdown(), OutreachOutcome.REPLIED)] * 4
        assert auto_tune(default_weights(), samples, min_samples=5) is None

    def test_learns_from_successful_paths(self):
        """Dimensions that were strong on successful paths gain weight; weak ones hit the floor."""
        samples = [(breakdown(), OutreachOutcome.INTRO_ACCEPTED)] * 5

        tuned = auto_tune(default_weights(), samples, min_samples=5)

        assert tuned.company_alignment == 24.39
        assert tuned.role_alignment == 12.2
        assert tuned.connector_influence == 1.22
        assert tuned.safety == 1.22
        assert tuned.source == WeightSource.AUTO_TUNED
        assert tuned.version == 2
        assert tuned.sample_size == 5
        assert tuned.total == pytest.approx(100, abs=0.01)

    def test_string_outcomes_are_accepted(self):
        """Outcomes may be given by value."""
        samples = [(breakdown(), "replied")] * 5
        assert auto_tune(default_weights(), samples) is not None

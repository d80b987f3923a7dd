"""
Unit tests for src/services/scout/models.py

Covers request validation messages and the small model helpers.
"""

import pytest
from pydantic import ValidationError

from src.common.error_handling import ScoutValidationError
from src.services.scout.models import (
    AskType,
    QualityTier,
    ScoreBreakdown,
    ScoutRequest,
    validate_scout_request,
)


class TestValidateScoutRequest:
    """Tests for validate_scout_request()."""

    def test_valid_request_is_trimmed(self):
        """Company is trimmed and blank hints become None."""
        request = validate_scout_request(
            {"target_company": "  Acme  ", "target_function": "  ", "target_title": " PM ", "limit": 10}
        )

        assert request.target_company == "Acme"
        assert request.target_function is None
        assert request.target_title == "PM"
        assert request.limit == 10

    @pytest.mark.parametrize(
        "payload",
        [{}, {"target_company": None}, {"target_company": 42}, {"target_company": "   "}],
    )
    def test_missing_company(self, payload):
        """Absent, non-string and blank companies are required errors."""
        with pytest.raises(ScoutValidationError, match="target_company is required"):
            validate_scout_request(payload)

    @pytest.mark.parametrize("company", ["A", "x" * 121])
    def test_company_length(self, company):
        """Company must be 2-120 characters after trimming."""
        with pytest.raises(ScoutValidationError, match="between 2 and 120 characters"):
            validate_scout_request({"target_company": company})

    def test_company_length_boundaries(self):
        """2 and 120 characters are accepted."""
        assert validate_scout_request({"target_company": "HP"}).target_company == "HP"
        assert len(validate_scout_request({"target_company": "x" * 120}).target_company) == 120

    @pytest.mark.parametrize("limit", [0, 101, -5, "many"])
    def test_limit_out_of_range(self, limit):
        """Limits outside 1-100 are rejected."""
        with pytest.raises(ScoutValidationError, match="limit must be a number between 1 and 100"):
            validate_scout_request({"target_company": "Acme", "limit": limit})

    def test_seed_targets_must_be_list(self):
        """A non-array seed_targets is rejected."""
        with pytest.raises(ScoutValidationError, match="seed_targets must be an array"):
            validate_scout_request({"target_company": "Acme", "seed_targets": "Taylor"})

    @pytest.mark.parametrize("seed", [{"full_name": "T"}, {"current_title": "PM"}, {"full_name": "  x "}])
    def test_seed_requires_name(self, seed):
        """Each seed needs a full_name of at least two characters."""
        with pytest.raises(ScoutValidationError, match="each seed target requires full_name"):
            validate_scout_request({"target_company": "Acme", "seed_targets": [seed]})

    def test_too_many_seeds(self):
        """At most 100 seeds are accepted."""
        seeds = [{"full_name": f"Person {i}"} for i in range(101)]
        with pytest.raises(ScoutValidationError, match="at most 100"):
            validate_scout_request({"target_company": "Acme", "seed_targets": seeds})

    def test_non_dict_payload(self):
        """Payload must be an object."""
        with pytest.raises(ScoutValidationError, match="JSON object"):
            validate_scout_request(["Acme"])

    def test_seed_names_are_trimmed(self):
        """Valid seeds keep their fields with a trimmed name."""
        request = validate_scout_request(
            {"target_company": "Acme", "seed_targets": [{"full_name": " Pat Lee ", "confidence": 0.9}]}
        )
        assert request.seed_targets[0].full_name == "Pat Lee"
        assert request.seed_targets[0].confidence == 0.9

    def test_validation_error_is_a_scout_error(self):
        """Callers can catch the base pipeline error."""
        from src.common.error_handling import ScoutError

        with pytest.raises(ScoutError):
            validate_scout_request({})


class TestModelHelpers:
    """Tests for enum helpers and immutability."""

    def test_ask_risk_order(self):
        """Context is lowest risk and referral highest."""
        assert AskType.CONTEXT.risk < AskType.INTRO.risk < AskType.REFERRAL.risk

    def test_score_breakdown_is_frozen(self):
        """Breakdowns cannot be mutated after scoring."""
        breakdown = ScoreBreakdown(
            company_alignment=24,
            role_alignment=18,
            relationship=9,
            connector_influence=7,
            target_confidence=8,
            ask_fit=6,
            safety=4,
            total_before_guardrails=76,
            guardrail_penalty=0,
            quality_tier=QualityTier.MEDIUM,
        )

        with pytest.raises(ValidationError):
            breakdown.safety = 0

    def test_request_model_direct_construction(self):
        """ScoutRequest can be constructed directly with defaults."""
        request = ScoutRequest(target_company="Acme")
        assert request.limit is None
        assert request.seed_targets is None

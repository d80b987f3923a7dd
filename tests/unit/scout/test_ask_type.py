"""
Unit tests for src/services/scout/ask_type.py
"""

import pytest

from src.services.scout.ask_type import classify_ask_type
from src.services.scout.models import AskType


class TestClassifyAskType:
    """Tests for classify_ask_type()."""

    @pytest.mark.parametrize(
        "title",
        ["Senior Technical Recruiter", "Recruiting Coordinator", "Head of Talent", "People Partner", "TA Lead"],
    )
    def test_recruiting_titles_are_referrals(self, title):
        """Recruiting and talent roles can refer."""
        assert classify_ask_type(title) == AskType.REFERRAL

    @pytest.mark.parametrize(
        "title",
        ["Engineering Manager", "Director of Sales", "Team Lead", "Head of Design", "VP Finance"],
    )
    def test_people_leaders_are_context(self, title):
        """Managers and leaders are asked for context."""
        assert classify_ask_type(title) == AskType.CONTEXT

    @pytest.mark.parametrize("title", ["Software Engineer", "Data Scientist", "Staff Engineer", "", None])
    def test_everyone_else_is_intro(self, title):
        """Other titles, including blank ones, default to an intro."""
        assert classify_ask_type(title) == AskType.INTRO

    def test_ta_only_matches_whole_word(self):
        """'ta' inside another word is not talent acquisition."""
        assert classify_ask_type("Data Analyst") == AskType.INTRO
        assert classify_ask_type("Senior TA Partner") == AskType.REFERRAL

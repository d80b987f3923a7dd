"""
Unit tests for src/common/utils.py and src/common/dedupe.py
"""

import math

import pytest

from src.common.dedupe import (
    clean_optional,
    count_token_matches,
    normalize_whitespace,
    significant_tokens,
    target_identity_key,
)
from src.common.utils import clamp, clamp01, round_half_up, run_async


class TestRoundHalfUp:
    """Tests for round_half_up()."""

    def test_ties_round_up(self):
        """Halves go up, unlike round()."""
        assert round_half_up(0.125) == 0.13
        assert round_half_up(2.5, 0) == 3

    def test_regular_rounding(self):
        """Non-ties round to nearest."""
        assert round_half_up(9.612) == 9.61
        assert round_half_up(38.7096) == 38.71


class TestClamp:
    """Tests for clamp() and clamp01()."""

    def test_clamp_bounds(self):
        """Values are limited to the range."""
        assert clamp(5, 0, 1) == 1
        assert clamp(-5, 0, 1) == 0
        assert clamp(0.3, 0, 1) == 0.3

    @pytest.mark.parametrize("value,expected", [(1.5, 1.0), (-0.5, 0.0), (math.nan, 0.0), (math.inf, 0.0)])
    def test_clamp01(self, value, expected):
        """Non-finite values become 0."""
        assert clamp01(value) == expected


class TestRunAsync:
    """Tests for run_async()."""

    def test_runs_coroutine_without_loop(self):
        """A coroutine runs to completion from sync code."""
        async def answer():
            return 42

        assert run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_runs_coroutine_inside_running_loop(self):
        """Inside a running loop the coroutine runs on a worker thread."""
        async def answer():
            return "ok"

        assert run_async(answer()) == "ok"


class TestTextNormalization:
    """Tests for the dedupe helpers."""

    def test_normalize_whitespace(self):
        """Whitespace runs collapse and the ends are trimmed."""
        assert normalize_whitespace("  Taylor \n  Candidate ") == "Taylor Candidate"
        assert normalize_whitespace(None) == ""

    def test_clean_optional(self):
        """Blank strings become None."""
        assert clean_optional("  ") is None
        assert clean_optional(None) is None
        assert clean_optional(" Acme ") == "Acme"

    def test_identity_key_prefers_url(self):
        """URLs are lowercased and lose the trailing slash."""
        assert target_identity_key("Pat", "https://WWW.linkedin.com/in/Pat/") == "https://www.linkedin.com/in/pat"

    def test_identity_key_falls_back_to_name(self):
        """Without a URL the normalized name is the key."""
        assert target_identity_key("  Pat   Lee ", "  ") == "pat lee"

    def test_significant_tokens(self):
        """Short tokens are dropped."""
        assert significant_tokens("VP of Product Ops") == ["product", "ops"]
        assert significant_tokens(None) == []

    def test_count_token_matches(self):
        """Tokens are matched as substrings, case-insensitively."""
        assert count_token_matches(["product", "manager"], "Senior PRODUCT Lead") == 1

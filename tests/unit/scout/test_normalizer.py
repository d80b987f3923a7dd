"""
Unit tests for src/services/scout/normalizer.py
"""

import math

import pytest

from src.services.scout.models import DiscoveredTarget
from src.services.scout.normalizer import (
    DEFAULT_TARGET_CONFIDENCE,
    clamp_confidence,
    normalize_and_filter_targets,
    normalize_target,
)


def target(name, confidence=None, url=None, **kwargs):
    return DiscoveredTarget(full_name=name, confidence=confidence, linkedin_url=url, **kwargs)


class TestClampConfidence:
    """Tests for clamp_confidence()."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, DEFAULT_TARGET_CONFIDENCE),
            (math.nan, DEFAULT_TARGET_CONFIDENCE),
            ("0.9", DEFAULT_TARGET_CONFIDENCE),
            (True, DEFAULT_TARGET_CONFIDENCE),
            (1.7, 1.0),
            (-0.2, 0.0),
            (math.inf, 1.0),
            (-math.inf, 0.0),
            (0.42, 0.42),
        ],
    )
    def test_clamp(self, raw, expected):
        """Missing values use the default; numbers clamp to [0, 1]."""
        assert clamp_confidence(raw) == expected


class TestNormalizeTarget:
    """Tests for normalize_target()."""

    def test_blank_name_is_dropped(self):
        """Whitespace-only names yield None."""
        assert normalize_target(target("   ")) is None

    def test_fields_are_cleaned(self):
        """Whitespace collapses and blank optionals become None."""
        result = normalize_target(target("  Pat \n Lee ", current_title="  ", current_company=" Acme "))

        assert result.full_name == "Pat Lee"
        assert result.current_title is None
        assert result.current_company == "Acme"
        assert result.confidence == DEFAULT_TARGET_CONFIDENCE


class TestNormalizeAndFilterTargets:
    """Tests for normalize_and_filter_targets()."""

    def test_filters_below_floor(self):
        """Targets under the floor are dropped; equal to the floor is kept."""
        results = normalize_and_filter_targets(
            [target("Low Person", 0.3), target("Edge Person", 0.45)], min_confidence=0.45, max_results=10
        )
        assert [r.full_name for r in results] == ["Edge Person"]

    def test_dedupes_by_url_keeping_higher_confidence(self):
        """Same profile URL keeps the more confident record."""
        results = normalize_and_filter_targets(
            [
                target("Pat Lee", 0.6, url="https://www.linkedin.com/in/pat/"),
                target("Patrick Lee", 0.8, url="https://WWW.linkedin.com/in/pat"),
            ],
            min_confidence=0.0,
            max_results=10,
        )

        assert len(results) == 1
        assert results[0].full_name == "Patrick Lee"
        assert results[0].confidence == 0.8

    def test_dedupes_by_name_when_url_missing(self):
        """Without URLs, names are compared case-insensitively."""
        results = normalize_and_filter_targets(
            [target("Pat Lee", 0.7), target("pat  lee", 0.7)], min_confidence=0.0, max_results=10
        )

        assert len(results) == 1
        # Equal confidence does not replace the first record
        assert results[0].full_name == "Pat Lee"

    def test_orders_by_confidence_with_stable_ties(self):
        """Descending confidence; ties keep input order."""
        results = normalize_and_filter_targets(
            [target("Alpha One", 0.6), target("Bravo Two", 0.9), target("Charlie Three", 0.6)],
            min_confidence=0.0,
            max_results=10,
        )
        assert [r.full_name for r in results] == ["Bravo Two", "Alpha One", "Charlie Three"]

    def test_truncates_to_max_results(self):
        """Only the top max_results are returned."""
        results = normalize_and_filter_targets(
            [target(f"Person {i}", 0.5 + i / 100) for i in range(5)], min_confidence=0.0, max_results=2
        )
        assert [r.full_name for r in results] == ["Person 4", "Person 3"]

    def test_all_confidences_in_unit_interval(self):
        """Output confidences are always within [0, 1]."""
        results = normalize_and_filter_targets(
            [target("Big Number", 7.0), target("No Number"), target("Negative", -1.0)],
            min_confidence=0.0,
            max_results=10,
        )
        assert all(0.0 <= r.confidence <= 1.0 for r in results)
        assert [r.confidence for r in results] == [1.0, DEFAULT_TARGET_CONFIDENCE, 0.0]

    def test_second_pass_changes_nothing(self):
        """Normalizing already-normalized output returns the same targets in the same order."""
        raw = [
            target("  Pat   Lee ", 0.7, "https://www.linkedin.com/in/Pat-Lee/", current_company=" Acme "),
            target("Pat Lee", 0.9, "https://WWW.linkedin.com/in/pat-lee"),
            target("Gil Moss", 1.8),
            target("gil  moss", 0.4),
            target("Eve Park", None, current_title="  "),
            target("Ray Low", -0.3),
            target("Sky High", 0.75, "https://www.linkedin.com/in/sky-high"),
            target("Amy Tie", 0.75),
            target("   "),
        ]

        first = normalize_and_filter_targets(raw, min_confidence=0.0, max_results=4)
        second = normalize_and_filter_targets(first, min_confidence=0.0, max_results=4)

        assert [t.full_name for t in first] == ["Gil Moss", "Pat Lee", "Sky High", "Amy Tie"]
        assert [t.model_dump() for t in second] == [t.model_dump() for t in first]

"""
Unit tests for src/services/scout/providers/static_provider.py
"""

import json

import pytest

from src.services.scout.models import DiscoveredTarget
from src.services.scout.providers import StaticScoutProvider, parse_static_targets
from src.services.scout.providers.static_provider import STATIC_TARGET_CONFIDENCE

STATIC_TARGETS = [
    {"full_name": "Pat Product", "current_title": "Senior Product Manager", "current_company": "Acme", "confidence": 0.7},
    {"full_name": "Eve Engineer", "current_title": "Staff Engineer", "current_company": "Acme", "confidence": 0.9},
    {"full_name": "Gil Globex", "current_title": "Product Manager", "current_company": "Globex"},
    {"full_name": "Nobody Related", "current_title": "Chef", "current_company": "Bistro"},
]


class TestParseStaticTargets:
    """Tests for parse_static_targets()."""

    @pytest.mark.parametrize("text", [None, "", "   ", "{not json", '{"full_name": "Pat"}'])
    def test_invalid_input_is_empty(self, text):
        """Blank, malformed and non-array JSON all give an empty list."""
        assert parse_static_targets(text) == []

    def test_drops_malformed_entries(self):
        """Non-objects and one-character names are dropped."""
        text = json.dumps([{"full_name": "P"}, "Pat", {"full_name": "  Pat Lee  "}, {"title": "x"}])

        targets = parse_static_targets(text)

        assert [t.full_name for t in targets] == ["Pat Lee"]

    def test_confidence_defaults_and_clamps(self):
        """Missing confidence defaults to 0.65; out-of-range values clamp."""
        targets = parse_static_targets(
            json.dumps([{"full_name": "Pat Lee"}, {"full_name": "Max Conf", "confidence": 3}])
        )
        assert targets[0].confidence == STATIC_TARGET_CONFIDENCE
        assert targets[1].confidence == 1.0


class TestStaticScoutProvider:
    """Tests for StaticScoutProvider."""

    def test_configured_only_with_targets(self):
        """An empty list is not configured."""
        assert StaticScoutProvider([]).is_configured() is False
        assert StaticScoutProvider(STATIC_TARGETS).is_configured() is True

    def test_default_and_custom_name(self):
        """Name defaults to static_seed; blank names fall back too."""
        assert StaticScoutProvider([]).name == "static_seed"
        assert StaticScoutProvider([], name="  ").name == "static_seed"
        assert StaticScoutProvider([], name="demo").name == "demo"

    def test_match_score_components(self):
        """Company +3, function +2, title tokens up to +2."""
        provider = StaticScoutProvider()
        person = DiscoveredTarget(full_name="Pat", current_title="Senior Product Manager", current_company="Acme Inc")

        assert provider.match_score(person, "acme") == 3
        assert provider.match_score(person, "acme", "product") == 5
        assert provider.match_score(person, "acme", "product", "Senior Product Manager") == 7
        assert provider.match_score(person, "Globex", None, "Product Lead") == 1

    @pytest.mark.asyncio
    async def test_search_ranks_by_score_then_confidence(self):
        """Better matches first; zero-score entries excluded."""
        provider = StaticScoutProvider(STATIC_TARGETS)

        results = await provider.search("Acme", "product", "Product Manager", limit=10)

        assert [r.full_name for r in results] == ["Pat Product", "Gil Globex", "Eve Engineer"]
        assert all(r.match_reason == "static_seed_match" for r in results)

    @pytest.mark.asyncio
    async def test_search_ties_break_on_confidence(self):
        """Equal scores rank the more confident target first."""
        provider = StaticScoutProvider(STATIC_TARGETS)

        results = await provider.search("Acme", limit=10)

        assert [r.full_name for r in results] == ["Eve Engineer", "Pat Product"]

    @pytest.mark.asyncio
    async def test_search_respects_limit(self):
        """At most limit targets are returned."""
        provider = StaticScoutProvider(STATIC_TARGETS)
        assert len(await provider.search("Acme", limit=1)) == 1
        assert await provider.search("Acme", limit=0) == []

    @pytest.mark.asyncio
    async def test_existing_match_reason_is_kept(self):
        """A configured match_reason is not overwritten."""
        provider = StaticScoutProvider([{"full_name": "Pat Lee", "current_company": "Acme", "match_reason": "alumni"}])
        results = await provider.search("Acme")
        assert results[0].match_reason == "alumni"

    def test_from_json(self):
        """from_json parses the env payload."""
        provider = StaticScoutProvider.from_json(json.dumps(STATIC_TARGETS), name="demo")
        assert provider.name == "demo"
        assert len(provider.targets) == 4

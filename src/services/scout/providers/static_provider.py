"""
Static seed provider: matches the query against a configured list of people.

The list usually comes from ``SCOUT_STATIC_TARGETS_JSON`` and is useful for
demos, tests, and users without a LinkedIn session.
"""

import json
import logging
from typing import Any, List, Optional

from src.common.dedupe import clean_optional, significant_tokens
from src.services.scout.models import DiscoveredTarget
from src.services.scout.normalizer import clamp_confidence
from src.services.scout.providers import ScoutProvider

logger = logging.getLogger(__name__)

STATIC_TARGET_CONFIDENCE = 0.65
UNRANKED_CONFIDENCE = 0.6


def _normalize_static_target(raw: Any) -> Optional[DiscoveredTarget]:
    if isinstance(raw, DiscoveredTarget):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return None

    full_name = raw.get("full_name")
    full_name = full_name.strip() if isinstance(full_name, str) else ""
    if len(full_name) <= 1:
        return None

    def text(key: str) -> Optional[str]:
        value = raw.get(key)
        return clean_optional(value) if isinstance(value, str) else None

    return DiscoveredTarget(
        full_name=full_name,
        headline=text("headline"),
        current_company=text("current_company"),
        current_title=text("current_title"),
        linkedin_url=text("linkedin_url"),
        confidence=clamp_confidence(raw.get("confidence"), default=STATIC_TARGET_CONFIDENCE),
        match_reason=text("match_reason"),
    )


def normalize_static_targets(targets: List[Any]) -> List[DiscoveredTarget]:
    """Drop malformed entries and names of one character or less."""
    normalized = (_normalize_static_target(target) for target in targets)
    return [target for target in normalized if target is not None]


def parse_static_targets(json_text: Optional[str]) -> List[DiscoveredTarget]:
    """
    Parse a JSON array of targets.

    Blank input, invalid JSON and non-array JSON all yield an empty list.
    """
    if not json_text or not json_text.strip():
        return []

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring static scout targets: invalid JSON ({e})")
        return []

    if not isinstance(parsed, list):
        logger.warning("Ignoring static scout targets: expected a JSON array")
        return []

    return normalize_static_targets(parsed)


class StaticScoutProvider(ScoutProvider):
    """Ranks a fixed list of people against the requested company, function and title."""

    def __init__(self, targets: Optional[List[Any]] = None, name: Optional[str] = None):
        self.name = (name or "").strip() or "static_seed"
        self.targets = normalize_static_targets(targets or [])

    @classmethod
    def from_json(cls, json_text: Optional[str], name: str = "static_seed") -> "StaticScoutProvider":
        return cls(targets=parse_static_targets(json_text), name=name)

    def is_configured(self) -> bool:
        return len(self.targets) > 0

    def match_score(
        self,
        target: DiscoveredTarget,
        target_company: str,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
    ) -> int:
        """
        Score one target: +3 company, +2 function, up to +2 for title tokens.
        """
        title = f"{target.current_title or ''} {target.headline or ''}".lower()
        company = (target.current_company or "").lower()

        score = 0
        if target_company.lower() in company:
            score += 3
        if target_function and target_function.lower() in title:
            score += 2
        if target_title:
            token_matches = sum(1 for token in significant_tokens(target_title) if token in title)
            score += min(2, token_matches)
        return score

    async def search(
        self,
        target_company: str,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        limit: int = 25,
    ) -> List[DiscoveredTarget]:
        if not self.is_configured() or limit <= 0:
            return []

        scored = [
            (self.match_score(target, target_company, target_function, target_title), target)
            for target in self.targets
        ]
        scored = [(score, target) for score, target in scored if score > 0]
        scored.sort(
            key=lambda item: (
                item[0],
                item[1].confidence if item[1].confidence is not None else UNRANKED_CONFIDENCE,
            ),
            reverse=True,
        )

        return [
            target.model_copy(update={"match_reason": target.match_reason or "static_seed_match"})
            for _, target in scored[:limit]
        ]

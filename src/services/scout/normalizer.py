"""
Confidence normalization for discovered targets.

Every provider returns raw ``DiscoveredTarget`` objects with optional,
unvalidated confidence. Before anything is persisted the candidates are
cleaned, filtered by the confidence floor, de-duplicated by identity and
ranked, so downstream code only ever sees targets with a confidence in [0, 1].
"""

import math
from typing import Any, Dict, List, Optional

from src.common.dedupe import clean_optional, normalize_whitespace, target_identity_key
from src.services.scout.models import DiscoveredTarget

DEFAULT_TARGET_CONFIDENCE = 0.6


def clamp_confidence(value: Any, default: float = DEFAULT_TARGET_CONFIDENCE) -> float:
    """
    Clamp a raw confidence into [0, 1].

    None, NaN and non-numeric values become ``default``; infinities clamp to
    the nearest bound.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value):
        return default
    return max(0.0, min(1.0, float(value)))


def normalize_target(target: DiscoveredTarget) -> Optional[DiscoveredTarget]:
    """Return a cleaned copy of the target, or None when it has no usable name."""
    full_name = normalize_whitespace(target.full_name)
    if not full_name:
        return None

    return target.model_copy(
        update={
            "full_name": full_name,
            "confidence": clamp_confidence(target.confidence),
            "current_company": clean_optional(target.current_company),
            "current_title": clean_optional(target.current_title),
            "headline": clean_optional(target.headline),
            "linkedin_url": clean_optional(target.linkedin_url),
        }
    )


def normalize_and_filter_targets(
    targets: List[DiscoveredTarget],
    min_confidence: float,
    max_results: int,
) -> List[DiscoveredTarget]:
    """
    Clean, filter, de-duplicate and rank discovered targets.

    Args:
        targets: Raw provider output
        min_confidence: Targets below this (clamped) confidence are dropped
        max_results: Maximum number of targets returned

    Returns:
        Targets ordered by confidence descending. Ties keep first-seen order
        and a later duplicate only replaces an earlier one when its
        confidence is strictly higher.
    """
    deduped: Dict[str, DiscoveredTarget] = {}

    for target in targets:
        normalized = normalize_target(target)
        if normalized is None:
            continue
        if normalized.confidence < min_confidence:
            continue

        key = target_identity_key(normalized.full_name, normalized.linkedin_url)
        existing = deduped.get(key)
        if existing is None or existing.confidence < normalized.confidence:
            deduped[key] = normalized

    # sorted() is stable, so equal confidences keep insertion order
    ranked = sorted(deduped.values(), key=lambda t: t.confidence, reverse=True)
    return ranked[:max(0, max_results)]

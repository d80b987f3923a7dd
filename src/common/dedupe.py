"""
Unified Deduplication and Text Normalization Module

Single source of truth for the identity key of a discovered person and for the
light-weight title/company normalization shared by providers and the scorer.
Prioritizes the profile URL (stable, unique) over the name (text-based).

Usage:
    from src.common.dedupe import target_identity_key

    # With profile URL (preferred - robust):
    key = target_identity_key("Taylor Candidate", "https://www.linkedin.com/in/taylor/")
    # Result: "https://www.linkedin.com/in/taylor"

    # Fallback (name-based):
    key = target_identity_key("  Taylor   Candidate ")
    # Result: "taylor candidate"
"""

import re
from typing import List, Optional


def normalize_whitespace(text: Optional[str]) -> str:
    """
    Collapse runs of whitespace to a single space and trim.

    Examples:
        >>> normalize_whitespace("  Taylor \\n  Candidate ")
        'Taylor Candidate'
        >>> normalize_whitespace(None)
        ''
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def clean_optional(text: Optional[str]) -> Optional[str]:
    """Trim an optional string field; blank becomes None."""
    if text is None:
        return None
    stripped = text.strip()
    return stripped or None


def target_identity_key(full_name: str, profile_url: Optional[str] = None) -> str:
    """
    Generate the identity key for a discovered target.

    Priority:
    1. Profile URL if present: lowercased, trimmed, trailing slash removed
    2. Fallback: lowercased whitespace-normalized name

    Args:
        full_name: Target name
        profile_url: Optional profile URL

    Returns:
        Identity key string
    """
    url = (profile_url or "").strip().lower()
    if url:
        return url.rstrip("/")
    return normalize_whitespace(full_name).lower().rstrip("/")


def significant_tokens(text: Optional[str], min_length: int = 3) -> List[str]:
    """
    Split lowercased text on whitespace keeping tokens of at least min_length.

    Used for title-token overlap: "Senior Product Manager" -> ["senior", "product", "manager"].
    """
    if not text:
        return []
    return [token for token in text.lower().split() if len(token) >= min_length]


def count_token_matches(tokens: List[str], haystack: str) -> int:
    """Number of tokens that occur as substrings of the (lowercased) haystack."""
    lowered = haystack.lower()
    return sum(1 for token in tokens if token in lowered)

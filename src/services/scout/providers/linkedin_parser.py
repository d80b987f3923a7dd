"""
LinkedIn people-search HTML parser.

Extracts second-degree candidates from the HTML returned by
``https://www.linkedin.com/search/results/people/``. LinkedIn ships several
page shapes, so three strategies are tried in order on the same document and
their results merged (de-duplicated by profile URL):

1. Result blocks - ``<li class="reusable-search__result-container">``
2. Embedded JSON - ``firstName`` / ``lastName`` / ``publicIdentifier`` records
3. Bare profile anchors that sit inside search-result markup

Every function here is pure: HTML in, ``DiscoveredTarget`` list out.
"""

import re
from dataclasses import dataclass
from html import unescape
from typing import List, Optional, Set
from urllib.parse import unquote, urlsplit, urlunsplit

from bs4 import BeautifulSoup, Tag

from src.common.dedupe import normalize_whitespace, significant_tokens
from src.common.utils import clamp, round_half_up
from src.services.scout.models import DiscoveredTarget

LINKEDIN_BASE_URL = "https://www.linkedin.com"

# Embedded JSON records; occupation is optional and must belong to the same record
JSON_BLOB_PATTERN = re.compile(
    r'"firstName"\s*:\s*"([^"]+)"[\s\S]{0,700}?'
    r'"lastName"\s*:\s*"([^"]+)"[\s\S]{0,700}?'
    r'"publicIdentifier"\s*:\s*"([^"]+)"'
    r'(?:(?:(?!"firstName")[\s\S]){0,1200}?"occupation"\s*:\s*"([^"]+)")?',
    re.IGNORECASE,
)

SEARCH_RESULT_MARKUP = re.compile(r"entity-result|search-result|reusable-search", re.IGNORECASE)

NAVIGATION_TERMS = (
    "linkedin",
    "search",
    "learning",
    "advertising",
    "try premium",
    "view profile",
    "message",
    "connect",
)


@dataclass(frozen=True)
class SearchHints:
    """What the seeker asked for; drives the confidence estimate."""
    target_company: str
    target_function: Optional[str] = None
    target_title: Optional[str] = None


def normalize_profile_url(value: str) -> Optional[str]:
    """
    Canonicalize a profile link to ``https://www.linkedin.com/in/<slug>``.

    Relative links are made absolute; query string, fragment and trailing
    slash are dropped. Returns None for anything that is not a profile link.
    """
    trimmed = (value or "").strip()
    if "/in/" not in trimmed:
        return None

    if trimmed.startswith("http"):
        absolute = trimmed
    else:
        absolute = f"{LINKEDIN_BASE_URL}{'' if trimmed.startswith('/') else '/'}{trimmed}"

    try:
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if not parts.netloc:
        return None

    path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    return urlunsplit((parts.scheme, parts.netloc.lower(), path, "", ""))


def name_from_profile_url(url_or_path: str) -> str:
    """
    Derive a display name from a profile slug.

    Examples:
        >>> name_from_profile_url("/in/taylor-candidate-1234/")
        'Taylor Candidate'
    """
    absolute = normalize_profile_url(url_or_path)
    if not absolute:
        return ""

    segments = [segment for segment in urlsplit(absolute).path.split("/") if segment]
    slug = segments[1] if len(segments) > 1 else ""
    if not slug:
        return ""

    cleaned = re.sub(r"[0-9]+", " ", unquote(slug))
    cleaned = re.sub(r"[-_]+", " ", cleaned).strip()
    tokens = [token for token in cleaned.split() if len(token) > 1]
    return " ".join(token[0].upper() + token[1:] for token in tokens)


def is_likely_navigation_name(name: str) -> bool:
    """True for link texts like "View profile" or "LinkedIn Learning"."""
    if len(name) < 3 or len(name) > 80:
        return True
    lowered = name.lower()
    return any(term in lowered for term in NAVIGATION_TERMS)


def estimate_confidence(subtitle: str, company_line: str, hints: SearchHints) -> float:
    """
    Heuristic confidence that a search hit really is the person we want.

    Base 0.4; +0.3 when the company line names the target company; +0.15 when
    the subtitle names the target function; up to +0.2 for title-token hits.
    Result rounded to 2 dp and kept within [0.2, 0.95].
    """
    score = 0.4
    title = subtitle.lower()
    company = company_line.lower()

    if hints.target_company.lower() in company:
        score += 0.3

    if hints.target_function and hints.target_function.lower() in title:
        score += 0.15

    if hints.target_title:
        token_matches = sum(
            1 for token in significant_tokens(hints.target_title) if token in title
        )
        if token_matches > 0:
            score += min(0.2, token_matches * 0.06)

    return clamp(round_half_up(score, 2), 0.2, 0.95)


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return normalize_whitespace(element.get_text(" ", strip=True))


def _build_target(
    full_name: str,
    subtitle: str,
    company_line: str,
    linkedin_url: str,
    hints: SearchHints,
    match_reason: str,
) -> DiscoveredTarget:
    return DiscoveredTarget(
        full_name=full_name,
        headline=subtitle or None,
        current_title=subtitle or None,
        current_company=company_line or None,
        linkedin_url=linkedin_url,
        confidence=estimate_confidence(subtitle, company_line, hints),
        match_reason=match_reason,
    )


# ===== Strategy 1: result blocks =====

def _extract_block_name(block: Tag, profile_anchor: Tag, url: str) -> str:
    """Name from the title element, else the profile anchor text, else the slug."""
    # Primary: visible title text (the aria-hidden span holds the clean name)
    title_elem = block.find(class_=re.compile(r"entity-result__title-text"))
    if title_elem is not None:
        hidden = title_elem.find(attrs={"aria-hidden": "true"})
        name = _text(hidden) or _text(title_elem)
        if name:
            return name

    # Fallback: the profile link itself
    name = _text(profile_anchor)
    if name:
        return name

    return name_from_profile_url(url)


def _extract_block_subtitle(block: Tag) -> str:
    subtitle = block.find(class_=re.compile(r"entity-result__primary-subtitle"))
    if subtitle is None:
        subtitle = block.select_one(".t-14.t-black.t-normal")
    return _text(subtitle)


def _extract_block_company(block: Tag) -> str:
    company = block.find(class_=re.compile(r"entity-result__secondary-subtitle"))
    if company is None:
        company = block.find(class_=re.compile(r"entity-result__summary"))
    return _text(company)


def parse_result_block(block: Tag, hints: SearchHints) -> Optional[DiscoveredTarget]:
    """Parse a single ``reusable-search__result-container`` element."""
    profile_anchor = block.find("a", href=re.compile(r"/in/"))
    if profile_anchor is None:
        return None

    url = normalize_profile_url(profile_anchor.get("href", ""))
    if not url:
        return None

    name = _extract_block_name(block, profile_anchor, url)
    if not name or is_likely_navigation_name(name):
        return None

    return _build_target(
        name,
        _extract_block_subtitle(block),
        _extract_block_company(block),
        url,
        hints,
        "linkedin_search_html",
    )


def parse_result_blocks(soup: BeautifulSoup, hints: SearchHints, limit: int) -> List[DiscoveredTarget]:
    """Candidates from ``<li class="reusable-search__result-container">`` blocks."""
    results: List[DiscoveredTarget] = []
    seen_urls: Set[str] = set()

    for block in soup.find_all("li", class_=re.compile(r"reusable-search__result-container")):
        if len(results) >= limit:
            break
        candidate = parse_result_block(block, hints)
        if candidate is None or candidate.linkedin_url in seen_urls:
            continue
        seen_urls.add(candidate.linkedin_url)
        results.append(candidate)

    return results


# ===== Strategy 2: embedded JSON =====

def parse_json_blob(html: str, hints: SearchHints, limit: int) -> List[DiscoveredTarget]:
    """Candidates from profile records embedded in page JSON."""
    results: List[DiscoveredTarget] = []

    for match in JSON_BLOB_PATTERN.finditer(html):
        if len(results) >= limit:
            break

        first_name = normalize_whitespace(match.group(1))
        last_name = normalize_whitespace(match.group(2))
        public_identifier = normalize_whitespace(match.group(3))
        occupation = normalize_whitespace(unescape(match.group(4) or ""))

        full_name = normalize_whitespace(f"{first_name} {last_name}")
        if not full_name or not public_identifier:
            continue

        url = normalize_profile_url(f"/in/{public_identifier}")
        if not url:
            continue

        results.append(
            _build_target(full_name, occupation, occupation, url, hints, "linkedin_json_blob")
        )

    return results


# ===== Strategy 3: bare anchors =====

def _has_result_class(element: Tag) -> bool:
    return bool(SEARCH_RESULT_MARKUP.search(" ".join(element.get("class") or [])))


def _profile_urls(element: Tag) -> Set[str]:
    urls = set()
    for link in element.find_all("a", href=re.compile(r"/in/")):
        url = normalize_profile_url(link.get("href", ""))
        if url:
            urls.add(url)
    return urls


def _search_result_context(anchor: Tag, url: str) -> Optional[Tag]:
    """
    The widest ancestor below ``body`` that links no other profile, when the
    anchor sits in search-result markup.

    Markup counts when that ancestor or anything inside it carries a result
    class, or when any ancestor up to ``body`` is itself a result container.
    """
    context: Optional[Tag] = None
    inside_results = False
    shared = False
    for ancestor in anchor.parents:
        if ancestor.name in ("body", "html", "[document]"):
            break
        inside_results = inside_results or _has_result_class(ancestor)
        if not shared:
            shared = bool(_profile_urls(ancestor) - {url})
        if not shared:
            context = ancestor

    if context is None:
        return None
    if inside_results or context.find(class_=SEARCH_RESULT_MARKUP):
        return context
    return None


def parse_anchor_fallback(soup: BeautifulSoup, hints: SearchHints, limit: int) -> List[DiscoveredTarget]:
    """Candidates from profile anchors found inside search-result markup."""
    results: List[DiscoveredTarget] = []
    seen_urls: Set[str] = set()

    for anchor in soup.find_all("a", href=re.compile(r"/in/")):
        if len(results) >= limit:
            break

        href = anchor.get("href", "")
        name = _text(anchor) or name_from_profile_url(href)
        if not name or is_likely_navigation_name(name):
            continue

        url = normalize_profile_url(href)
        if not url or url in seen_urls:
            continue

        context = _search_result_context(anchor, url)
        if context is None:
            continue

        subtitle = _text(context.find(class_=re.compile(r"entity-result__primary-subtitle")))
        company_line = _text(context.find(class_=re.compile(r"entity-result__secondary-subtitle")))

        seen_urls.add(url)
        results.append(
            _build_target(name, subtitle, company_line, url, hints, "linkedin_search_html_fallback")
        )

    return results


def _identity(candidate: DiscoveredTarget) -> str:
    return candidate.linkedin_url or candidate.full_name.lower()


def _merge(
    output: List[DiscoveredTarget],
    seen: Set[str],
    candidates: List[DiscoveredTarget],
    limit: int,
) -> None:
    for candidate in candidates:
        if len(output) >= limit:
            return
        key = _identity(candidate)
        if key in seen:
            continue
        seen.add(key)
        output.append(candidate)


def parse_second_degree_results_from_html(
    html: str,
    target_company: str,
    target_function: Optional[str] = None,
    target_title: Optional[str] = None,
    limit: int = 25,
) -> List[DiscoveredTarget]:
    """
    Parse a LinkedIn people-search page into discovered targets.

    Strategies are tried in order and later ones only fill remaining slots.

    Args:
        html: Raw search page HTML (empty string allowed)
        target_company: Company the seeker asked for
        target_function: Optional function hint
        target_title: Optional title hint
        limit: Maximum number of candidates

    Returns:
        At most ``limit`` candidates, unique by profile URL.
    """
    if not html or limit <= 0:
        return []

    hints = SearchHints(target_company, target_function, target_title)
    soup = BeautifulSoup(html, "html.parser")

    output = parse_result_blocks(soup, hints, limit)
    seen = {_identity(candidate) for candidate in output}

    # Later strategies may re-find earlier hits, so ask them for extra
    if len(output) < limit:
        _merge(output, seen, parse_json_blob(html, hints, limit + len(output)), limit)
    if len(output) < limit:
        _merge(output, seen, parse_anchor_fallback(soup, hints, limit + len(output)), limit)

    return output[:limit]

"""
LinkedIn Scout Provider

Finds second-degree connections at a company by running LinkedIn people
searches with the seeker's own ``li_at`` session cookie.

Flow per search:
1. Check the session (GET /feed/ without following redirects; only 200 is usable)
2. Build query candidates ("<company> <function> <title>", then "<company>")
3. For each query: wait on the shared request clock, fetch the search page,
   parse it and merge new candidates until the limit is reached

A dead or missing session yields an empty result rather than an error, so the
orchestrator moves on to the next provider. Timeouts and transport errors on
the search request itself propagate and are recorded as an ``error`` attempt.
"""

import logging
from typing import Dict, List, Optional, Set

import httpx

from src.common.rate_limiter import RequestClock, get_request_clock
from src.services.scout.models import DiscoveredTarget
from src.services.scout.providers import ScoutProvider
from src.services.scout.providers.linkedin_parser import parse_second_degree_results_from_html

logger = logging.getLogger(__name__)

LINKEDIN_FEED_URL = "https://www.linkedin.com/feed/"
LINKEDIN_PEOPLE_SEARCH_URL = "https://www.linkedin.com/search/results/people/"

DEFAULT_REQUEST_TIMEOUT_MS = 15000
DEFAULT_MIN_DELAY_MS = 1200

# User agent to mimic browser (LinkedIn blocks raw requests)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

SEARCH_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": LINKEDIN_FEED_URL,
}


def build_query_candidates(
    target_company: str,
    target_function: Optional[str] = None,
    target_title: Optional[str] = None,
) -> List[str]:
    """
    Search strings to try, most specific first.

    Examples:
        >>> build_query_candidates("Acme", "product", "PM")
        ['Acme product PM', 'Acme']
        >>> build_query_candidates("Acme")
        ['Acme']
    """
    parts = [value for value in (target_company, target_function, target_title) if value and value.strip()]
    candidates = [" ".join(parts).strip(), target_company.strip()]

    unique: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


class LinkedInScoutProvider(ScoutProvider):
    """People search through an authenticated LinkedIn session."""

    name = "linkedin_li_at"

    def __init__(
        self,
        li_at: Optional[str] = None,
        request_timeout_ms: Optional[float] = None,
        min_delay_ms: Optional[float] = None,
        clock: Optional[RequestClock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            li_at: LinkedIn session cookie value; blank means not configured
            request_timeout_ms: Per-request timeout (default 15000)
            min_delay_ms: Minimum spacing between search requests (default 1200)
            clock: Shared request clock (defaults to the process-wide one)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.li_at = (li_at or "").strip()
        timeout_ms = DEFAULT_REQUEST_TIMEOUT_MS if request_timeout_ms is None else request_timeout_ms
        delay_ms = DEFAULT_MIN_DELAY_MS if min_delay_ms is None else min_delay_ms
        self.request_timeout_seconds = max(0.001, timeout_ms / 1000)
        self.min_delay_seconds = max(0.0, delay_ms / 1000)
        self.clock = clock or get_request_clock(self.min_delay_seconds)
        self._transport = transport

    def is_configured(self) -> bool:
        return len(self.li_at) > 0

    def _session_headers(self) -> Dict[str, str]:
        return {**HEADERS, "Cookie": f"li_at={self.li_at}"}

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.request_timeout_seconds,
            headers=self._session_headers(),
            transport=self._transport,
        )

    async def search(
        self,
        target_company: str,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        limit: int = 25,
    ) -> List[DiscoveredTarget]:
        if not self.is_configured() or limit <= 0:
            return []

        async with self._create_client() as client:
            if not await self._validate_session(client):
                logger.warning("LinkedIn session check failed; li_at cookie is expired or blocked")
                return []

            results: List[DiscoveredTarget] = []
            seen: Set[str] = set()

            for query in build_query_candidates(target_company, target_function, target_title):
                if len(results) >= limit:
                    break

                await self.clock.wait_async(self.min_delay_seconds)
                html = await self._fetch_search_html(client, query)
                parsed = parse_second_degree_results_from_html(
                    html,
                    target_company=target_company,
                    target_function=target_function,
                    target_title=target_title,
                    limit=limit - len(results),
                )
                logger.debug(f"LinkedIn query {query!r} parsed {len(parsed)} candidates")

                for candidate in parsed:
                    if candidate.match_reason is None:
                        candidate = candidate.model_copy(
                            update={"match_reason": f"linkedin_search:{query}"}
                        )

                    dedupe_key = candidate.linkedin_url or candidate.full_name.lower()
                    if dedupe_key in seen:
                        continue

                    seen.add(dedupe_key)
                    results.append(candidate)
                    if len(results) >= limit:
                        break

            return results

    async def _validate_session(self, client: httpx.AsyncClient) -> bool:
        """Only a plain 200 from the feed means the cookie is live."""
        try:
            response = await client.get(LINKEDIN_FEED_URL, follow_redirects=False)
        except httpx.HTTPError as e:
            logger.warning(f"LinkedIn session check errored: {e!r}")
            return False

        if response.status_code == 200:
            return True

        if response.is_redirect:
            logger.info(f"LinkedIn session check redirected ({response.status_code}); treating session as invalid")
        return False

    async def _fetch_search_html(self, client: httpx.AsyncClient, query: str) -> str:
        """
        Fetch one people-search page.

        Returns:
            Page HTML, or "" for non-2xx responses and login redirects

        Raises:
            httpx.TimeoutException: Request exceeded the configured timeout
            httpx.HTTPError: Transport failure
        """
        response = await client.get(
            LINKEDIN_PEOPLE_SEARCH_URL,
            params={
                "keywords": query,
                "network": '["S"]',
                "origin": "GLOBAL_SEARCH_HEADER",
            },
            headers=SEARCH_HEADERS,
            follow_redirects=True,
        )

        if not response.is_success or "/login" in str(response.url):
            logger.info(f"LinkedIn search for {query!r} returned HTTP {response.status_code} at {response.url}")
            return ""

        return response.text

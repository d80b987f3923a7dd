"""
Provider chain factory.

Builds the ordered provider chain from an order string such as
``"static_seed, linkedin_li_at"``. Names are case-insensitive; unknown names
and repeats are skipped.
"""

import logging
from typing import Callable, Dict, List, Optional

from src.common.config import Config
from src.common.rate_limiter import RequestClock
from src.services.scout.providers import LinkedInScoutProvider, ScoutProvider, StaticScoutProvider, parse_static_targets

logger = logging.getLogger(__name__)

LINKEDIN_PROVIDER = LinkedInScoutProvider.name
STATIC_PROVIDER = "static_seed"

DEFAULT_PROVIDER_ORDER: List[str] = [LINKEDIN_PROVIDER, STATIC_PROVIDER]


def parse_provider_order(value: Optional[str]) -> List[str]:
    """Split a comma-separated order string into lowercased, non-blank names."""
    if not value or not value.strip():
        return []
    return [item.strip().lower() for item in value.split(",") if item.strip()]


def create_provider_chain(
    order: Optional[str] = None,
    li_at: Optional[str] = None,
    request_timeout_ms: Optional[float] = None,
    rate_limit_ms: Optional[float] = None,
    static_targets_json: Optional[str] = None,
    clock: Optional[RequestClock] = None,
) -> List[ScoutProvider]:
    """
    Build the provider chain.

    Args:
        order: Comma-separated provider names (default: linkedin_li_at,static_seed)
        li_at: LinkedIn session cookie
        request_timeout_ms: LinkedIn request timeout
        rate_limit_ms: Minimum delay between LinkedIn requests
        static_targets_json: JSON array of static seed targets
        clock: Request clock shared by live providers

    Returns:
        Providers in order; ``[linkedin_li_at]`` when the order selects nothing
    """
    registry: Dict[str, Callable[[], ScoutProvider]] = {
        LINKEDIN_PROVIDER: lambda: LinkedInScoutProvider(
            li_at=li_at,
            request_timeout_ms=request_timeout_ms,
            min_delay_ms=rate_limit_ms,
            clock=clock,
        ),
        STATIC_PROVIDER: lambda: StaticScoutProvider(
            targets=parse_static_targets(static_targets_json),
            name=STATIC_PROVIDER,
        ),
    }

    selected_names = parse_provider_order(order) or DEFAULT_PROVIDER_ORDER
    chain: List[ScoutProvider] = []
    for name in selected_names:
        factory = registry.get(name)
        if factory is None:
            logger.warning(f"Unknown scout provider '{name}' in provider order, skipping")
            continue
        if any(provider.name == name for provider in chain):
            continue
        chain.append(factory())

    if not chain:
        chain.append(registry[LINKEDIN_PROVIDER]())

    logger.debug(f"Provider chain: {[provider.name for provider in chain]}")
    return chain


def create_provider_chain_from_config() -> List[ScoutProvider]:
    """Build the chain from environment-backed ``Config``."""
    return create_provider_chain(
        order=Config.SCOUT_PROVIDER_ORDER,
        li_at=Config.LINKEDIN_LI_AT,
        request_timeout_ms=Config.LINKEDIN_REQUEST_TIMEOUT_MS,
        rate_limit_ms=Config.LINKEDIN_RATE_LIMIT_MS,
        static_targets_json=Config.SCOUT_STATIC_TARGETS_JSON,
    )

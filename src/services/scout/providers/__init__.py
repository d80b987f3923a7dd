"""
Scout Providers Module

Provides a unified interface for discovering second-degree targets at a company:
- LinkedIn people search (authenticated with an ``li_at`` session cookie)
- Static seed list (JSON configured through the environment)

Each provider implements the ScoutProvider abstract base class so the
orchestrator can try them in order without knowing what backs them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from src.services.scout.models import DiscoveredTarget


class ScoutProvider(ABC):
    """Abstract base class for target discovery providers."""

    #: Unique adapter name, used in diagnostics and as the run source
    name: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Whether the provider has what it needs to run (credentials, data).

        Unconfigured providers are recorded as ``not_configured`` and skipped
        without being queried.
        """
        pass

    @abstractmethod
    async def search(
        self,
        target_company: str,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        limit: int = 25,
    ) -> List[DiscoveredTarget]:
        """
        Find people at the target company reachable through the seeker's network.

        Args:
            target_company: Company name to search
            target_function: Optional function hint (e.g. "product")
            target_title: Optional title hint (e.g. "Senior Product Manager")
            limit: Maximum number of targets to return

        Returns:
            Up to ``limit`` raw targets; an empty list when nothing matched.

        Raises:
            Exception: Transport or parsing failures propagate to the caller,
                which records them as an ``error`` attempt.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class NoopScoutProvider(ScoutProvider):
    """Placeholder used when no provider is supplied. Never configured."""

    name = "noop"

    def is_configured(self) -> bool:
        return False

    async def search(
        self,
        target_company: str,
        target_function: Optional[str] = None,
        target_title: Optional[str] = None,
        limit: int = 25,
    ) -> List[DiscoveredTarget]:
        return []


# Import concrete implementations for convenience
from .linkedin_provider import LinkedInScoutProvider
from .static_provider import StaticScoutProvider, parse_static_targets

__all__ = [
    "ScoutProvider",
    "NoopScoutProvider",
    "LinkedInScoutProvider",
    "StaticScoutProvider",
    "parse_static_targets",
]

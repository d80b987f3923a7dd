"""
Repository Pattern for Scout Persistence

Abstract interfaces with an in-memory and a MongoDB implementation each.

Public API:
- get_scout_repository(): Scout runs, targets, connector paths, diagnostics, events
- get_contact_repository(): The seeker's contacts (connector pool)
- get_learning_repository(): Outreach feedback and weight profiles
- reset_repositories(): Drop the singletons (tests, config changes)
- WriteResult: Result dataclass for write operations

Usage:
    from src.common.repositories import get_scout_repository

    repo = get_scout_repository()
    run = repo.get_run(run_id)
"""

from .base import WriteResult
from .contact_repository import (
    ContactRepositoryInterface,
    InMemoryContactRepository,
    build_contact_id,
)
from .learning_repository import (
    InMemoryLearningRepository,
    LearningFeedback,
    LearningRepositoryInterface,
)
from .scout_repository import InMemoryScoutRepository, ScoutRepositoryInterface
from .config import (
    RepositoryConfig,
    get_contact_repository,
    get_learning_repository,
    get_scout_repository,
    reset_repositories,
)

__all__ = [
    # Scout runs
    "get_scout_repository",
    "ScoutRepositoryInterface",
    "InMemoryScoutRepository",
    # Contacts
    "get_contact_repository",
    "ContactRepositoryInterface",
    "InMemoryContactRepository",
    "build_contact_id",
    # Learning
    "get_learning_repository",
    "LearningRepositoryInterface",
    "InMemoryLearningRepository",
    "LearningFeedback",
    # Shared
    "reset_repositories",
    "RepositoryConfig",
    "WriteResult",
]

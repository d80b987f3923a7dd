"""
Repository Configuration and Factory

Provides factory functions to get the appropriate repository implementation
based on environment configuration: MongoDB when MONGODB_URI is set, the
in-memory stores otherwise.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from .contact_repository import ContactRepositoryInterface
from .learning_repository import LearningRepositoryInterface
from .scout_repository import ScoutRepositoryInterface

logger = logging.getLogger(__name__)


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: Optional[str] = None
    database: str = "warmpath"
    contacts_collection: str = "contacts"

    @property
    def use_mongodb(self) -> bool:
        return bool(self.mongodb_uri)

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI: MongoDB connection string (unset -> in-memory stores)
        - SCOUT_DATABASE: Database name (default: warmpath)
        - SCOUT_CONTACTS_COLLECTION: Contacts collection (default: contacts)
        """
        return cls(
            mongodb_uri=(os.getenv("MONGODB_URI") or "").strip() or None,
            database=os.getenv("SCOUT_DATABASE") or "warmpath",
            contacts_collection=os.getenv("SCOUT_CONTACTS_COLLECTION") or "contacts",
        )


# Singleton repository instances
_scout_repository_instance: Optional[ScoutRepositoryInterface] = None
_contact_repository_instance: Optional[ContactRepositoryInterface] = None
_learning_repository_instance: Optional[LearningRepositoryInterface] = None


def get_scout_repository() -> ScoutRepositoryInterface:
    """
    Get the scout run repository instance.

    Uses singleton pattern for connection pooling.
    """
    global _scout_repository_instance

    if _scout_repository_instance is None:
        config = RepositoryConfig.from_env()
        if config.use_mongodb:
            from .scout_repository import AtlasScoutRepository
            _scout_repository_instance = AtlasScoutRepository(
                mongodb_uri=config.mongodb_uri,
                database=config.database,
            )
            logger.info("Initialized MongoDB scout repository")
        else:
            from .scout_repository import InMemoryScoutRepository
            _scout_repository_instance = InMemoryScoutRepository()
            logger.info("Initialized in-memory scout repository (MONGODB_URI not set)")

    return _scout_repository_instance


def get_contact_repository() -> ContactRepositoryInterface:
    """Get the contacts repository instance (the connector pool)."""
    global _contact_repository_instance

    if _contact_repository_instance is None:
        config = RepositoryConfig.from_env()
        if config.use_mongodb:
            from .contact_repository import AtlasContactRepository
            _contact_repository_instance = AtlasContactRepository(
                mongodb_uri=config.mongodb_uri,
                database=config.database,
                collection=config.contacts_collection,
            )
            logger.info("Initialized MongoDB contact repository")
        else:
            from .contact_repository import InMemoryContactRepository
            _contact_repository_instance = InMemoryContactRepository()
            logger.info("Initialized in-memory contact repository (MONGODB_URI not set)")

    return _contact_repository_instance


def get_learning_repository() -> LearningRepositoryInterface:
    """Get the learning feedback / weight profile repository instance."""
    global _learning_repository_instance

    if _learning_repository_instance is None:
        config = RepositoryConfig.from_env()
        if config.use_mongodb:
            from .learning_repository import AtlasLearningRepository
            _learning_repository_instance = AtlasLearningRepository(
                mongodb_uri=config.mongodb_uri,
                database=config.database,
            )
            logger.info("Initialized MongoDB learning repository")
        else:
            from .learning_repository import InMemoryLearningRepository
            _learning_repository_instance = InMemoryLearningRepository()
            logger.info("Initialized in-memory learning repository (MONGODB_URI not set)")

    return _learning_repository_instance


def reset_repositories() -> None:
    """
    Reset all repository singletons.

    Used for testing or when configuration changes.
    """
    global _scout_repository_instance, _contact_repository_instance, _learning_repository_instance

    from .base import AtlasRepositoryBase
    AtlasRepositoryBase.reset_connection()

    _scout_repository_instance = None
    _contact_repository_instance = None
    _learning_repository_instance = None
    logger.info("Repository singletons reset")

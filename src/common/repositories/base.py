"""
Repository Base Definitions

Shared pieces for the scout repositories: the write-result record returned by
mutating operations and the MongoDB client handling used by every Atlas
implementation.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified
        deleted_count: Number of documents removed (delete operations)
        upserted_id: ID of upserted/inserted document (if any)
    """
    matched_count: int
    modified_count: int
    deleted_count: int = 0
    upserted_id: Optional[str] = None


class AtlasRepositoryBase:
    """
    MongoDB connection handling shared by the Atlas repositories.

    One MongoClient per process (connection pooling); every repository picks
    its collections from it by name.
    """

    _client: Optional[MongoClient] = None

    def __init__(self, mongodb_uri: Optional[str] = None, database: str = "warmpath"):
        """
        Initialize the repository.

        Args:
            mongodb_uri: MongoDB connection string (defaults to MONGODB_URI env var)
            database: Database name
        """
        self._mongodb_uri = mongodb_uri or os.getenv("MONGODB_URI")
        self._database = database

        if not self._mongodb_uri:
            raise ValueError("MongoDB URI is required")

    def _get_client(self) -> MongoClient:
        """Get or create the MongoDB client (singleton)."""
        if AtlasRepositoryBase._client is None:
            AtlasRepositoryBase._client = MongoClient(self._mongodb_uri)
            logger.info(f"Created new MongoDB client for {type(self).__name__}")
        return AtlasRepositoryBase._client

    def _get_collection(self, name: str) -> Collection:
        return self._get_client()[self._database][name]

    @classmethod
    def reset_connection(cls) -> None:
        """Reset the MongoDB client connection."""
        if AtlasRepositoryBase._client is not None:
            AtlasRepositoryBase._client.close()
            AtlasRepositoryBase._client = None
            logger.info("MongoDB repository connection reset")

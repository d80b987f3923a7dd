"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)
- Process-wide singletons (request clock, repositories) reset between tests

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import os
import pytest
from unittest.mock import patch, MagicMock

# Set test environment BEFORE any imports to prevent Config from loading real values
os.environ.pop("MONGODB_URI", None)
os.environ.pop("LINKEDIN_LI_AT", None)

from src.common.rate_limiter import reset_request_clock
from src.common.repositories import reset_repositories


SCOUT_ENV_VARS = (
    "MONGODB_URI",
    "SCOUT_PROVIDER_ORDER",
    "SCOUT_STATIC_TARGETS_JSON",
    "LINKEDIN_LI_AT",
    "LINKEDIN_LI_AT_COOKIE",
    "LI_AT",
    "SCOUT_MIN_TARGET_CONFIDENCE",
    "SCOUT_GUARDRAIL_PENALTY",
    "SCOUT_V2_WEIGHT_COMPANY_ALIGNMENT",
    "SCOUT_V2_WEIGHT_ROLE_ALIGNMENT",
    "SCOUT_V2_WEIGHT_RELATIONSHIP",
    "SCOUT_V2_WEIGHT_CONNECTOR_INFLUENCE",
    "SCOUT_V2_WEIGHT_TARGET_CONFIDENCE",
    "SCOUT_V2_WEIGHT_ASK_FIT",
    "SCOUT_V2_WEIGHT_SAFETY",
)


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    This prevents:
    - A real LinkedIn session cookie being used by the live provider
    - MongoDB repositories being picked by the factories
    - Local scoring overrides leaking into expected scores
    """
    for name in SCOUT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh request clock and repositories for every test."""
    reset_request_clock()
    reset_repositories()
    yield
    reset_request_clock()
    reset_repositories()

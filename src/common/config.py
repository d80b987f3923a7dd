"""
Configuration loader for the warm-path scout.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import math
import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def parse_optional_float(value: Optional[str]) -> Optional[float]:
    """Parse a numeric env value, returning None for blank or garbage input."""
    if value is None or not value.strip():
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _env_float(name: str, default: float) -> float:
    parsed = parse_optional_float(os.getenv(name))
    return default if parsed is None else parsed


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value
    return ""


class Config:
    """
    Centralized configuration for the scout pipeline.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    SCOUT_DATABASE: str = os.getenv("SCOUT_DATABASE", "warmpath")

    # ===== Provider chain =====
    # Comma-separated provider names, e.g. "linkedin_li_at,static_seed"
    SCOUT_PROVIDER_ORDER: str = os.getenv("SCOUT_PROVIDER_ORDER", "")
    SCOUT_STATIC_TARGETS_JSON: str = os.getenv("SCOUT_STATIC_TARGETS_JSON", "")

    # ===== LinkedIn session =====
    LINKEDIN_LI_AT: str = _first_env("LINKEDIN_LI_AT", "LINKEDIN_LI_AT_COOKIE", "LI_AT")
    LINKEDIN_REQUEST_TIMEOUT_MS: float = _env_float("LINKEDIN_REQUEST_TIMEOUT_MS", 15000)
    LINKEDIN_RATE_LIMIT_MS: float = _env_float("LINKEDIN_RATE_LIMIT_MS", 1200)

    # ===== Scoring =====
    SCOUT_MIN_TARGET_CONFIDENCE: float = _env_float("SCOUT_MIN_TARGET_CONFIDENCE", 0.45)
    SCOUT_GUARDRAIL_PENALTY: float = _env_float("SCOUT_GUARDRAIL_PENALTY", 4.0)

    # ===== Debugging =====
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "false").lower() == "true"

    @classmethod
    def validate(cls) -> None:
        """
        Validate that the configuration is usable.
        Raises ValueError if a setting is out of range.
        """
        if not 0 <= cls.SCOUT_MIN_TARGET_CONFIDENCE <= 1:
            raise ValueError(
                f"SCOUT_MIN_TARGET_CONFIDENCE must be between 0 and 1, "
                f"got {cls.SCOUT_MIN_TARGET_CONFIDENCE}"
            )

        if cls.LINKEDIN_REQUEST_TIMEOUT_MS <= 0:
            raise ValueError("LINKEDIN_REQUEST_TIMEOUT_MS must be positive")

        if cls.LINKEDIN_RATE_LIMIT_MS < 0:
            raise ValueError("LINKEDIN_RATE_LIMIT_MS must not be negative")

        if cls.SCOUT_GUARDRAIL_PENALTY < 0:
            raise ValueError("SCOUT_GUARDRAIL_PENALTY must not be negative")

    @classmethod
    def min_target_confidence(cls) -> float:
        """Minimum target confidence, re-read from the environment and clamped to [0, 1]."""
        value = _env_float("SCOUT_MIN_TARGET_CONFIDENCE", 0.45)
        return max(0.0, min(1.0, value))

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing (in-memory storage)'}
  Provider order: {cls.SCOUT_PROVIDER_ORDER or 'default'}
  LinkedIn session: {'✓ Configured' if cls.LINKEDIN_LI_AT.strip() else '✗ Missing'}
  LinkedIn timeout/rate limit: {cls.LINKEDIN_REQUEST_TIMEOUT_MS:.0f}ms / {cls.LINKEDIN_RATE_LIMIT_MS:.0f}ms
  Static seed targets: {'✓ Configured' if cls.SCOUT_STATIC_TARGETS_JSON.strip() else '✗ Missing'}
  Min target confidence: {cls.SCOUT_MIN_TARGET_CONFIDENCE}
  Guardrail penalty: {cls.SCOUT_GUARDRAIL_PENALTY}
        """.strip()

"""
Centralized error handling for the scout pipeline.

Defines the exception hierarchy raised at the pipeline seams and the
collector used to aggregate per-provider failures within a single run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Union


class ScoutError(Exception):
    """Base exception for scout pipeline errors."""
    pass


class ScoutValidationError(ScoutError):
    """Raised when a scout request is malformed. Surfaced to callers as a client error."""
    pass


class ProviderError(ScoutError):
    """Raised by a discovery provider when a search cannot complete."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ScoutPersistenceError(ScoutError):
    """Raised when a run cannot be created or reloaded from storage."""
    pass


@dataclass
class ProviderFailure:
    """
    Structured record of one provider failing during a run.
    """

    adapter: str
    message: str
    exception_type: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def describe(self) -> str:
        """Render as "adapter (message)" for the aggregate failure note."""
        if self.message:
            return f"{self.adapter} ({self.message})"
        return self.adapter

    def to_dict(self) -> dict:
        return {
            "adapter": self.adapter,
            "message": self.message,
            "exception_type": self.exception_type,
            "timestamp": self.timestamp,
        }


class ErrorCollector:
    """
    Collects provider failures during a scout run.

    Provides aggregation for the run-level failure message.
    """

    def __init__(self):
        self.failures: List[ProviderFailure] = []

    def add(self, adapter: str, error: BaseException) -> ProviderFailure:
        """Record a failure raised by a provider and return it."""
        failure = ProviderFailure(
            adapter=adapter,
            message=describe_exception(error),
            exception_type=type(error).__name__,
        )
        self.failures.append(failure)
        return failure

    def __len__(self) -> int:
        return len(self.failures)

    def aggregate_message(self) -> str:
        """Message naming every failed adapter and its error text."""
        return build_failure_message([failure.describe() for failure in self.failures])


def describe_exception(error: BaseException) -> str:
    """Error text for diagnostics; falls back to the type name for empty messages."""
    message = str(error).strip()
    return message or type(error).__name__


def build_failure_message(failed_adapters: List[str]) -> str:
    if not failed_adapters:
        return "All configured scout providers failed."
    return f"All configured scout providers failed: {', '.join(failed_adapters)}"


def log_on_exception(
    logger: Union[logging.Logger, logging.LoggerAdapter],
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them.

    Usage:
        with log_on_exception(logger, "save scout targets", level=logging.ERROR):
            repository.save_targets(...)

    Args:
        logger: Logger or ScoutLogger (keeps the run context on the record)
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                logger.log(level, f"[{operation}] Failed: {exc_val}", exc_info=include_traceback)
            # Never suppress the exception
            return False

    return ExceptionLogger()

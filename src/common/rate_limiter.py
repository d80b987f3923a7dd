"""
Rate Limiting Module.

Provides the minimum-delay clock shared by every outbound request a live
discovery provider makes. One clock exists per process by default; providers
receive it through their constructor so tests can inject and reset their own.

The clock reserves request slots under a lock: each caller is handed the
earliest instant that is at least ``min_delay_seconds`` after the previous
reservation, then sleeps until then outside the lock. Concurrent runs (threads
or coroutines) therefore never send two requests closer than the minimum delay.

Usage:
    clock = RequestClock(min_delay_seconds=1.2)

    await clock.wait_async()  # Waits if the last request was too recent
    response = await client.get(...)
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass
class RequestClockStats:
    """Statistics for the shared request clock."""
    total_requests: int = 0
    waits_count: int = 0
    total_wait_time_seconds: float = 0.0
    last_request_at: Optional[datetime] = None


class RequestClock:
    """
    Thread-safe process-wide "time of last outbound request" clock.
    """

    def __init__(
        self,
        min_delay_seconds: float = 1.2,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """
        Initialize the clock.

        Args:
            min_delay_seconds: Minimum spacing between two outbound requests
            monotonic: Time source (injectable for tests)
            sleep: Async sleep function (defaults to asyncio.sleep)
        """
        self.min_delay_seconds = max(0.0, min_delay_seconds)
        self._monotonic = monotonic
        self._sleep = sleep or asyncio.sleep
        self._lock = threading.Lock()
        self._last_request_at: Optional[float] = None
        self._stats = RequestClockStats()

    def reserve(self, min_delay_seconds: Optional[float] = None) -> float:
        """
        Reserve the next request slot.

        Args:
            min_delay_seconds: Per-call override of the minimum delay

        Returns:
            Seconds the caller must wait before sending its request (0.0 if none)
        """
        delay = self.min_delay_seconds if min_delay_seconds is None else max(0.0, min_delay_seconds)

        with self._lock:
            now = self._monotonic()
            if self._last_request_at is None:
                slot = now
            else:
                slot = max(now, self._last_request_at + delay)
            self._last_request_at = slot

            wait_time = slot - now
            self._stats.total_requests += 1
            self._stats.last_request_at = datetime.now(timezone.utc)
            if wait_time > 0:
                self._stats.waits_count += 1
                self._stats.total_wait_time_seconds += wait_time

            return wait_time

    async def wait_async(self, min_delay_seconds: Optional[float] = None) -> float:
        """
        Wait until the next request slot (async).

        Returns:
            Seconds waited
        """
        wait_time = self.reserve(min_delay_seconds)
        if wait_time > 0:
            await self._sleep(wait_time)
        return wait_time

    def get_stats(self) -> RequestClockStats:
        """Get a snapshot of the clock statistics."""
        with self._lock:
            return RequestClockStats(
                total_requests=self._stats.total_requests,
                waits_count=self._stats.waits_count,
                total_wait_time_seconds=self._stats.total_wait_time_seconds,
                last_request_at=self._stats.last_request_at,
            )

    def reset(self) -> None:
        """Forget the last request time and statistics."""
        with self._lock:
            self._last_request_at = None
            self._stats = RequestClockStats()

    def to_dict(self) -> Dict[str, Any]:
        """Export clock state as dictionary."""
        stats = self.get_stats()
        return {
            "min_delay_seconds": self.min_delay_seconds,
            "stats": {
                "total_requests": stats.total_requests,
                "waits_count": stats.waits_count,
                "total_wait_time_seconds": stats.total_wait_time_seconds,
                "last_request_at": stats.last_request_at.isoformat() if stats.last_request_at else None,
            },
        }


# Global clock instance
_global_clock: Optional[RequestClock] = None
_global_clock_lock = threading.Lock()


def get_request_clock(min_delay_seconds: Optional[float] = None) -> RequestClock:
    """
    Get or create the process-wide request clock.

    Args:
        min_delay_seconds: Delay used when the clock is first created (default 1.2s)

    Returns:
        The shared RequestClock
    """
    global _global_clock
    with _global_clock_lock:
        if _global_clock is None:
            _global_clock = RequestClock(
                min_delay_seconds=1.2 if min_delay_seconds is None else min_delay_seconds
            )
        return _global_clock


def reset_request_clock() -> None:
    """Reset the global clock (useful for testing)."""
    global _global_clock
    with _global_clock_lock:
        if _global_clock is not None:
            _global_clock.reset()
        _global_clock = None

"""
Common utility functions for the scout pipeline.

Numeric helpers shared by the normalizer, the scorer and the weights module,
plus the sync-to-async bridge used by the command line entry point.
"""

import asyncio
import concurrent.futures
import math
from typing import Coroutine, TypeVar

T = TypeVar('T')


def run_async(coro: Coroutine[None, None, T]) -> T:
    """
    Run an async coroutine from a sync context, handling nested event loops.

    Strategy:
    1. If no event loop is running: use asyncio.run() (simple case)
    2. If an event loop IS running: use a thread pool executor to run the coroutine
       in a new thread with its own event loop

    Args:
        coro: The coroutine to run

    Returns:
        The result of the coroutine

    Example:
        >>> result = run_async(run_scout(request, providers))  # Works from both contexts
    """
    try:
        # Check if there's already a running event loop
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop - we can use asyncio.run() directly
        return asyncio.run(coro)

    # There's already a running loop - use thread pool to avoid nesting
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()


def round_half_up(value: float, digits: int = 2) -> float:
    """
    Round with ties going up, e.g. 0.125 -> 0.13.

    Python's round() uses banker's rounding; scores are always rounded half-up.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def clamp01(value: float) -> float:
    """Clamp into [0, 1]; NaN and infinities become 0."""
    if not math.isfinite(value):
        return 0.0
    return clamp(value, 0.0, 1.0)

"""
Timing helpers for device round trips and waits.

Provides a millisecond stopwatch helper and a decorator that logs how long an
async device operation took, warning when it exceeds the configured threshold.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

__all__ = [
    "elapsed_ms",
    "measure_time",
    "timed_async",
]

P = ParamSpec("P")
T = TypeVar("T")


def measure_time(start_time: float) -> float:
    """
    Calculate elapsed time in milliseconds.

    Args:
        start_time: Start time from time.monotonic()

    Returns:
        Elapsed time in milliseconds
    """
    return (time.monotonic() - start_time) * 1000


def elapsed_ms(start_time: float) -> int:
    """Whole milliseconds elapsed since ``start_time`` (time.monotonic())."""
    return int(measure_time(start_time))


def timed_async(
    operation_name: str | None = None,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """
    Decorator for timing async functions with configurable threshold warnings.

    Can be disabled via the ROKU_DL_PERF_TRACKING environment variable.

    Args:
        operation_name: Name for the operation (defaults to function name)

    Example:
        @timed_async("ecp_keypress")
        async def keypress(self, key):
            ...
    """

    def decorator(func: Callable[P, Coroutine[Any, Any, T]]) -> Callable[P, Coroutine[Any, Any, T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            # Import here to avoid circular dependency
            from roku_deeplink.const import (  # noqa: PLC0415
                ROKU_DL_PERF_THRESHOLD_MS,
                ROKU_DL_PERF_TRACKING,
            )
            from roku_deeplink.logging_abstraction import get_logger  # noqa: PLC0415

            if not ROKU_DL_PERF_TRACKING:
                return await func(*args, **kwargs)

            logger = get_logger(__name__)
            op_name = operation_name or func.__name__

            start_time = time.monotonic()
            try:
                return await func(*args, **kwargs)
            finally:
                duration_ms = measure_time(start_time)
                context = {
                    "operation": op_name,
                    "duration_ms": round(duration_ms, 2),
                    "threshold_ms": ROKU_DL_PERF_THRESHOLD_MS,
                }
                if duration_ms > ROKU_DL_PERF_THRESHOLD_MS:
                    logger.warning(
                        "[%s] completed in %.1fms (threshold: %dms)",
                        op_name,
                        duration_ms,
                        ROKU_DL_PERF_THRESHOLD_MS,
                        extra=context,
                    )
                else:
                    logger.debug("[%s] completed in %.1fms", op_name, duration_ms, extra=context)

        return wrapper

    return decorator

"""
Run and phase tracking for log lines across async operations.

Provides the active run id and phase name via contextvars so every log line
emitted during a certification run can be attributed to the phase that
produced it (sign-in, launch test, input test).
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "generate_run_id",
    "get_phase",
    "get_run_id",
    "phase_scope",
    "run_scope",
]

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar("phase", default=None)


def generate_run_id() -> str:
    """
    Generate a new run id.

    Returns:
        Short hex id (first 12 characters of a UUID4)
    """
    return uuid.uuid4().hex[:12]


def get_run_id() -> str | None:
    """Get the current run id, or None outside a run."""
    return _run_id.get()


def get_phase() -> str | None:
    """Get the current phase name, or None between phases."""
    return _phase.get()


@contextmanager
def run_scope(run_id: str | None = None) -> Generator[str]:
    """
    Context manager for one certification run.

    Args:
        run_id: Specific run id to use (None to generate one, e.g. a CI test id)

    Yields:
        The run id in effect inside the scope
    """
    token = _run_id.set(run_id or generate_run_id())
    try:
        yield _run_id.get() or ""
    finally:
        _run_id.reset(token)


@contextmanager
def phase_scope(phase: str) -> Generator[str]:
    """
    Context manager marking the active test phase.

    Restores the previous phase on exit, so nested scopes (e.g. the warm-up
    relaunch inside the input test) report the innermost name.

    Example:
        with phase_scope("Deep Link Launch Test"):
            logger.info("Sending launch")  # tagged with the phase name
    """
    token = _phase.set(phase)
    try:
        yield phase
    finally:
        _phase.reset(token)

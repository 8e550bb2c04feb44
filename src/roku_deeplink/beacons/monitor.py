"""Beacon stream monitor: received set, timing map, and baselines.

The monitor is the single owner of beacon state. The event stream reader is
its only writer (``on_data``); the wait coordinator only reads, through
``snapshot()`` baselines and freshness checks, so cross-phase reuse of stale
beacons is ruled out in one place.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from roku_deeplink.beacons.categories import BEACON_RULES, BeaconRule, extract_timing
from roku_deeplink.const import MAX_RAW_LINES
from roku_deeplink.exceptions import BeaconConnectionError
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.metrics import record_beacon, record_beacon_discarded

__all__ = ["Baseline", "BeaconMonitor"]

logger = get_logger(__name__)

# Device console chatter worth echoing in verbose mode
_INTERESTING_MARKERS = (
    "beacon.signal",
    "Channel launched",
    "RokuComponent",
    "SceneGraph",
    "Error",
    "BrightScript",
)


@dataclass(frozen=True)
class Baseline:
    """Immutable snapshot of the received set.

    Attributes:
        categories: Categories already present when the snapshot was taken
        watermark: Observation sequence number at snapshot time; only
            observations numbered above it are fresh

    """

    categories: frozenset[str]
    watermark: int

    def __contains__(self, category: object) -> bool:
        return category in self.categories


class BeaconMonitor:
    """Accumulates beacons parsed from the device event stream."""

    def __init__(self, max_lines: int = MAX_RAW_LINES, custom_categories: Iterable[str] = ()) -> None:
        """Initialize an empty monitor.

        Args:
            max_lines: How many raw records to keep for failure diagnosis
            custom_categories: Extra beacon tokens to record besides the fixed vocabulary

        """
        self._lock = threading.Lock()
        self._rules: list[BeaconRule] = list(BEACON_RULES)
        self._last_seen: dict[str, int] = {}
        self._timings: dict[str, int | None] = {}
        self._sequence = 0
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._failure: BeaconConnectionError | None = None
        for category in custom_categories:
            self.watch(category)

    def watch(self, category: str) -> None:
        """Start recording a caller-supplied category (idempotent)."""
        if any(rule.category == category for rule in self._rules):
            return
        self._rules.append(BeaconRule(category))
        logger.debug("Watching custom beacon %s", category)

    def on_data(self, raw_chunk: str | bytes) -> list[str]:
        """Process one record from the event stream.

        Args:
            raw_chunk: One record, treated as a complete unit

        Returns:
            Categories recorded from this record, in vocabulary order

        """
        if isinstance(raw_chunk, bytes):
            raw_chunk = raw_chunk.decode("utf-8", errors="replace")
        record = raw_chunk.strip()
        if not record:
            return []

        recorded: list[str] = []
        with self._lock:
            self._lines.append(record)
            for rule in self._rules:
                if rule.category not in record:
                    continue
                value = extract_timing(record, rule.timing_field) if rule.timing_field else None
                if rule.requires_timing and value is None:
                    logger.info("%s detected but no duration - ignoring", rule.category)
                    record_beacon_discarded(rule.category, "no_timing")
                    continue
                self._sequence += 1
                self._last_seen[rule.category] = self._sequence
                self._timings[rule.category] = value
                recorded.append(rule.category)

        for category in recorded:
            value = self._timings.get(category)
            logger.info(
                "%s beacon detected%s",
                category,
                f" ({value}ms)" if value is not None else "",
                extra={"category": category, "timing_ms": value},
            )
            record_beacon(category)

        if not recorded and any(marker in record for marker in _INTERESTING_MARKERS):
            logger.debug("[DEVICE] %s", record)
        return recorded

    def snapshot(self) -> Baseline:
        """Return an immutable baseline of what has been seen so far."""
        with self._lock:
            return Baseline(frozenset(self._last_seen), self._sequence)

    def reset(self) -> None:
        """Clear the received set and timing map between test phases."""
        with self._lock:
            self._last_seen.clear()
            self._timings.clear()
        logger.debug("Beacon state reset")

    def is_fresh(self, category: str, baseline: Baseline) -> bool:
        """True if ``category`` was observed after ``baseline`` was taken."""
        with self._lock:
            return self._last_seen.get(category, -1) > baseline.watermark

    def fresh(self, categories: Iterable[str], baseline: Baseline) -> list[str]:
        """Subset of ``categories`` observed after ``baseline``, order preserved."""
        with self._lock:
            return [c for c in categories if self._last_seen.get(c, -1) > baseline.watermark]

    @property
    def received(self) -> frozenset[str]:
        """Categories observed since the last reset."""
        with self._lock:
            return frozenset(self._last_seen)

    @property
    def timings(self) -> dict[str, int | None]:
        """Copy of the most recent timing value per category."""
        with self._lock:
            return dict(self._timings)

    def recent_lines(self, count: int | None = None) -> list[str]:
        """Last ``count`` raw records (all buffered records when None)."""
        with self._lock:
            lines = list(self._lines)
        return lines if count is None else lines[-count:] if count > 0 else []

    def fail(self, error: BeaconConnectionError) -> None:
        """Mark the event stream as lost; waiters raise on their next tick."""
        with self._lock:
            if self._failure is None:
                self._failure = error

    @property
    def failure(self) -> BeaconConnectionError | None:
        """The connection error recorded by the reader, if any."""
        return self._failure

    def raise_if_failed(self) -> None:
        """Raise the recorded connection error, if the stream was lost."""
        if self._failure is not None:
            raise self._failure

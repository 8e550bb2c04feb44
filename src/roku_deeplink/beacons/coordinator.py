"""Beacon wait coordinator.

Polls the monitor against a required set of beacons, relative to a baseline
taken before the triggering command, until the conditions hold or the deadline
passes. Two modes exist:

- exact: a fixed list of categories, followed by a stabilization grace period
- smart: launch / video playback / custom conditions, with VOD vs Live
  disambiguation and no grace period
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from roku_deeplink.beacons.categories import BeaconCategory, ContentType
from roku_deeplink.beacons.monitor import Baseline, BeaconMonitor
from roku_deeplink.const import (
    BEACON_GRACE_SECONDS,
    BEACON_POLL_INTERVAL_SECONDS,
    PROGRESS_LOG_INTERVAL_SECONDS,
)
from roku_deeplink.exceptions import BeaconTimeoutError, DeepLinkError
from roku_deeplink.instrumentation import elapsed_ms
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.metrics import record_wait

__all__ = [
    "VIDEO_CONDITION",
    "BeaconWaitCoordinator",
    "Outcome",
]

logger = get_logger(__name__)

VIDEO_CONDITION = "Video playback beacons (VOD or Live)"

_VIDEO_PAIRS: tuple[tuple[ContentType, tuple[str, str]], ...] = (
    (ContentType.VOD, (BeaconCategory.VOD_START_INITIATE, BeaconCategory.VOD_START_COMPLETE)),
    (ContentType.LIVE, (BeaconCategory.LIVE_START_INITIATE, BeaconCategory.LIVE_START_COMPLETE)),
)


@dataclass
class Outcome:
    """Result of one beacon wait.

    Attributes:
        passed: Whether every requested condition held before the deadline
        duration_ms: Time from the start of the wait to resolution
        beacons_found: Fresh categories relevant to the wait, in report order
        content_type: VOD or Live when a playback pair completed
        error: Failure detail (BeaconTimeoutError, CommandError, ...)

    """

    passed: bool
    duration_ms: int
    beacons_found: list[str] = field(default_factory=list)
    content_type: ContentType | None = None
    error: DeepLinkError | None = None

    @property
    def playback_started(self) -> bool:
        """True once a VOD or Live pair completed."""
        return self.content_type is not None

    @property
    def missing(self) -> list[str]:
        """Unmet conditions when the wait timed out."""
        return list(self.error.missing) if isinstance(self.error, BeaconTimeoutError) else []

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON reports."""
        return {
            "passed": self.passed,
            "duration_ms": self.duration_ms,
            "beacons_found": list(self.beacons_found),
            "content_type": str(self.content_type) if self.content_type else None,
            "error": self.error.to_dict() if self.error else None,
        }


class _ProgressTicker:
    """Emits a "still waiting" line roughly every PROGRESS_LOG_INTERVAL_SECONDS."""

    def __init__(self, start: float, timeout: float, interval: float = PROGRESS_LOG_INTERVAL_SECONDS) -> None:
        self.start = start
        self.timeout = timeout
        self.interval = interval
        self.next_at = start + interval

    def tick(self, now: float, status: str) -> None:
        if now < self.next_at:
            return
        self.next_at = now + self.interval
        remaining = max(0.0, self.timeout - (now - self.start))
        logger.info("Still waiting (%.0fs left). %s", remaining, status)


class BeaconWaitCoordinator:
    """Waits on a BeaconMonitor for the beacons a test phase requires."""

    def __init__(
        self,
        monitor: BeaconMonitor,
        poll_interval: float = BEACON_POLL_INTERVAL_SECONDS,
        grace_period: float = BEACON_GRACE_SECONDS,
    ) -> None:
        """Initialize the coordinator.

        Args:
            monitor: Beacon state to poll
            poll_interval: Seconds between checks
            grace_period: Stabilization delay applied by exact mode after success

        """
        self.monitor = monitor
        self.poll_interval = poll_interval
        self.grace_period = grace_period

    async def wait_exact(self, required: Sequence[str], baseline: Baseline, timeout: float) -> Outcome:
        """Wait until every category in ``required`` is fresh, then hold for the grace period.

        Once satisfied, the grace timer is neither cancelled nor extended by
        further arrivals, and the deadline no longer applies.

        Args:
            required: Categories that must all be observed after ``baseline``
            baseline: Snapshot taken before the triggering command
            timeout: Deadline in seconds

        Returns:
            Outcome; on timeout the error names the still-missing categories

        Raises:
            BeaconConnectionError: The event stream was lost while waiting

        """
        required = list(dict.fromkeys(required))
        logger.info("Waiting for beacons: %s", ", ".join(required) or "none")
        start = time.monotonic()
        ticker = _ProgressTicker(start, timeout)
        satisfied_at: float | None = None

        while True:
            self.monitor.raise_if_failed()
            now = time.monotonic()
            found = self.monitor.fresh(required, baseline)

            if satisfied_at is None and len(found) == len(required):
                satisfied_at = now
                logger.info("All beacons found! Waiting %dms for stability...", int(self.grace_period * 1000))

            if satisfied_at is not None:
                if now - satisfied_at >= self.grace_period:
                    duration = elapsed_ms(start)
                    logger.info("Beacon detection completed in %dms", duration)
                    record_wait("exact", "passed", duration / 1000)
                    return Outcome(passed=True, duration_ms=duration, beacons_found=found)
            elif now - start >= timeout:
                duration = elapsed_ms(start)
                missing = [c for c in required if c not in found]
                error = BeaconTimeoutError(missing, duration)
                logger.error("%s", error, extra={"found": ", ".join(found) or "none"})
                record_wait("exact", "timeout", duration / 1000)
                return Outcome(passed=False, duration_ms=duration, beacons_found=found, error=error)
            else:
                ticker.tick(now, f"Found: {', '.join(found) or 'none'}")

            await asyncio.sleep(self.poll_interval)

    async def wait_smart(
        self,
        *,
        require_launch: bool,
        media_requires_video: bool,
        baseline: Baseline,
        timeout: float,
        extra_category: str | None = None,
    ) -> Outcome:
        """Wait for launch, video playback and custom conditions to hold together.

        Video playback is satisfied by a fresh VOD pair or, failing that, a
        fresh Live pair; the first pair seen complete fixes the content type
        for the rest of the wait. Resolves on the first tick where every
        requested condition holds, with no grace period.

        Args:
            require_launch: Require a fresh AppLaunchComplete
            media_requires_video: Require a complete Initiate/Complete playback pair
            baseline: Snapshot taken before the triggering command
            timeout: Deadline in seconds
            extra_category: Custom category that must also be fresh

        Returns:
            Outcome; on timeout the error names the unmet logical conditions

        Raises:
            BeaconConnectionError: The event stream was lost while waiting

        """
        if extra_category:
            self.monitor.watch(extra_category)
        logger.info(
            "Waiting for beacons with smart detection...",
            extra={
                "launch": require_launch,
                "video": media_requires_video,
                "extra": extra_category or "-",
            },
        )
        start = time.monotonic()
        ticker = _ProgressTicker(start, timeout)
        content_type: ContentType | None = None

        while True:
            self.monitor.raise_if_failed()
            now = time.monotonic()

            launch_ok = not require_launch or self.monitor.is_fresh(BeaconCategory.APP_LAUNCH_COMPLETE, baseline)

            if media_requires_video and content_type is None:
                for candidate, pair in _VIDEO_PAIRS:
                    if len(self.monitor.fresh(pair, baseline)) == len(pair):
                        content_type = candidate
                        logger.info("%s playback beacons detected", candidate)
                        break
            video_ok = not media_requires_video or content_type is not None

            extra_ok = extra_category is None or self.monitor.is_fresh(extra_category, baseline)

            if launch_ok and video_ok and extra_ok:
                duration = elapsed_ms(start)
                logger.info("All expected beacons received in %dms", duration)
                record_wait("smart", "passed", duration / 1000)
                return Outcome(
                    passed=True,
                    duration_ms=duration,
                    beacons_found=self._found(require_launch, content_type, extra_category, baseline),
                    content_type=content_type,
                )

            if now - start >= timeout:
                duration = elapsed_ms(start)
                missing: list[str] = []
                if not launch_ok:
                    missing.append(BeaconCategory.APP_LAUNCH_COMPLETE)
                if not video_ok:
                    missing.append(VIDEO_CONDITION)
                if not extra_ok and extra_category:
                    missing.append(extra_category)
                error = BeaconTimeoutError(missing, duration)
                logger.error("%s", error)
                record_wait("smart", "timeout", duration / 1000)
                return Outcome(
                    passed=False,
                    duration_ms=duration,
                    beacons_found=self._found(require_launch, content_type, extra_category, baseline),
                    content_type=content_type,
                    error=error,
                )

            status: list[str] = []
            if require_launch:
                status.append(f"App Launch: {'found' if launch_ok else 'waiting'}")
            if media_requires_video:
                status.append(f"Video: {'found' if video_ok else 'waiting'}")
            if extra_category:
                status.append(f"{extra_category}: {'found' if extra_ok else 'waiting'}")
            ticker.tick(now, ", ".join(status))

            await asyncio.sleep(self.poll_interval)

    def _found(
        self,
        require_launch: bool,
        content_type: ContentType | None,
        extra_category: str | None,
        baseline: Baseline,
    ) -> list[str]:
        """Concrete fresh categories backing the smart-mode conditions."""
        found: list[str] = []
        if require_launch and self.monitor.is_fresh(BeaconCategory.APP_LAUNCH_COMPLETE, baseline):
            found.append(BeaconCategory.APP_LAUNCH_COMPLETE)
        for candidate, pair in _VIDEO_PAIRS:
            if candidate is content_type:
                found.extend(pair)
        if extra_category and self.monitor.is_fresh(extra_category, baseline):
            found.append(extra_category)
        return found

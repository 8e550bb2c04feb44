"""Beacon detection: stream parsing, baselines, and wait coordination."""

from roku_deeplink.beacons.categories import BeaconCategory, ContentType, extract_timing
from roku_deeplink.beacons.coordinator import VIDEO_CONDITION, BeaconWaitCoordinator, Outcome
from roku_deeplink.beacons.monitor import Baseline, BeaconMonitor

__all__ = [
    "VIDEO_CONDITION",
    "Baseline",
    "BeaconCategory",
    "BeaconMonitor",
    "BeaconWaitCoordinator",
    "ContentType",
    "Outcome",
    "extract_timing",
]

"""Beacon vocabulary and timing grammar of the device event stream.

Records look like ``... AppLaunchComplete ... Duration(1234 ms) ...``; the
category is recognised by its literal token and the timing value by a
``<FieldName>(<digits> ms)`` field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "BEACON_RULES",
    "DURATION_FIELD",
    "TIMEBASE_FIELD",
    "BeaconCategory",
    "BeaconRule",
    "ContentType",
    "extract_timing",
]

DURATION_FIELD = "Duration"
TIMEBASE_FIELD = "TimeBase"

_TIMING_PATTERNS: dict[str, re.Pattern[str]] = {
    field: re.compile(rf"{field}\((\d+)\s*ms\)") for field in (DURATION_FIELD, TIMEBASE_FIELD)
}


class BeaconCategory(StrEnum):
    """Certification beacons emitted by the device."""

    APP_LAUNCH_COMPLETE = "AppLaunchComplete"
    APP_DIALOG_INITIATE = "AppDialogInitiate"
    VOD_START_INITIATE = "VODStartInitiate"
    VOD_START_COMPLETE = "VODStartComplete"
    LIVE_START_INITIATE = "LiveStartInitiate"
    LIVE_START_COMPLETE = "LiveStartComplete"


class ContentType(StrEnum):
    """Playback flavour inferred from which beacon pair completed."""

    VOD = "VOD"
    LIVE = "Live"


@dataclass(frozen=True)
class BeaconRule:
    """How one category is recognised in a record.

    Attributes:
        category: Token that must appear literally in the record
        timing_field: Timing field to extract (Duration/TimeBase), None for none
        requires_timing: Discard the record unless the timing field is present

    """

    category: str
    timing_field: str | None = DURATION_FIELD
    requires_timing: bool = False


BEACON_RULES: tuple[BeaconRule, ...] = (
    # AppLaunchComplete is also printed without a duration; only the timed one counts
    BeaconRule(BeaconCategory.APP_LAUNCH_COMPLETE, DURATION_FIELD, requires_timing=True),
    BeaconRule(BeaconCategory.APP_DIALOG_INITIATE, DURATION_FIELD),
    BeaconRule(BeaconCategory.VOD_START_INITIATE, TIMEBASE_FIELD),
    BeaconRule(BeaconCategory.VOD_START_COMPLETE, DURATION_FIELD),
    BeaconRule(BeaconCategory.LIVE_START_INITIATE, TIMEBASE_FIELD),
    BeaconRule(BeaconCategory.LIVE_START_COMPLETE, DURATION_FIELD),
)


def extract_timing(record: str, field: str) -> int | None:
    """Extract ``<field>(<n> ms)`` from a record.

    Args:
        record: One event stream record
        field: DURATION_FIELD or TIMEBASE_FIELD

    Returns:
        The millisecond value, or None when the field is absent

    """
    pattern = _TIMING_PATTERNS.get(field) or re.compile(rf"{re.escape(field)}\((\d+)\s*ms\)")
    match = pattern.search(record)
    return int(match.group(1)) if match else None

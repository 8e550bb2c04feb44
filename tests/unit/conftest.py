"""
Shared fixtures for unit tests.

This module provides reusable fixtures for testing the deep link tester components.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from roku_deeplink.beacons import BeaconMonitor
from roku_deeplink.config import RunConfig


@pytest.fixture
def monitor():
    """Fresh BeaconMonitor with the default vocabulary."""
    return BeaconMonitor()


@pytest.fixture
def mock_dispatcher():
    """
    Mock CommandDispatcher for testing.

    Every command is accepted unless a test overrides its side_effect.
    """
    dispatcher = MagicMock()
    dispatcher.launch = AsyncMock(return_value=True)
    dispatcher.input = AsyncMock(return_value=True)
    dispatcher.keypress = AsyncMock(return_value=True)
    dispatcher.enter_character = AsyncMock(return_value=True)
    dispatcher.enter_text = AsyncMock()
    return dispatcher


@pytest.fixture
def mock_http_response():
    """Factory for aiohttp-like responses with a given status."""

    def _make(status: int = 200) -> MagicMock:
        resp = MagicMock()
        resp.status = status
        resp.release = MagicMock()
        return resp

    return _make


@pytest.fixture
def run_config():
    """RunConfig with all settle delays disabled."""
    return RunConfig(
        ip="192.168.1.114",
        wait_seconds=1,
        settle_seconds=0,
        relaunch_settle_seconds=0,
    )


@pytest.fixture
def sample_beacon_lines():
    """Representative debug console lines for a VOD deep link launch."""
    return [
        "11-05 10:15:22.123 [beacon.signal] |AppLaunchInitiate ---------> TimeBase(0 ms)",
        "11-05 10:15:24.123 [beacon.signal] |AppLaunchComplete ---------> Duration(2000 ms)",
        "11-05 10:15:25.001 [beacon.signal] |VODStartInitiate ---------> TimeBase(2878 ms)",
        "11-05 10:15:26.420 [beacon.signal] |VODStartComplete ---------> Duration(1419 ms)",
    ]

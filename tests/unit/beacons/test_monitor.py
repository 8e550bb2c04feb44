"""Unit tests for BeaconMonitor.

Tests cover:
- Record parsing against the beacon vocabulary and timing grammar
- AppLaunchComplete noise filtering
- Baseline freshness across resets and re-observations
- Raw line buffering and failure signalling
"""

import pytest

from roku_deeplink.beacons import BeaconCategory, BeaconMonitor, extract_timing
from roku_deeplink.exceptions import BeaconConnectionError


class TestExtractTiming:
    """Tests for the timing grammar"""

    def test_duration(self):
        """Test Duration field extraction"""
        assert extract_timing("AppLaunchComplete ---> Duration(2000 ms)", "Duration") == 2000

    def test_timebase_without_space(self):
        """Test TimeBase field with no space before ms"""
        assert extract_timing("VODStartInitiate TimeBase(15ms)", "TimeBase") == 15

    def test_missing_field(self):
        """Test absent field yields None"""
        assert extract_timing("VODStartInitiate TimeBase(15 ms)", "Duration") is None


class TestOnData:
    """Tests for parsing event stream records"""

    def test_app_launch_complete_with_duration_recorded(self, monitor):
        """Test a timed AppLaunchComplete is recorded with its value"""
        recorded = monitor.on_data("|AppLaunchComplete ---------> Duration(2000 ms)\n")

        assert recorded == [BeaconCategory.APP_LAUNCH_COMPLETE]
        assert BeaconCategory.APP_LAUNCH_COMPLETE in monitor.received
        assert monitor.timings == {"AppLaunchComplete": 2000}

    def test_app_launch_complete_without_duration_discarded(self, monitor):
        """Test an untimed AppLaunchComplete never enters the received set"""
        recorded = monitor.on_data("SceneGraph: AppLaunchComplete signalled")

        assert recorded == []
        assert monitor.received == frozenset()
        assert monitor.timings == {}
        # Still kept for diagnosis
        assert monitor.recent_lines() == ["SceneGraph: AppLaunchComplete signalled"]

    def test_playback_beacons_extract_their_fields(self, monitor, sample_beacon_lines):
        """Test VOD initiate carries TimeBase and complete carries Duration"""
        for line in sample_beacon_lines:
            monitor.on_data(line)

        assert monitor.timings == {
            "AppLaunchComplete": 2000,
            "VODStartInitiate": 2878,
            "VODStartComplete": 1419,
        }

    def test_category_without_timing_records_none(self, monitor):
        """Test a beacon lacking its timing field is recorded with a null value"""
        monitor.on_data("LiveStartComplete")

        assert monitor.received == frozenset({BeaconCategory.LIVE_START_COMPLETE})
        assert monitor.timings == {"LiveStartComplete": None}

    def test_repeat_sighting_overwrites_timing(self, monitor):
        """Test the timing map keeps only the most recent value"""
        monitor.on_data("AppDialogInitiate Duration(10 ms)")
        monitor.on_data("AppDialogInitiate Duration(25 ms)")

        assert monitor.timings["AppDialogInitiate"] == 25

    def test_bytes_input_decoded(self, monitor):
        """Test that raw bytes are accepted"""
        monitor.on_data(b"VODStartComplete Duration(7 ms)")

        assert monitor.timings["VODStartComplete"] == 7

    def test_blank_record_ignored(self, monitor):
        """Test whitespace-only chunks are dropped entirely"""
        assert monitor.on_data("   \n") == []
        assert monitor.recent_lines() == []

    def test_custom_category(self, monitor):
        """Test categories registered with watch() are recorded"""
        monitor.watch("AppCustomEvent")
        monitor.watch("AppCustomEvent")

        recorded = monitor.on_data("AppCustomEvent Duration(42 ms)")

        assert recorded == ["AppCustomEvent"]
        assert monitor.timings["AppCustomEvent"] == 42

    def test_custom_category_from_constructor(self):
        """Test custom categories passed at construction"""
        monitor = BeaconMonitor(custom_categories=["PlayerReady"])

        assert monitor.on_data("PlayerReady") == ["PlayerReady"]

    def test_unwatched_token_not_recorded(self, monitor):
        """Test unknown tokens are not beacons"""
        assert monitor.on_data("AppCustomEvent Duration(42 ms)") == []


class TestBaseline:
    """Tests for snapshot/reset and freshness"""

    def test_snapshot_is_immutable_copy(self, monitor):
        """Test that later observations do not change an earlier snapshot"""
        monitor.on_data("VODStartComplete Duration(7 ms)")
        baseline = monitor.snapshot()
        monitor.on_data("LiveStartComplete Duration(9 ms)")

        assert BeaconCategory.VOD_START_COMPLETE in baseline
        assert BeaconCategory.LIVE_START_COMPLETE not in baseline

    def test_category_in_baseline_not_fresh(self, monitor):
        """Test a category seen before the baseline cannot satisfy a wait"""
        monitor.on_data("AppLaunchComplete Duration(100 ms)")
        baseline = monitor.snapshot()

        assert monitor.is_fresh(BeaconCategory.APP_LAUNCH_COMPLETE, baseline) is False

    def test_reobserved_category_is_fresh(self, monitor):
        """Test a category re-observed after the baseline counts again"""
        monitor.on_data("AppLaunchComplete Duration(100 ms)")
        baseline = monitor.snapshot()
        monitor.on_data("AppLaunchComplete Duration(120 ms)")

        assert monitor.is_fresh(BeaconCategory.APP_LAUNCH_COMPLETE, baseline) is True

    def test_reset_clears_state(self, monitor):
        """Test reset clears received set and timings but keeps raw lines"""
        monitor.on_data("AppLaunchComplete Duration(100 ms)")

        monitor.reset()

        assert monitor.received == frozenset()
        assert monitor.timings == {}
        assert monitor.recent_lines() == ["AppLaunchComplete Duration(100 ms)"]

    def test_fresh_after_reset_and_snapshot(self, monitor):
        """Test only beacons after the post-reset snapshot are fresh, in request order"""
        monitor.on_data("VODStartInitiate TimeBase(1 ms)")
        monitor.reset()
        baseline = monitor.snapshot()
        monitor.on_data("VODStartComplete Duration(2 ms)")
        monitor.on_data("VODStartInitiate TimeBase(3 ms)")

        found = monitor.fresh(
            [BeaconCategory.VOD_START_INITIATE, BeaconCategory.VOD_START_COMPLETE, BeaconCategory.LIVE_START_COMPLETE],
            baseline,
        )

        assert found == [BeaconCategory.VOD_START_INITIATE, BeaconCategory.VOD_START_COMPLETE]


class TestRecentLinesAndFailure:
    """Tests for raw line buffer and connection failure"""

    def test_recent_lines_bounded(self):
        """Test the raw buffer keeps only the newest lines"""
        monitor = BeaconMonitor(max_lines=3)
        for i in range(5):
            monitor.on_data(f"line {i}")

        assert monitor.recent_lines() == ["line 2", "line 3", "line 4"]
        assert monitor.recent_lines(2) == ["line 3", "line 4"]
        assert monitor.recent_lines(0) == []

    def test_fail_and_raise(self, monitor):
        """Test the first recorded failure is raised to waiters"""
        first = BeaconConnectionError("192.168.1.114", 8085, "closed by peer")
        monitor.fail(first)
        monitor.fail(BeaconConnectionError("192.168.1.114", 8085, "other"))

        assert monitor.failure is first
        with pytest.raises(BeaconConnectionError, match="closed by peer"):
            monitor.raise_if_failed()

    def test_raise_if_failed_noop(self, monitor):
        """Test nothing is raised while the stream is healthy"""
        monitor.raise_if_failed()

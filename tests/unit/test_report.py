"""Unit tests for run reports."""

import json

from roku_deeplink.beacons import VIDEO_CONDITION, BeaconCategory, ContentType, Outcome
from roku_deeplink.exceptions import BeaconConnectionError, BeaconTimeoutError
from roku_deeplink.report import analyze_timings, render_json, render_text
from roku_deeplink.sequencer import INPUT_TEST, LAUNCH_TEST, PhaseResult, RunResult

VOD_TIMINGS = {
    BeaconCategory.APP_LAUNCH_COMPLETE: 2000,
    BeaconCategory.VOD_START_INITIATE: 2878,
    BeaconCategory.VOD_START_COMPLETE: 1419,
}


def passed_launch() -> PhaseResult:
    return PhaseResult(
        name=LAUNCH_TEST,
        command="launch",
        expected=[BeaconCategory.APP_LAUNCH_COMPLETE, VIDEO_CONDITION],
        outcome=Outcome(
            passed=True,
            duration_ms=4400,
            beacons_found=[
                BeaconCategory.APP_LAUNCH_COMPLETE,
                BeaconCategory.VOD_START_INITIATE,
                BeaconCategory.VOD_START_COMPLETE,
            ],
            content_type=ContentType.VOD,
        ),
        timings=dict(VOD_TIMINGS),
    )


class TestAnalyzeTimings:
    """Tests for certification timing checks"""

    def test_vod_within_limits(self):
        """Test a fast VOD launch passes both requirements"""
        report = analyze_timings(VOD_TIMINGS)

        assert [c.label for c in report.checks] == ["App Launch Duration", "VOD Playback Start"]
        assert report.within_limits is True
        assert report.content_type == "VOD"
        assert report.total_to_video_ms == 3419
        assert report.initiate_timebases == (("VOD Initiate TimeBase", 2878),)

    def test_slow_launch_exceeds_limit(self):
        """Test launch over 15 seconds fails Cert Req 3.2"""
        report = analyze_timings({BeaconCategory.APP_LAUNCH_COMPLETE: 15001})

        assert report.within_limits is False
        assert report.checks[0].requirement == "Cert Req 3.2"
        assert report.total_to_video_ms is None

    def test_live_playback_limit(self):
        """Test Live playback over 8 seconds fails Cert Req 3.6"""
        report = analyze_timings({BeaconCategory.LIVE_START_COMPLETE: 8500})

        assert report.checks[0].label == "Live Playback Start"
        assert report.checks[0].within_limit is False
        assert report.content_type == "Live"
        assert report.total_to_video_ms is None

    def test_limit_is_inclusive(self):
        """Test a value exactly at the limit passes"""
        assert analyze_timings({BeaconCategory.VOD_START_COMPLETE: 8000}).within_limits is True

    def test_missing_timings(self):
        """Test beacons without values produce no checks"""
        report = analyze_timings({BeaconCategory.APP_DIALOG_INITIATE: None})

        assert report.checks == ()
        assert report.within_limits is True


class TestRenderText:
    """Tests for the human-readable summary"""

    def test_passed_run(self):
        """Test summary of a passing launch-only run"""
        result = RunResult(configuration={}, test_id="nightly-1", phases=[passed_launch()])

        text = render_text(result)

        assert "Test ID: nightly-1" in text
        assert "Deep Link Launch Test: PASSED" in text
        assert "App Launch Duration: 2000ms (2.0s) - PASS [Cert Req 3.2]" in text
        assert "VOD Initiate TimeBase: 2878ms (2.9s after app launch)" in text
        assert "Total Time to VOD Video: 3419ms (3.4s)" in text
        assert text.endswith("Overall: PASSED (1/1 tests passed)")

    def test_failed_and_skipped_phases(self):
        """Test failures show the error and recent lines, skips show the reason"""
        failed = PhaseResult(
            name=LAUNCH_TEST,
            command="launch",
            expected=[BeaconCategory.APP_LAUNCH_COMPLETE, VIDEO_CONDITION],
            outcome=Outcome(
                passed=False,
                duration_ms=30000,
                beacons_found=[BeaconCategory.APP_LAUNCH_COMPLETE],
                error=BeaconTimeoutError([VIDEO_CONDITION], 30000),
            ),
            timings={BeaconCategory.APP_LAUNCH_COMPLETE: 2000},
            recent_lines=["AppLaunchComplete Duration(2000 ms)"],
        )
        skipped = PhaseResult(
            name=INPUT_TEST,
            command="input",
            expected=[VIDEO_CONDITION],
            skipped=True,
            skip_reason="App did not launch properly",
        )
        result = RunResult(configuration={}, phases=[failed, skipped])

        text = render_text(result)

        assert "Deep Link Launch Test: FAILED" in text
        assert "Error: " in text
        assert "    AppLaunchComplete Duration(2000 ms)" in text
        assert "Deep Link Input Test: SKIPPED" in text
        assert "Reason: App did not launch properly" in text
        assert text.endswith("Overall: FAILED (0/2 tests passed)")

    def test_aborted_run(self):
        """Test an aborted run names the error category"""
        error = BeaconConnectionError("192.168.1.114", 8085, "connection refused")
        result = RunResult(configuration={}, aborted=error)

        text = render_text(result)

        assert "Run aborted (ConnectionError):" in text
        assert text.endswith("Overall: FAILED (0/0 tests passed)")

    def test_aborted_mid_phase(self):
        """Test an abort inside a phase shows the phase, elapsed time and raw lines"""
        result = RunResult(
            configuration={},
            aborted=BeaconConnectionError("192.168.1.114", 8085, "closed by peer"),
            aborted_phase=LAUNCH_TEST,
            aborted_elapsed_ms=1250,
            recent_lines=["AppLaunchComplete Duration(2000 ms)"],
        )

        text = render_text(result)
        data = json.loads(render_json(result))

        assert "Run aborted during Deep Link Launch Test after 1250ms (ConnectionError):" in text
        assert "    AppLaunchComplete Duration(2000 ms)" in text
        assert data["aborted"]["phase"] == LAUNCH_TEST
        assert data["aborted"]["phase_elapsed_ms"] == 1250
        assert data["aborted"]["recent_event_lines"] == ["AppLaunchComplete Duration(2000 ms)"]


class TestRenderJson:
    """Tests for the JSON report"""

    def test_document_shape(self):
        """Test counts, per-test fields, and timing analysis"""
        result = RunResult(
            configuration={"ip": "192.168.1.114"},
            run_id="run-1",
            test_id="ci-42",
            phases=[passed_launch()],
            sign_in_duration_ms=5000,
        )

        data = json.loads(render_json(result))

        assert data["success"] is True
        assert data["total_tests"] == 1
        assert data["passed_tests"] == 1
        assert data["failed_tests"] == 0
        assert data["test_id"] == "ci-42"
        assert data["sign_in_duration_ms"] == 5000
        assert data["configuration"] == {"ip": "192.168.1.114"}
        test = data["tests"][0]
        assert test["name"] == LAUNCH_TEST
        assert test["passed"] is True
        assert test["content_type"] == "VOD"
        assert test["beacon_timings"]["VODStartComplete"] == 1419
        assert test["timing_analysis"]["within_limits"] is True
        assert test["timing_analysis"]["total_to_video_ms"] == 3419
        assert len(test["timing_analysis"]["checks"]) == 2

    def test_skipped_test(self):
        """Test a skipped phase serializes as not passed with its reason"""
        skipped = PhaseResult(
            name=INPUT_TEST,
            command="input",
            expected=[VIDEO_CONDITION],
            skipped=True,
            skip_reason="Failed to launch app normally",
        )

        data = json.loads(render_json(RunResult(configuration={}, phases=[skipped])))

        assert data["success"] is False
        assert data["failed_tests"] == 1
        assert data["tests"][0]["skipped"] is True
        assert data["tests"][0]["passed"] is False
        assert data["tests"][0]["skip_reason"] == "Failed to launch app normally"

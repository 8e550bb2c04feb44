"""Run reports: certification timing analysis plus text and JSON rendering."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass

from roku_deeplink.beacons import BeaconCategory
from roku_deeplink.const import APP_LAUNCH_LIMIT_MS, VIDEO_START_LIMIT_MS
from roku_deeplink.sequencer import PhaseResult, RunResult

__all__ = ["TimingCheck", "TimingReport", "analyze_timings", "render_json", "render_text"]


@dataclass(frozen=True)
class TimingCheck:
    """One measured beacon duration against its certification limit."""

    label: str
    requirement: str
    value_ms: int
    limit_ms: int

    @property
    def within_limit(self) -> bool:
        return self.value_ms <= self.limit_ms


@dataclass(frozen=True)
class TimingReport:
    """Timing analysis of one phase."""

    checks: tuple[TimingCheck, ...]
    initiate_timebases: tuple[tuple[str, int], ...]
    content_type: str | None = None
    total_to_video_ms: int | None = None

    @property
    def within_limits(self) -> bool:
        return all(check.within_limit for check in self.checks)


def analyze_timings(timings: Mapping[str, int | None]) -> TimingReport:
    """Check beacon timings against certification requirements 3.2 and 3.6.

    App launch must complete within 15 s and playback must start within 8 s.
    When both a launch and a playback start are known, the total time to
    video is their sum.
    """
    checks: list[TimingCheck] = []
    launch = timings.get(BeaconCategory.APP_LAUNCH_COMPLETE)
    if launch is not None:
        checks.append(TimingCheck("App Launch Duration", "Cert Req 3.2", launch, APP_LAUNCH_LIMIT_MS))

    timebases: list[tuple[str, int]] = []
    video_start: tuple[str, int] | None = None
    for content_type, initiate, complete in (
        ("VOD", BeaconCategory.VOD_START_INITIATE, BeaconCategory.VOD_START_COMPLETE),
        ("Live", BeaconCategory.LIVE_START_INITIATE, BeaconCategory.LIVE_START_COMPLETE),
    ):
        timebase = timings.get(initiate)
        if timebase is not None:
            timebases.append((f"{content_type} Initiate TimeBase", timebase))
        start = timings.get(complete)
        if start is not None:
            checks.append(TimingCheck(f"{content_type} Playback Start", "Cert Req 3.6", start, VIDEO_START_LIMIT_MS))
            if video_start is None:
                video_start = (content_type, start)

    total = None
    content = None
    if launch is not None and video_start is not None:
        content, start_ms = video_start
        total = launch + start_ms
    elif video_start is not None:
        content = video_start[0]

    return TimingReport(
        checks=tuple(checks),
        initiate_timebases=tuple(timebases),
        content_type=content,
        total_to_video_ms=total,
    )


def _seconds(ms: int) -> str:
    return f"{ms / 1000:.1f}s"


def _render_timings(report: TimingReport) -> list[str]:
    lines: list[str] = []
    if not report.checks and not report.initiate_timebases:
        return lines
    lines.append("  Timing Analysis:")
    for check in report.checks:
        verdict = "PASS" if check.within_limit else f"FAIL - EXCEEDS {check.limit_ms // 1000}s LIMIT"
        measured = f"{check.value_ms}ms ({_seconds(check.value_ms)})"
        lines.append(f"    {check.label}: {measured} - {verdict} [{check.requirement}]")
    for label, value in report.initiate_timebases:
        lines.append(f"    {label}: {value}ms ({_seconds(value)} after app launch)")
    total = report.total_to_video_ms
    if total is not None:
        lines.append(f"    Total Time to {report.content_type} Video: {total}ms ({_seconds(total)})")
    return lines


def _render_phase(phase: PhaseResult) -> list[str]:
    if phase.skipped:
        status = "SKIPPED"
    else:
        status = "PASSED" if phase.passed else "FAILED"
    lines = [f"{phase.name}: {status}"]
    if phase.skip_reason:
        lines.append(f"  Reason: {phase.skip_reason}")
    outcome = phase.outcome
    if outcome is not None:
        lines.append(f"  Duration: {outcome.duration_ms}ms")
        lines.append(f"  Beacons: {', '.join(outcome.beacons_found) or 'none'}")
        if outcome.content_type:
            lines.append(f"  Content type: {outcome.content_type}")
        if outcome.error:
            lines.append(f"  Error: {outcome.error}")
    lines.extend(_render_timings(analyze_timings(phase.timings)))
    if phase.recent_lines:
        lines.append("  Recent event stream lines:")
        lines.extend(f"    {line}" for line in phase.recent_lines)
    return lines


def render_text(result: RunResult) -> str:
    """Human-readable run summary."""
    lines = ["Test Results Summary", "=" * 40]
    if result.test_id:
        lines.append(f"Test ID: {result.test_id}")
    if result.sign_in_duration_ms is not None:
        lines.append(f"Sign-in: {result.sign_in_duration_ms}ms ({_seconds(result.sign_in_duration_ms)})")
    for phase in result.phases:
        lines.extend(_render_phase(phase))
    if result.aborted:
        where = ""
        if result.aborted_phase:
            where = f" during {result.aborted_phase}"
            if result.aborted_elapsed_ms is not None:
                where = f"{where} after {result.aborted_elapsed_ms}ms"
        lines.append(f"Run aborted{where} ({result.aborted.taxonomy}): {result.aborted}")
        if result.recent_lines:
            lines.append("  Recent event stream lines:")
            lines.extend(f"    {line}" for line in result.recent_lines)
    total = len(result.phases)
    lines.append("=" * 40)
    lines.append(f"Overall: {'PASSED' if result.success else 'FAILED'} ({result.passed_count}/{total} tests passed)")
    return "\n".join(lines)


def render_json(result: RunResult) -> str:
    """JSON document of the run, with the timing analysis of each phase."""
    data = result.to_dict()
    tests: list[dict[str, object]] = []
    for phase in result.phases:
        report = analyze_timings(phase.timings)
        test = phase.to_dict()
        test["timing_analysis"] = {
            "within_limits": report.within_limits,
            "checks": [
                {
                    "label": check.label,
                    "requirement": check.requirement,
                    "value_ms": check.value_ms,
                    "limit_ms": check.limit_ms,
                    "within_limit": check.within_limit,
                }
                for check in report.checks
            ],
            "total_to_video_ms": report.total_to_video_ms,
        }
        tests.append(test)
    data["tests"] = tests
    return json.dumps(data, indent=2)

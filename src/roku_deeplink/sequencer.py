"""Test sequencer: sign-in, deep-link launch test, deep-link input test.

Every phase starts from a reset monitor and a fresh baseline, so beacons seen
in an earlier phase can never satisfy a later one. The input test needs the
app running: without sign-in the app is sent Home and relaunched plainly
first, and when that warm-up fails the input test is reported as skipped.
"""

from __future__ import annotations

import asyncio
import datetime
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from roku_deeplink.beacons import VIDEO_CONDITION, BeaconCategory, BeaconMonitor, BeaconWaitCoordinator, Outcome
from roku_deeplink.config import RunConfig
from roku_deeplink.const import FAILURE_LOG_LINES, RELAUNCH_WAIT_CAP_SECONDS
from roku_deeplink.ecp import CommandDispatcher
from roku_deeplink.exceptions import BeaconConnectionError, CommandError, DeepLinkError, ScriptError
from roku_deeplink.instrumentation import elapsed_ms
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.metrics import record_phase
from roku_deeplink.phase_context import get_run_id, phase_scope, run_scope
from roku_deeplink.rasp import RaspInterpreter, SecretProvider
from roku_deeplink.transport import EventStream

__all__ = [
    "INPUT_TEST",
    "LAUNCH_TEST",
    "DeepLinkTestSequencer",
    "PhaseResult",
    "RunResult",
    "run_certification",
]

logger = get_logger(__name__)

SIGN_IN = "Sign-In"
LAUNCH_TEST = "Deep Link Launch Test"
INPUT_TEST = "Deep Link Input Test"
WARM_UP = "Normal Launch"


@dataclass
class PhaseResult:
    """Result of one certification test phase.

    Attributes:
        name: Phase name
        command: ECP command under test (launch or input)
        expected: Conditions the phase waited for
        outcome: Wait outcome; None when the phase was skipped
        timings: Beacon timings observed during the phase
        skipped: The phase could not run (e.g. warm-up relaunch failed)
        skip_reason: Why the phase was skipped
        recent_lines: Last raw event lines, attached when the phase did not pass

    """

    name: str
    command: str
    expected: list[str]
    outcome: Outcome | None = None
    timings: dict[str, int | None] = field(default_factory=dict)
    skipped: bool = False
    skip_reason: str | None = None
    recent_lines: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """A skipped phase never counts as passed."""
        return not self.skipped and self.outcome is not None and self.outcome.passed

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "name": self.name,
            "command": self.command,
            "expected_beacons": list(self.expected),
            "passed": self.passed,
            "skipped": self.skipped,
            "beacon_timings": dict(self.timings),
        }
        if self.skip_reason:
            data["skip_reason"] = self.skip_reason
        if self.outcome is not None:
            data.update(self.outcome.to_dict())
            data["passed"] = self.passed
        if self.recent_lines:
            data["recent_event_lines"] = list(self.recent_lines)
        return data


@dataclass
class RunResult:
    """Result of a whole certification run."""

    configuration: dict[str, object]
    run_id: str | None = None
    test_id: str | None = None
    phases: list[PhaseResult] = field(default_factory=list)
    sign_in_duration_ms: int | None = None
    aborted: DeepLinkError | None = None
    aborted_phase: str | None = None
    aborted_elapsed_ms: int | None = None
    recent_lines: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.datetime.now(datetime.UTC).isoformat())

    @property
    def passed_count(self) -> int:
        return sum(1 for phase in self.phases if phase.passed)

    @property
    def success(self) -> bool:
        """True when the run was not aborted and every phase that ran passed."""
        return self.aborted is None and bool(self.phases) and self.passed_count == len(self.phases)

    def phase(self, name: str) -> PhaseResult | None:
        return next((p for p in self.phases if p.name == name), None)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "total_tests": len(self.phases),
            "passed_tests": self.passed_count,
            "failed_tests": len(self.phases) - self.passed_count,
            "tests": [phase.to_dict() for phase in self.phases],
            "sign_in_duration_ms": self.sign_in_duration_ms,
            "aborted": self._aborted_dict(),
            "run_id": self.run_id,
            "test_id": self.test_id,
            "timestamp": self.timestamp,
            "configuration": dict(self.configuration),
        }

    def _aborted_dict(self) -> dict[str, object] | None:
        if self.aborted is None:
            return None
        data = self.aborted.to_dict()
        data["phase"] = self.aborted_phase
        data["phase_elapsed_ms"] = self.aborted_elapsed_ms
        data["recent_event_lines"] = list(self.recent_lines)
        return data


class DeepLinkTestSequencer:
    """Runs the certification phases for one configuration."""

    def __init__(
        self,
        config: RunConfig,
        monitor: BeaconMonitor,
        dispatcher: CommandDispatcher,
        coordinator: BeaconWaitCoordinator,
        interpreter: RaspInterpreter | None = None,
    ) -> None:
        self.config = config
        self.monitor = monitor
        self.dispatcher = dispatcher
        self.coordinator = coordinator
        self.interpreter = interpreter or RaspInterpreter(dispatcher)
        self._active: tuple[str, float] | None = None
        if config.expect_beacon:
            monitor.watch(config.expect_beacon)

    @contextmanager
    def _tracked(self, name: str) -> Iterator[None]:
        """Phase scope that stays recorded as active when its body raises."""
        self._active = (name, time.monotonic())
        with phase_scope(name):
            yield
        self._active = None

    async def run(self) -> RunResult:
        """Run sign-in (when configured) and the enabled test phases.

        ScriptError, BeaconConnectionError and a failed sign-in command abort
        the run; the result then carries the error in ``aborted`` together
        with the phase that was active, its elapsed time and the last raw
        event lines.
        """
        result = RunResult(
            configuration=self.config.echo(),
            run_id=get_run_id(),
            test_id=self.config.test_id,
        )
        self._active = None
        try:
            if self.config.signed_in:
                result.sign_in_duration_ms = await self._sign_in()
            await self._run_tests(result)
        except (ScriptError, BeaconConnectionError, CommandError) as e:
            result.aborted = e
            result.recent_lines = self.monitor.recent_lines(FAILURE_LOG_LINES)
            if self._active is not None:
                name, start = self._active
                result.aborted_phase = name
                result.aborted_elapsed_ms = elapsed_ms(start)
                record_phase(name, "aborted")
            logger.error(
                "Test execution failed: %s",
                e,
                extra={"error_type": e.taxonomy, "phase": result.aborted_phase or "-"},
            )
        return result

    async def _sign_in(self) -> int:
        with self._tracked(SIGN_IN):
            if self.config.script_path is None:
                msg = "Signed-in mode requires a RASP script"
                raise ScriptError(msg)
            logger.info("Handling sign-in process...")
            duration = await self.interpreter.run_file(self.config.script_path)
            logger.info("Sign-in completed in %dms", duration)
            await asyncio.sleep(self.config.settle_seconds)
            return duration

    async def _run_tests(self, result: RunResult) -> None:
        # Let stale beacons from before the run drain
        await asyncio.sleep(self.config.settle_seconds)
        self.monitor.raise_if_failed()
        logger.info("Ready to test deep links")

        if not self.config.input_only:
            launch = await self._run_phase(
                LAUNCH_TEST,
                "launch",
                lambda: self.dispatcher.launch(params=self.config.content_params),
                require_launch=True,
            )
            result.phases.append(launch)
            if launch.outcome is not None and isinstance(launch.outcome.error, CommandError):
                logger.error("Launch command failed - app may not be installed")
                return
            await asyncio.sleep(self.config.settle_seconds)

        if not self.config.launch_only:
            result.phases.append(await self._input_test())

    def _expected(self, require_launch: bool) -> list[str]:
        expected: list[str] = []
        if require_launch:
            expected.append(BeaconCategory.APP_LAUNCH_COMPLETE)
        if self.config.media_requires_video:
            expected.append(VIDEO_CONDITION)
        if self.config.expect_beacon:
            expected.append(self.config.expect_beacon)
        return expected

    async def _run_phase(
        self,
        name: str,
        command: str,
        send: Callable[[], Awaitable[bool]],
        *,
        require_launch: bool,
    ) -> PhaseResult:
        with self._tracked(name):
            expected = self._expected(require_launch)
            logger.info(
                "Starting test: %s",
                name,
                extra={"command": command, "content_id": self.config.content_id, "media_type": self.config.media_type},
            )
            logger.info("Expected beacons: %s", ", ".join(expected) or "none")

            self.monitor.reset()
            baseline = self.monitor.snapshot()
            try:
                await send()
            except CommandError as e:
                outcome = Outcome(passed=False, duration_ms=0, error=e)
            else:
                outcome = await self.coordinator.wait_smart(
                    require_launch=require_launch,
                    media_requires_video=self.config.media_requires_video,
                    baseline=baseline,
                    timeout=self.config.wait_seconds,
                    extra_category=self.config.expect_beacon,
                )

            phase = PhaseResult(
                name=name,
                command=command,
                expected=expected,
                outcome=outcome,
                timings=self.monitor.timings,
            )
            if phase.passed:
                logger.info("%s PASSED", name)
                if outcome.playback_started:
                    logger.info("%s playback started successfully", outcome.content_type)
                record_phase(name, "passed")
            else:
                phase.recent_lines = self.monitor.recent_lines(FAILURE_LOG_LINES)
                logger.error("%s FAILED: %s", name, outcome.error)
                if self.config.media_requires_video and not outcome.playback_started:
                    logger.error("Video playback failed - content may not exist or app error occurred")
                record_phase(name, "failed")
            return phase

    async def _input_test(self) -> PhaseResult:
        logger.info("Preparing for Deep Link Input Test (app running scenario)")
        if self.config.signed_in:
            logger.info("Using already running signed-in app...")
        else:
            skip_reason = await self._warm_up()
            if skip_reason is not None:
                logger.error("%s, skipping input test", skip_reason)
                record_phase(INPUT_TEST, "skipped")
                return PhaseResult(
                    name=INPUT_TEST,
                    command="input",
                    expected=self._expected(require_launch=False),
                    skipped=True,
                    skip_reason=skip_reason,
                    recent_lines=self.monitor.recent_lines(FAILURE_LOG_LINES),
                )

        logger.info("App is now running, ready for input test")
        await asyncio.sleep(self.config.relaunch_settle_seconds)
        return await self._run_phase(
            INPUT_TEST,
            "input",
            lambda: self.dispatcher.input(self.config.content_params),
            require_launch=False,
        )

    async def _warm_up(self) -> str | None:
        """Close and plainly relaunch the app; returns a skip reason on failure."""
        with self._tracked(WARM_UP):
            logger.info("Closing app to ensure clean state...")
            try:
                await self.dispatcher.keypress("Home")
            except CommandError as e:
                logger.warning("Home keypress failed, continuing: %s", e)
            await asyncio.sleep(self.config.relaunch_settle_seconds)

            logger.info("Launching app normally...")
            self.monitor.reset()
            baseline = self.monitor.snapshot()
            try:
                await self.dispatcher.launch()
            except CommandError as e:
                return f"Failed to launch app normally ({e})"

            start = time.monotonic()
            outcome = await self.coordinator.wait_exact(
                [BeaconCategory.APP_LAUNCH_COMPLETE],
                baseline,
                timeout=min(self.config.wait_seconds, RELAUNCH_WAIT_CAP_SECONDS),
            )
            if not outcome.passed:
                logger.warning("Try increasing wait time with --wait 60 for slower apps")
                for line in self.monitor.recent_lines(5):
                    logger.debug("  %s", line)
                return f"App did not launch properly ({outcome.error})"
            logger.info(
                "App launched normally, waiting for stability...",
                extra={"elapsed_ms": elapsed_ms(start)},
            )
            return None


async def run_certification(config: RunConfig, secrets: SecretProvider | None = None) -> RunResult:
    """Open the event stream and control session, then run the sequencer.

    Both connections are released on every exit path. An event stream that
    cannot be opened yields an aborted RunResult rather than an exception.
    """
    monitor = BeaconMonitor(custom_categories=[config.expect_beacon] if config.expect_beacon else ())
    with run_scope(config.test_id) as run_id:
        logger.info(
            "Starting Roku Deep Link Tests",
            extra={"target": config.ip, "app": config.app_id, "content": config.content_id, "type": config.media_type},
        )
        try:
            async with (
                EventStream(config.ip, monitor, port=config.event_port),
                CommandDispatcher(config.ip, config.app_id, port=config.control_port) as dispatcher,
            ):
                sequencer = DeepLinkTestSequencer(
                    config,
                    monitor,
                    dispatcher,
                    BeaconWaitCoordinator(monitor),
                    RaspInterpreter(dispatcher, secrets),
                )
                return await sequencer.run()
        except BeaconConnectionError as e:
            logger.error("Test execution failed: %s", e)
            return RunResult(configuration=config.echo(), run_id=run_id, test_id=config.test_id, aborted=e)

"""Command line entry point: ``roku-deeplink run | validate-script | examples``."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path

import dotenv
import uvloop

from roku_deeplink.config import RunConfig
from roku_deeplink.const import (
    DEFAULT_APP_ID,
    DEFAULT_CONTENT_ID,
    DEFAULT_MEDIA_TYPE,
    DEFAULT_WAIT_SECONDS,
    ROKU_DL_VERSION,
)
from roku_deeplink.exceptions import ConfigError
from roku_deeplink.logging_abstraction import configure_logging, get_logger
from roku_deeplink.metrics import start_metrics_server
from roku_deeplink.rasp import RaspValidator
from roku_deeplink.report import render_json, render_text
from roku_deeplink.sequencer import RunResult, run_certification

__all__ = ["build_parser", "main"]

logger = get_logger(__name__)

EXAMPLES = """\
Usage Examples

Basic deep link test (non-signed-in app):
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie

Test signed-in app with RASP script (RASP_LOGIN / RASP_PASSWORD from the environment or --env):
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --signed-in --script ./signin.rasp --env .env

Test with retry for flaky apps:
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --retry

Test published channel:
  roku-deeplink run --ip 192.168.1.114 --app 151908 --content 1234 --type movie

Only test launch command:
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --launch-only

Longer wait time for slow apps:
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --wait 60

CI/CD with test tracking:
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --test-id "nightly-$(date +%Y%m%d)" --json

Monitor additional custom beacon:
  roku-deeplink run --ip 192.168.1.114 --content 1234 --type movie --expect-beacon AppCustomEvent

Check a RASP script without a device:
  roku-deeplink validate-script ./signin.rasp
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roku-deeplink",
        description="Test Roku deep linking and certification beacons",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {ROKU_DL_VERSION}")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the deep link certification tests against a device")
    run.add_argument("-i", "--ip", required=True, help="Roku device IP address")
    run.add_argument("-a", "--app", default=DEFAULT_APP_ID, help='App ID (use "dev" for sideloaded)')
    run.add_argument("-c", "--content", default=DEFAULT_CONTENT_ID, help="Content ID to test")
    run.add_argument("-t", "--type", default=DEFAULT_MEDIA_TYPE, help="Media type (movie, series, episode, etc.)")
    run.add_argument("-w", "--wait", type=float, default=DEFAULT_WAIT_SECONDS, help="Wait time for beacons (seconds)")
    run.add_argument("--launch-only", action="store_true", help="Only test launch command (skip input test)")
    run.add_argument("--input-only", action="store_true", help="Only test input command (skip launch test)")
    run.add_argument("--signed-in", action="store_true", help="Test app that requires user to be signed in")
    run.add_argument("-s", "--script", type=Path, default=None, help="Path to RASP sign-in script file")
    run.add_argument("--retry", action="store_true", help="Re-run the whole test once if it fails")
    run.add_argument("--test-id", default=None, help="Test identifier for CI/CD tracking")
    run.add_argument("--expect-beacon", default=None, help="Additional beacon to monitor for")
    run.add_argument("--json", action="store_true", help="Output results in JSON format")
    run.add_argument("-v", "--verbose", action="store_true", help="Show detailed device event logs")
    run.add_argument("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port")
    run.add_argument("--env", type=Path, default=None, help="Path to an environment file with RASP secrets")

    validate = sub.add_parser("validate-script", help="Validate RASP script syntax")
    validate.add_argument("script_path", type=Path)
    validate.add_argument("--json", action="store_true", help="Output the result in JSON format")

    sub.add_parser("examples", help="Show usage examples")
    return parser


def _load_env(env_path: Path) -> None:
    env_path = env_path.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return
    if dotenv.load_dotenv(env_path, override=True):
        logger.info("Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def _config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig.build(
        ip=args.ip,
        app_id=args.app,
        content_id=args.content,
        media_type=args.type,
        wait_seconds=args.wait,
        launch_only=args.launch_only,
        input_only=args.input_only,
        signed_in=args.signed_in,
        script_path=args.script,
        expect_beacon=args.expect_beacon,
        test_id=args.test_id,
        retry=args.retry,
    )


def _run(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.env:
        _load_env(args.env)
    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    result: RunResult = uvloop.run(run_certification(config))
    if not result.success and config.retry:
        logger.warning("Test run failed, retrying once...")
        result = uvloop.run(run_certification(config))

    print(render_json(result) if args.json else render_text(result))
    return 0 if result.success else 1


def _validate(args: argparse.Namespace) -> int:
    result = RaspValidator().validate_file(args.script_path)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.valid:
        print("RASP script is valid")
        print(f"Steps: {result.step_count}")
        print(f"Estimated duration: {result.estimated_duration_seconds}s")
    else:
        print("RASP script has errors:")
        for error in result.errors:
            print(f"  - {error}")
    return 0 if result.valid else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=getattr(args, "verbose", False))

    if args.command == "examples":
        print(EXAMPLES)
        return 0
    if args.command == "validate-script":
        return _validate(args)
    try:
        return _run(args)
    except KeyboardInterrupt:
        logger.warning("Test interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())

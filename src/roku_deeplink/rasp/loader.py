"""RASP script loading.

Scripts are YAML documents::

    params:
      rasp_version: 1
      default_keypress_wait: 2
      channels:
        MyChannel: dev
    steps:
      - launch: MyChannel
      - press: ok
      - text: script-login
      - pause: 5

``parse_script`` turns the document into the immutable step model, reporting
every structural problem at once. Key names are not checked here; unknown
keys pass through to the device so newer key names keep working.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import yaml

from roku_deeplink.exceptions import ScriptError
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.rasp.models import (
    DEFAULT_STEP_DELAY_SECONDS,
    LaunchStep,
    PauseStep,
    PressStep,
    RaspParams,
    RaspScript,
    Step,
    TextStep,
)

__all__ = [
    "STEP_KINDS",
    "coerce_number",
    "load_script",
    "parse_script",
    "read_document",
]

logger = get_logger(__name__)

STEP_KINDS = ("launch", "press", "text", "pause")


def coerce_number(value: object) -> float | None:
    """Return ``value`` as a float when it is (or spells) a finite number, else None.

    Infinity and NaN (``.inf``, ``.nan``, ``"nan"``) are not numbers here.
    """
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def read_document(path: str | Path) -> object:
    """Read and YAML-decode a script file without interpreting it.

    Raises:
        ScriptError: The file is missing or is not valid YAML

    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        msg = f"RASP script file not found: {path}"
        raise ScriptError(msg) from e
    except OSError as e:
        msg = f"Failed to read RASP script {path}: {e}"
        raise ScriptError(msg) from e

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        msg = f"Failed to parse RASP script: {e}"
        raise ScriptError(msg) from e


def _parse_params(raw: object, problems: list[str]) -> RaspParams:
    if raw is None:
        return RaspParams()
    if not isinstance(raw, Mapping):
        problems.append("params must be a mapping")
        return RaspParams()

    version = raw.get("rasp_version")
    if version is not None and coerce_number(version) is None:
        problems.append("rasp_version must be a number")
        version = None

    delay = DEFAULT_STEP_DELAY_SECONDS
    raw_delay = raw.get("default_keypress_wait")
    if raw_delay is not None:
        parsed = coerce_number(raw_delay)
        if parsed is None or parsed < 0:
            problems.append("default_keypress_wait must be a number")
        else:
            delay = parsed

    channels: dict[str, str] = {}
    raw_channels = raw.get("channels")
    if raw_channels is not None:
        if isinstance(raw_channels, Mapping):
            channels = {str(name): str(app_id) for name, app_id in raw_channels.items()}
        else:
            problems.append("channels must be a mapping")

    return RaspParams(
        version=coerce_number(version),
        default_step_delay_seconds=delay,
        channel_map=MappingProxyType(channels),
    )


def _parse_step(index: int, raw: object, problems: list[str]) -> Step | None:
    label = f"Step {index}"
    if not isinstance(raw, Mapping):
        problems.append(f"{label}: Must be a single-key mapping")
        return None
    if len(raw) != 1:
        problems.append(f"{label}: Must contain exactly one action")
        return None

    ((kind, value),) = raw.items()
    match kind:
        case "launch" if isinstance(value, int) and not isinstance(value, bool):
            # Unquoted published channel ids (launch: 151908) decode as ints
            return LaunchStep(str(value))
        case "launch" | "press" | "text":
            if not isinstance(value, str) or not value:
                problems.append(f"{label}: {kind} requires a non-empty string")
                return None
            if kind == "launch":
                return LaunchStep(value)
            if kind == "press":
                return PressStep(value)
            return TextStep(value)
        case "pause":
            seconds = coerce_number(value)
            if seconds is None or seconds < 0:
                problems.append(f"{label}: pause requires a non-negative number of seconds")
                return None
            return PauseStep(seconds)
        case _:
            problems.append(f'{label}: Unknown step type "{kind}"')
            return None


def parse_script(document: object, source: str | None = None) -> RaspScript:
    """Build a RaspScript from a decoded YAML document.

    Args:
        document: Result of ``yaml.safe_load``
        source: Where the document came from, for messages

    Raises:
        ScriptError: Listing every structural problem found

    """
    problems: list[str] = []
    if not isinstance(document, Mapping):
        msg = "Script file is empty or invalid YAML"
        raise ScriptError(msg)

    params = _parse_params(document.get("params"), problems)

    steps: list[Step] = []
    raw_steps = document.get("steps")
    if raw_steps is None:
        problems.append('RASP script must contain a "steps" list')
    elif not isinstance(raw_steps, list):
        problems.append('"steps" must be a list')
    else:
        for index, raw in enumerate(raw_steps, start=1):
            step = _parse_step(index, raw, problems)
            if step is not None:
                steps.append(step)

    if problems:
        where = f" {source}" if source else ""
        msg = f"Invalid RASP script{where}: {'; '.join(problems)}"
        raise ScriptError(msg, problems)

    return RaspScript(params=params, steps=tuple(steps), source=source)


def load_script(path: str | Path) -> RaspScript:
    """Read, decode and parse a RASP script file.

    Raises:
        ScriptError: Missing file, YAML error, or structural problems

    """
    script = parse_script(read_document(path), source=str(path))
    logger.debug("Loaded RASP script", extra={"path": str(path), "steps": len(script)})
    return script

"""Static RASP script checker.

Reads a script without touching any device, collects every problem instead
of stopping at the first, and estimates how long the script will run.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from roku_deeplink.exceptions import ScriptError
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.rasp.keys import is_known_key
from roku_deeplink.rasp.loader import STEP_KINDS, coerce_number, read_document
from roku_deeplink.rasp.models import DEFAULT_STEP_DELAY_SECONDS

__all__ = ["RaspValidator", "ValidationResult"]

logger = get_logger(__name__)

# Estimated seconds per step kind
LAUNCH_COST_SECONDS = 3.0
PRESS_COST_SECONDS = 0.1
CHARACTER_COST_SECONDS = 0.05


@dataclass
class ValidationResult:
    """Outcome of a static script check."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    step_count: int = 0
    estimated_duration_seconds: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "step_count": self.step_count,
            "estimated_duration_seconds": self.estimated_duration_seconds,
        }


class RaspValidator:
    """Validates RASP scripts and estimates their duration."""

    def validate_file(self, path: str | Path) -> ValidationResult:
        """Read ``path`` and validate its contents; read failures become errors."""
        try:
            document = read_document(path)
        except ScriptError as e:
            return ValidationResult(valid=False, errors=[str(e)])
        result = self.validate_document(document)
        logger.debug(
            "Validated RASP script",
            extra={"path": str(path), "valid": result.valid, "errors": len(result.errors)},
        )
        return result

    def validate_document(self, document: object) -> ValidationResult:
        """Validate an already decoded YAML document."""
        errors: list[str] = []
        if not isinstance(document, Mapping):
            return ValidationResult(valid=False, errors=["Script file is empty or invalid YAML"])

        params = document.get("params")
        step_delay = DEFAULT_STEP_DELAY_SECONDS
        if params is not None:
            step_delay = self._validate_params(params, errors)

        step_count = 0
        estimate = 0
        steps = document.get("steps")
        if steps is None:
            errors.append('Script must contain a "steps" section')
        elif not isinstance(steps, list):
            errors.append('"steps" must be a list')
        else:
            step_count = len(steps)
            estimate = self._validate_steps(steps, step_delay, errors)

        return ValidationResult(
            valid=not errors,
            errors=errors,
            step_count=step_count,
            estimated_duration_seconds=estimate,
        )

    def _validate_params(self, params: object, errors: list[str]) -> float:
        """Check the params section; returns the step delay to estimate with."""
        if not isinstance(params, Mapping):
            errors.append("params must be a mapping")
            return DEFAULT_STEP_DELAY_SECONDS

        version = params.get("rasp_version")
        if version is not None and coerce_number(version) is None:
            errors.append("rasp_version must be a number")

        step_delay = DEFAULT_STEP_DELAY_SECONDS
        wait = params.get("default_keypress_wait")
        if wait is not None:
            parsed = coerce_number(wait)
            if parsed is None or parsed < 0:
                errors.append("default_keypress_wait must be a number")
            else:
                step_delay = parsed

        channels = params.get("channels")
        if channels is not None and not isinstance(channels, Mapping):
            errors.append("channels must be a mapping")
        return step_delay

    def _validate_steps(self, steps: list[object], step_delay: float, errors: list[str]) -> int:
        total = 0.0
        for index, step in enumerate(steps, start=1):
            total += self._validate_step(index, step, errors)
        # One delay per gap between consecutive steps
        total += step_delay * max(0, len(steps) - 1)
        # Round first so float noise (e.g. 3.0000000000000004) does not add a second
        return math.ceil(round(total, 6))

    def _validate_step(self, index: int, step: object, errors: list[str]) -> float:
        """Check one step; returns its estimated cost in seconds."""
        label = f"Step {index}"
        if not isinstance(step, Mapping):
            errors.append(f"{label}: Must be a single-key mapping")
            return 0.0
        if len(step) != 1:
            errors.append(f"{label}: Must contain exactly one action")
            return 0.0

        ((kind, value),) = step.items()
        if kind not in STEP_KINDS:
            errors.append(f'{label}: Unknown step type "{kind}"')
            return 0.0

        match kind:
            case "launch":
                if not isinstance(value, str) or not value:
                    errors.append(f"{label}: launch requires a string channel ID")
                return LAUNCH_COST_SECONDS
            case "press":
                if not isinstance(value, str) or not value:
                    errors.append(f"{label}: press requires a string key name")
                elif not is_known_key(value):
                    errors.append(f'{label}: "{value}" is not a valid key')
                return PRESS_COST_SECONDS
            case "text":
                if not isinstance(value, str) or not value:
                    errors.append(f"{label}: text requires a string value")
                    return 0.0
                return CHARACTER_COST_SECONDS * len(value)
            case _:
                seconds = coerce_number(value)
                if seconds is None or seconds < 0:
                    errors.append(f"{label}: pause requires a non-negative number of seconds")
                    return 0.0
                return seconds

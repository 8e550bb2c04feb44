"""Parsed RASP script model.

A script is parsed once into a closed set of step variants and never mutated
afterwards. ``Step`` is the tagged union the interpreter dispatches on.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

__all__ = [
    "DEFAULT_STEP_DELAY_SECONDS",
    "LaunchStep",
    "PauseStep",
    "PressStep",
    "RaspParams",
    "RaspScript",
    "Step",
    "TextStep",
]

DEFAULT_STEP_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class LaunchStep:
    """Launch a channel by script alias or literal app id."""

    channel: str

    def describe(self) -> str:
        return f"Launch channel: {self.channel}"


@dataclass(frozen=True)
class PressStep:
    """Press one remote key."""

    key: str

    def describe(self) -> str:
        return f"Press key: {self.key}"


@dataclass(frozen=True)
class TextStep:
    """Type a literal string or a secret placeholder."""

    value: str

    def describe(self) -> str:
        return f"Enter text: {self.value}"


@dataclass(frozen=True)
class PauseStep:
    """Do nothing for a number of seconds."""

    seconds: float

    def describe(self) -> str:
        return f"Wait {self.seconds:g} seconds"


Step = LaunchStep | PressStep | TextStep | PauseStep


@dataclass(frozen=True)
class RaspParams:
    """Script-level parameters.

    Attributes:
        version: ``rasp_version`` as declared by the script, if any
        default_step_delay_seconds: Pause inserted between consecutive steps
        channel_map: Script channel alias -> device app id

    """

    version: float | None = None
    default_step_delay_seconds: float = DEFAULT_STEP_DELAY_SECONDS
    channel_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def resolve_channel(self, ref: str) -> str:
        """Return the mapped app id, or ``ref`` itself when it is not an alias."""
        return self.channel_map.get(ref, ref)


@dataclass(frozen=True)
class RaspScript:
    """An immutable, ordered automation script."""

    params: RaspParams
    steps: tuple[Step, ...]
    source: str | None = None

    def __len__(self) -> int:
        return len(self.steps)

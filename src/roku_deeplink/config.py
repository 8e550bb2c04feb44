"""Run configuration for a certification run."""

from __future__ import annotations

import ipaddress
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from roku_deeplink.const import (
    CONTROL_PORT,
    DEFAULT_APP_ID,
    DEFAULT_CONTENT_ID,
    DEFAULT_MEDIA_TYPE,
    DEFAULT_WAIT_SECONDS,
    EVENT_PORT,
    RELAUNCH_SETTLE_SECONDS,
    SETTLE_SECONDS,
    VIDEO_MEDIA_TYPES,
)
from roku_deeplink.exceptions import ConfigError

__all__ = ["RunConfig"]


class RunConfig(BaseModel):
    """Validated options for one certification run.

    Built from CLI arguments (or directly in code) before any device I/O.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ip: str
    app_id: str = DEFAULT_APP_ID
    content_id: str = DEFAULT_CONTENT_ID
    media_type: str = DEFAULT_MEDIA_TYPE
    wait_seconds: float = DEFAULT_WAIT_SECONDS
    launch_only: bool = False
    input_only: bool = False
    signed_in: bool = False
    script_path: Path | None = None
    expect_beacon: str | None = None
    test_id: str | None = None
    retry: bool = False
    settle_seconds: float = Field(default=SETTLE_SECONDS, ge=0)
    relaunch_settle_seconds: float = Field(default=RELAUNCH_SETTLE_SECONDS, ge=0)
    control_port: int = Field(default=CONTROL_PORT, gt=0, lt=65536)
    event_port: int = Field(default=EVENT_PORT, gt=0, lt=65536)

    @field_validator("ip")
    @classmethod
    def check_ip(cls, value: str) -> str:
        try:
            ipaddress.IPv4Address(value)
        except ValueError as e:
            msg = f"Invalid IP address format: {value}"
            raise ValueError(msg) from e
        return value

    @field_validator("wait_seconds")
    @classmethod
    def check_wait(cls, value: float) -> float:
        if value <= 0:
            msg = "Wait time must be positive"
            raise ValueError(msg)
        return value

    @field_validator("expect_beacon")
    @classmethod
    def blank_beacon_is_none(cls, value: str | None) -> str | None:
        return value.strip() or None if value is not None else None

    @model_validator(mode="after")
    def check_modes(self) -> Self:
        if self.launch_only and self.input_only:
            msg = "Cannot use --launch-only and --input-only together"
            raise ValueError(msg)
        if self.signed_in and self.script_path is None:
            msg = "--signed-in requires --script to specify the RASP sign-in script"
            raise ValueError(msg)
        return self

    @classmethod
    def build(cls, **options: Any) -> RunConfig:
        """Validate ``options`` into a RunConfig.

        Raises:
            ConfigError: One message per invalid option

        """
        try:
            return cls(**options)
        except ValidationError as e:
            problems = [str(err["msg"]).removeprefix("Value error, ") for err in e.errors()]
            raise ConfigError("; ".join(problems)) from e

    @property
    def media_requires_video(self) -> bool:
        """Movie and episode deep links must start video playback."""
        return self.media_type in VIDEO_MEDIA_TYPES

    @property
    def content_params(self) -> dict[str, str]:
        """Query parameters for deep-link launch and input commands."""
        return {"contentId": self.content_id, "mediaType": self.media_type}

    def echo(self) -> dict[str, object]:
        """Configuration summary included in reports."""
        return {
            "ip": self.ip,
            "app_id": self.app_id,
            "content_id": self.content_id,
            "media_type": self.media_type,
            "wait_seconds": self.wait_seconds,
            "launch_only": self.launch_only,
            "input_only": self.input_only,
            "signed_in": self.signed_in,
            "script_path": str(self.script_path) if self.script_path else None,
            "expect_beacon": self.expect_beacon,
        }

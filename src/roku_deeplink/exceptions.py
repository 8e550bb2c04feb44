"""Error taxonomy for deep-link certification runs.

Every error raised by the tester derives from DeepLinkError so callers can
catch the whole family, while the specific subclasses decide how far a
failure propagates (current phase only, or the entire run).
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "BeaconConnectionError",
    "BeaconTimeoutError",
    "CommandError",
    "ConfigError",
    "DeepLinkError",
    "ScriptError",
]


class DeepLinkError(Exception):
    """Base exception for all deep-link tester errors.

    Attributes:
        taxonomy: Stable error category name used in reports

    """

    taxonomy: str = "DeepLinkError"

    def to_dict(self) -> dict[str, object]:
        """Serialize to ``{type, message}`` for JSON reports."""
        return {"type": self.taxonomy, "message": str(self)}


class BeaconConnectionError(DeepLinkError):
    """Event stream unreachable or dropped.

    Raised when:
    - The debug console port refuses or times out on connect
    - The persistent connection closes or errors mid-run

    Note: Named BeaconConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        host: Device address
        port: Event stream port
        reason: Specific failure reason

    """

    taxonomy = "ConnectionError"

    def __init__(self, host: str, port: int, reason: str) -> None:
        """Initialize connection error with endpoint and reason."""
        self.host: str = host
        self.port: int = port
        self.reason: str = reason
        super().__init__(f"Event stream {host}:{port} unavailable: {reason}")


class CommandError(DeepLinkError):
    """Control request rejected by the device or failed on the network.

    Attributes:
        command: Logical command name (launch, input, keypress, character)
        url: Request URL
        status: HTTP status when the device answered, None on network failure
        reason: Specific failure reason

    """

    taxonomy = "CommandError"

    def __init__(self, command: str, url: str, reason: str, status: int | None = None) -> None:
        """Initialize command error."""
        self.command: str = command
        self.url: str = url
        self.reason: str = reason
        self.status: int | None = status
        detail = f"HTTP {status}" if status is not None else reason
        super().__init__(f"{command} command failed ({detail}): {url}")


class BeaconTimeoutError(DeepLinkError):
    """Deadline elapsed before the required beacons were observed.

    Attributes:
        missing: Categories or logical conditions still unmet
        elapsed_ms: Time spent waiting in milliseconds

    """

    taxonomy = "BeaconTimeoutError"

    def __init__(self, missing: Sequence[str], elapsed_ms: int) -> None:
        """Initialize timeout error with the unmet conditions."""
        self.missing: list[str] = list(missing)
        self.elapsed_ms: int = elapsed_ms
        super().__init__(f"Timeout after {elapsed_ms}ms. Missing: {', '.join(self.missing) or 'none'}")

    def to_dict(self) -> dict[str, object]:
        """Serialize including the missing conditions."""
        data = super().to_dict()
        data["missing"] = list(self.missing)
        data["elapsed_ms"] = self.elapsed_ms
        return data


class ScriptError(DeepLinkError):
    """Malformed RASP script, unknown step kind, or missing secret.

    Attributes:
        problems: Individual problems found (at least one)

    """

    taxonomy = "ScriptError"

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        """Initialize script error with a summary and optional problem list."""
        self.problems: list[str] = list(problems) or [message]
        super().__init__(message)


class ConfigError(DeepLinkError):
    """Run configuration is invalid; raised before any device I/O."""

    taxonomy = "ConfigError"

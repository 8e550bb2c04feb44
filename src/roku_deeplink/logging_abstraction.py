"""Logging abstraction layer for the deep-link tester.

Provides dual-format logging (JSON + human-readable) tagged with the active
run id and test phase, structured context, and configurable destinations.
Handlers are attached once to the package logger; module loggers propagate.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from roku_deeplink.phase_context import get_phase, get_run_id

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "DeepLinkLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
]

PACKAGE_LOGGER_NAME = "roku_deeplink"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "run_id": get_run_id(),
            "phase": get_phase(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            log_data["context"] = dict(context_map)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with the phase name."""

    def __init__(self) -> None:
        # Format: time level [module:line] {phase} > message
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(phase_tag)s> %(message)s",
            datefmt="%H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        phase = get_phase()
        record.phase_tag = f"{{{phase}}} " if phase else ""

        formatted = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class DeepLinkLogger:
    """Logger abstraction providing structured context on top of stdlib logging.

    Mirrors the stdlib logger API but accepts a plain mapping as ``extra``,
    which the formatters render as JSON context or ``k=v`` pairs.
    """

    def __init__(self, name: str) -> None:
        """Initialize DeepLinkLogger.

        Args:
            name: Logger name (typically module name)

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Internal logging method with structured context support."""
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}

        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log debug message with optional structured context."""
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log info message with optional structured context."""
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log warning message with optional structured context."""
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log error message with optional structured context."""
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log exception with traceback and optional structured context."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def is_enabled_for(self, level: int) -> bool:
        """Check whether a level would be emitted."""
        return self.logger.isEnabledFor(level)


def configure_logging(
    *,
    verbose: bool = False,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> logging.Logger:
    """Attach handlers to the package logger (idempotent).

    Args:
        verbose: Lower the package level to DEBUG
        log_format: Override default format ("json", "human", or "both")
        json_file: Override default JSON output file
        human_output: Override default human-readable output ("stdout", "stderr", or a path)

    Returns:
        The configured package logger

    """
    from roku_deeplink.const import (  # noqa: PLC0415
        ROKU_DL_DEBUG,
        ROKU_DL_LOG_FORMAT,
        ROKU_DL_LOG_HUMAN_OUTPUT,
        ROKU_DL_LOG_JSON_FILE,
    )

    log_format = log_format or ROKU_DL_LOG_FORMAT
    json_file = json_file or ROKU_DL_LOG_JSON_FILE
    human_output = human_output or ROKU_DL_LOG_HUMAN_OUTPUT

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    level = logging.DEBUG if (verbose or ROKU_DL_DEBUG) else logging.INFO
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if log_format in ("json", "both") and json_file:
        try:
            json_path = Path(json_file)
            json_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = logging.FileHandler(json_path, mode="a")
            json_handler.setFormatter(JSONFormatter())
            package_logger.addHandler(json_handler)
        except OSError as e:
            print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

    if log_format == "json" and not json_file:
        # JSON requested without a file: emit JSON on the human stream instead
        stream_handler = logging.StreamHandler(sys.stderr if human_output == "stderr" else sys.stdout)
        stream_handler.setFormatter(JSONFormatter())
        package_logger.addHandler(stream_handler)

    if log_format in ("human", "both"):
        if human_output == "stdout":
            human_handler: logging.Handler = logging.StreamHandler(sys.stdout)
        elif human_output == "stderr":
            human_handler = logging.StreamHandler(sys.stderr)
        else:
            try:
                human_path = Path(human_output)
                human_path.parent.mkdir(parents=True, exist_ok=True)
                human_handler = logging.FileHandler(human_path, mode="a")
            except OSError as e:
                print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
                human_handler = logging.StreamHandler(sys.stderr)
        human_handler.setFormatter(HumanReadableFormatter())
        package_logger.addHandler(human_handler)

    return package_logger


def get_logger(name: str) -> DeepLinkLogger:
    """Get a DeepLinkLogger for a module.

    Args:
        name: Logger name (use ``__name__``)

    Returns:
        DeepLinkLogger instance

    """
    return DeepLinkLogger(name)

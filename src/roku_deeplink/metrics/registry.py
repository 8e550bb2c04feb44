"""Prometheus metrics registry for certification runs."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Histogram,
    start_http_server,
)

# Metric definitions
roku_dl_beacon_observed_total: Final = Counter(  # type: ignore[assignment]
    "roku_dl_beacon_observed_total",
    "Total beacons recorded from the event stream",
    ["category"],
)

roku_dl_beacon_discarded_total: Final = Counter(  # type: ignore[assignment]
    "roku_dl_beacon_discarded_total",
    "Total beacon-looking records discarded as noise",
    ["category", "reason"],
)

roku_dl_command_total: Final = Counter(  # type: ignore[assignment]
    "roku_dl_command_total",
    "Total control commands sent",
    ["command", "outcome"],
)

roku_dl_command_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "roku_dl_command_latency_seconds",
    "Control command round-trip latency in seconds",
    ["command"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

roku_dl_wait_duration_seconds: Final = Histogram(  # type: ignore[assignment]
    "roku_dl_wait_duration_seconds",
    "Beacon wait duration in seconds",
    ["mode", "outcome"],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 30.0, 60.0, 120.0),
)

roku_dl_phase_total: Final = Counter(  # type: ignore[assignment]
    "roku_dl_phase_total",
    "Total test phases by outcome",
    ["phase", "outcome"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_beacon(category: str) -> None:
    """Record a beacon accepted by the monitor."""
    roku_dl_beacon_observed_total.labels(category=category).inc()  # type: ignore[no-untyped-call]


def record_beacon_discarded(category: str, reason: str) -> None:
    """Record a beacon record dropped as noise."""
    roku_dl_beacon_discarded_total.labels(category=category, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_command(command: str, outcome: str) -> None:
    """Record a control command and its protocol-level outcome."""
    roku_dl_command_total.labels(command=command, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_command_latency(command: str, latency_seconds: float) -> None:
    """Record control command latency."""
    roku_dl_command_latency_seconds.labels(command=command).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_wait(mode: str, outcome: str, duration_seconds: float) -> None:
    """Record how long a beacon wait took."""
    roku_dl_wait_duration_seconds.labels(mode=mode, outcome=outcome).observe(duration_seconds)  # type: ignore[no-untyped-call]


def record_phase(phase: str, outcome: str) -> None:
    """Record a finished test phase (passed, failed, skipped)."""
    roku_dl_phase_total.labels(phase=phase, outcome=outcome).inc()  # type: ignore[no-untyped-call]

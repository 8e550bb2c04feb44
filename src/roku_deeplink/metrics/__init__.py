"""Metrics module."""

from . import registry
from .registry import (
    record_beacon,
    record_beacon_discarded,
    record_command,
    record_command_latency,
    record_phase,
    record_wait,
    start_metrics_server,
)

__all__ = [
    "record_beacon",
    "record_beacon_discarded",
    "record_command",
    "record_command_latency",
    "record_phase",
    "record_wait",
    "registry",
    "start_metrics_server",
]

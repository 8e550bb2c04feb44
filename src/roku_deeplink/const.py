import os

from roku_deeplink import __version__

__all__ = [
    "APP_LAUNCH_LIMIT_MS",
    "BEACON_GRACE_SECONDS",
    "BEACON_POLL_INTERVAL_SECONDS",
    "CHARACTER_TIMEOUT_SECONDS",
    "CONTROL_PORT",
    "DEFAULT_APP_ID",
    "DEFAULT_CONTENT_ID",
    "DEFAULT_MEDIA_TYPE",
    "DEFAULT_WAIT_SECONDS",
    "EVENT_CONNECT_TIMEOUT_SECONDS",
    "EVENT_PORT",
    "FAILURE_LOG_LINES",
    "KEYPRESS_TIMEOUT_SECONDS",
    "LAUNCH_TIMEOUT_SECONDS",
    "MAX_RAW_LINES",
    "PROGRESS_LOG_INTERVAL_SECONDS",
    "RELAUNCH_SETTLE_SECONDS",
    "RELAUNCH_WAIT_CAP_SECONDS",
    "ROKU_DL_DEBUG",
    "ROKU_DL_LOG_FORMAT",
    "ROKU_DL_LOG_HUMAN_OUTPUT",
    "ROKU_DL_LOG_JSON_FILE",
    "ROKU_DL_PERF_THRESHOLD_MS",
    "ROKU_DL_PERF_TRACKING",
    "ROKU_DL_VERSION",
    "SCRIPT_CHARACTER_DELAY_SECONDS",
    "SETTLE_SECONDS",
    "USER_CHARACTER_DELAY_SECONDS",
    "VIDEO_MEDIA_TYPES",
    "VIDEO_START_LIMIT_MS",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", "on")
ROKU_DL_VERSION: str = __version__

# External Control Protocol (request/response) and debug console (event stream)
CONTROL_PORT: int = 8060
EVENT_PORT: int = 8085
EVENT_CONNECT_TIMEOUT_SECONDS: float = 10.0
LAUNCH_TIMEOUT_SECONDS: float = 10.0
KEYPRESS_TIMEOUT_SECONDS: float = 5.0
CHARACTER_TIMEOUT_SECONDS: float = 5.0
USER_CHARACTER_DELAY_SECONDS: float = 0.1
SCRIPT_CHARACTER_DELAY_SECONDS: float = 0.05

# Beacon waiting
BEACON_POLL_INTERVAL_SECONDS: float = 0.5
BEACON_GRACE_SECONDS: float = 2.0
PROGRESS_LOG_INTERVAL_SECONDS: float = 10.0
RELAUNCH_WAIT_CAP_SECONDS: float = 30.0
SETTLE_SECONDS: float = 3.0
RELAUNCH_SETTLE_SECONDS: float = 2.0
MAX_RAW_LINES: int = 50
FAILURE_LOG_LINES: int = 10

# Run defaults
DEFAULT_APP_ID: str = "dev"
DEFAULT_CONTENT_ID: str = "1234"
DEFAULT_MEDIA_TYPE: str = "movie"
DEFAULT_WAIT_SECONDS: float = 30.0
VIDEO_MEDIA_TYPES: frozenset[str] = frozenset({"movie", "episode"})

# Certification requirements 3.2 and 3.6
APP_LAUNCH_LIMIT_MS: int = 15000
VIDEO_START_LIMIT_MS: int = 8000

# Logging Configuration
ROKU_DL_DEBUG: bool = os.environ.get("ROKU_DL_DEBUG", "0").casefold() in YES_ANSWER
ROKU_DL_LOG_FORMAT: str = os.environ.get("ROKU_DL_LOG_FORMAT", "human")  # "json", "human", or "both"
ROKU_DL_LOG_JSON_FILE: str | None = os.environ.get("ROKU_DL_LOG_JSON_FILE") or None
ROKU_DL_LOG_HUMAN_OUTPUT: str = os.environ.get("ROKU_DL_LOG_HUMAN_OUTPUT", "stderr")  # "stdout", "stderr", or file path

# Performance Instrumentation
ROKU_DL_PERF_TRACKING: bool = os.environ.get("ROKU_DL_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("ROKU_DL_PERF_THRESHOLD_MS", "1000")
ROKU_DL_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 1000

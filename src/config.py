"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
STATE_DIR, HTTP_VERIFY, HTTP_TIMEOUT, concurrency and history limits).
"""

from __future__ import annotations

import os
import platform
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Credentials + recent files live here
STATE_DIR = Path(os.environ.get("SPARKLESHARE_STATE_DIR", "~/.sparkleshare")).expanduser()

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)
HTTP_TIMEOUT = _env_float("HTTP_TIMEOUT", 20.0)
MAX_CONCURRENT_REQUESTS = _env_int("MAX_CONCURRENT_REQUESTS", 4)

# Name the dashboard shows for this linked device
DEVICE_NAME = os.environ.get("SPARKLESHARE_DEVICE_NAME", platform.node() or "sparkleshare-mcp").strip()

# Limits / output
MAX_RECENT_FILES = _env_int("MAX_RECENT_FILES", 20)
MAX_FILE_CHARS = _env_int("MAX_FILE_CHARS", 200_000)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()

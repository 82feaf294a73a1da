#!/usr/bin/env python3
"""
File logger for threadfinder.

Resolution and view building report problems to callers as warning
lists; this log is the diagnostic side channel (which strategy won,
which index could not be read, which records were skipped).

Log levels:
  0 = OFF      - No logging
  1 = ERROR    - Errors only
  2 = WARNING  - Warnings + Errors (default)
  3 = INFO     - Info + Warnings + Errors
  4 = DEBUG    - All messages

The level comes from ``THREADFINDER_LOG_LEVEL`` if set, else from
``log_level`` in the YAML config. Either may be a number or a level name.
``log_file`` in the config redirects output away from DEFAULT_LOG_PATH.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_PATH,
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_ERROR,
    LOG_LEVEL_INFO,
    LOG_LEVEL_OFF,
    LOG_LEVEL_WARNING,
)

LOG_LEVEL_ENV = "THREADFINDER_LOG_LEVEL"

LEVEL_NAMES = {
    LOG_LEVEL_OFF: "OFF",
    LOG_LEVEL_ERROR: "ERROR",
    LOG_LEVEL_WARNING: "WARNING",
    LOG_LEVEL_INFO: "INFO",
    LOG_LEVEL_DEBUG: "DEBUG",
}


def _parse_level(value: Any) -> Optional[int]:
    """Level number from an int, a digit string or a level name."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value in LEVEL_NAMES else None
    if isinstance(value, str):
        text = value.strip().upper()
        if text.isdigit():
            return _parse_level(int(text))
        for level, name in LEVEL_NAMES.items():
            if name == text:
                return level
    return None


def _load_logging_config() -> Dict[str, Any]:
    try:
        if not os.path.exists(DEFAULT_CONFIG_PATH):
            return {}
        with open(DEFAULT_CONFIG_PATH) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return {}
    return config if isinstance(config, dict) else {}


def _get_log_level(config: Dict[str, Any]) -> int:
    for candidate in (os.environ.get(LOG_LEVEL_ENV), config.get("log_level")):
        level = _parse_level(candidate)
        if level is not None:
            return level
    return LOG_LEVEL_WARNING


def _get_log_path(config: Dict[str, Any]) -> Path:
    log_file = config.get("log_file")
    if isinstance(log_file, str) and log_file:
        return Path(os.path.expanduser(log_file))
    return Path(DEFAULT_LOG_PATH)


def format_line(level: int, component: str, message: str, exc: Optional[Exception]) -> str:
    timestamp = datetime.now().isoformat(sep=" ", timespec="seconds")
    line = f"[{timestamp}] [{LEVEL_NAMES.get(level, 'UNKNOWN')}] [{component}] {message}"
    if exc is not None:
        line += f" | Exception: {type(exc).__name__}: {exc}"
    return line


def log(level: int, component: str, message: str, exc: Optional[Exception] = None):
    """
    Append a log entry if ``level`` passes the configured threshold.

    Args:
        level: Log level (1=ERROR, 2=WARNING, 3=INFO, 4=DEBUG)
        component: Component name (e.g., "resolver", "codex")
        message: Log message
        exc: Optional exception to include
    """
    config = _load_logging_config()
    current_level = _get_log_level(config)
    if current_level == LOG_LEVEL_OFF or level > current_level:
        return

    path = _get_log_path(config)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(format_line(level, component, message, exc) + "\n")
    except OSError:
        pass  # an unwritable log never fails a lookup


def log_error(component: str, message: str, exc: Optional[Exception] = None):
    log(LOG_LEVEL_ERROR, component, message, exc)


def log_warning(component: str, message: str, exc: Optional[Exception] = None):
    log(LOG_LEVEL_WARNING, component, message, exc)


def log_info(component: str, message: str):
    log(LOG_LEVEL_INFO, component, message)


def log_debug(component: str, message: str):
    log(LOG_LEVEL_DEBUG, component, message)

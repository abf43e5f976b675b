"""
Numeric log levels and their mapping onto Python logging.

tts-bridge uses four verbosity levels instead of the stdlib names:
    1 = MINIMAL  - startup, shutdown, failures
    2 = NORMAL   - request lifecycle, cache hit/miss (default)
    3 = VERBOSE  - per-stage timing, per-chunk flow
    4 = DEBUG    - HTTP paging, internal state

Usage:
    from tts_bridge.core.logging.levels import LogLevel, coerce_level

    coerce_level("debug")    # LogLevel.DEBUG
    coerce_level("WARNING")  # LogLevel.MINIMAL
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3
    DEBUG = 4


TRACE = logging.DEBUG - 5

LEVEL_MAP = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: TRACE,
}

LEVEL_NAMES = {int(level): level.name for level in LogLevel}

_NAME_MAP = {
    "MINIMAL": LogLevel.MINIMAL,
    "NORMAL": LogLevel.NORMAL,
    "VERBOSE": LogLevel.VERBOSE,
    "DEBUG": LogLevel.DEBUG,
    "TRACE": LogLevel.DEBUG,
    "CRITICAL": LogLevel.MINIMAL,
    "ERROR": LogLevel.MINIMAL,
    "WARNING": LogLevel.MINIMAL,
    "WARN": LogLevel.MINIMAL,
    "INFO": LogLevel.NORMAL,
}


def coerce_level(value: Any) -> LogLevel:
    """
    Convert an int, level name or Python logging level to LogLevel.

    Unparseable input falls back to NORMAL.
    """
    if isinstance(value, LogLevel):
        return value
    if isinstance(value, int):
        if 1 <= value <= 4:
            return LogLevel(value)
        # Python logging levels (10, 20, 30, ...)
        if value >= logging.WARNING:
            return LogLevel.MINIMAL
        if value >= logging.INFO:
            return LogLevel.NORMAL
        return LogLevel.DEBUG
    if isinstance(value, str):
        text = value.strip().upper()
        if text.isdigit():
            return coerce_level(int(text))
        return _NAME_MAP.get(text, LogLevel.NORMAL)
    return LogLevel.NORMAL

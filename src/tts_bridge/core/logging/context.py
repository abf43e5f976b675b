"""
Request correlation and logging configuration state.

The request id lives in a ContextVar so every log line emitted while a
synthesis request runs (including lines from worker threads that copy the
context) carries the same id. Module-level state records the active level
and whether configure_logging() already ran.

Environment Variables:
    - TTS_BRIDGE_SETTINGS: settings file to read the logging section from
    - TTS_BRIDGE_LOG_LEVEL: override log level (1-4 or name)
    - TTS_BRIDGE_LOG_DIR: write rotating JSONL logs to this directory
    - TTS_BRIDGE_JSONL_FILE: JSONL filename (default tts-bridge.jsonl)
    - TTS_BRIDGE_LOG_ROTATE_BYTES / TTS_BRIDGE_LOG_ROTATE_BACKUP
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Return the request id of the current context, "-" outside requests."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(int(_current_level), "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _int_env(name: str, cfg: Dict[str, Any], key: str) -> None:
    raw = os.getenv(name)
    if not raw:
        return
    try:
        cfg[key] = int(raw)
    except ValueError:
        pass  # keep configured value


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging options from settings.yaml and the environment.

    Environment variables win over the settings file; a missing or
    unreadable settings file just means defaults.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TTS_BRIDGE_SETTINGS", "config/settings.yaml")
    try:
        from tts_bridge.core.config import load_settings
        cfg.update(load_settings(settings_path).raw.get("logging", {}) or {})
    except (OSError, yaml.YAMLError, AttributeError):
        pass

    if os.getenv("TTS_BRIDGE_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_BRIDGE_LOG_LEVEL"]
    if os.getenv("TTS_BRIDGE_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_BRIDGE_LOG_DIR"]
    if os.getenv("TTS_BRIDGE_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_BRIDGE_JSONL_FILE"]
    _int_env("TTS_BRIDGE_LOG_ROTATE_BYTES", cfg, "rotate_max_bytes")
    _int_env("TTS_BRIDGE_LOG_ROTATE_BACKUP", cfg, "rotate_backup_count")

    return cfg

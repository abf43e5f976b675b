"""
Tests for structured logging.

Tests cover:
- Level coercion and mapping
- Level filtering of the helper functions
- JSONL and console formatters
- Color switches
- Request id context
"""
from __future__ import annotations

import contextvars
import json
import logging

import pytest

from tts_bridge.core.logging import (
    LEVEL_MAP,
    ColoredConsoleFormatter,
    JsonlFormatter,
    LogLevel,
    coerce_level,
    colorize,
    debug,
    error,
    get_logger,
    get_request_id,
    info,
    set_request_id,
    supports_color,
    verbose,
)
from tts_bridge.core.logging import colors, context
from tts_bridge.core.logging.levels import TRACE


@pytest.fixture
def level():
    """Set the active level for one test and restore it afterwards."""
    previous = context.get_level()
    yield context.set_level
    context.set_level(previous)


def _record(**attrs) -> logging.LogRecord:
    rec = logging.LogRecord("tts-bridge.test", logging.INFO, __file__, 1, "cache_hit", None, None)
    for k, v in attrs.items():
        setattr(rec, k, v)
    return rec


class TestLevels:

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1, LogLevel.MINIMAL),
            ("3", LogLevel.VERBOSE),
            ("debug", LogLevel.DEBUG),
            ("WARNING", LogLevel.MINIMAL),
            (logging.INFO, LogLevel.NORMAL),
            ("nonsense", LogLevel.NORMAL),
            (None, LogLevel.NORMAL),
        ],
    )
    def test_coerce(self, value, expected):
        assert coerce_level(value) is expected

    def test_mapping(self):
        assert LEVEL_MAP[LogLevel.NORMAL] == logging.INFO
        assert LEVEL_MAP[LogLevel.DEBUG] == TRACE


class TestFiltering:

    def test_minimal_drops_info(self, caplog, level):
        log = get_logger("tts-bridge.test")
        level(LogLevel.MINIMAL)
        with caplog.at_level(TRACE):
            info(log, "dropped")
            error(log, "kept")
        assert [r.getMessage() for r in caplog.records] == ["kept"]

    def test_debug_keeps_everything(self, caplog, level):
        log = get_logger("tts-bridge.test")
        level(LogLevel.DEBUG)
        with caplog.at_level(TRACE):
            verbose(log, "v", seconds=0.5)
            debug(log, "d", key="abc")
        assert [r.getMessage() for r in caplog.records] == ["v", "d"]
        assert caplog.records[0].seconds == 0.5
        assert caplog.records[1].extra_data == {"key": "abc"}


class TestFormatters:

    def test_jsonl(self):
        rec = _record(tag="INFO", numeric_level=2, request_id="ab12", seconds=0.25,
                      event="chunk", extra_data={"key": "5a2b"})
        payload = json.loads(JsonlFormatter().format(rec))
        assert payload["message"] == "cache_hit"
        assert payload["request_id"] == "ab12"
        assert payload["seconds"] == 0.25
        assert payload["event"] == "chunk"
        assert payload["extra"] == {"key": "5a2b"}

    def test_console_without_colors(self, monkeypatch):
        monkeypatch.setattr(colors, "USE_COLORS", False)
        rec = _record(tag="INFO", request_id="ab12", seconds=0.123, extra_data={"cache": "hit"})
        line = ColoredConsoleFormatter().format(rec)
        assert "[ INFO  ]" in line
        assert "(ab12)" in line
        assert "cache_hit" in line
        assert "0.123s" in line
        assert "cache=hit" in line
        assert "\033[" not in line

    def test_console_with_colors(self, monkeypatch):
        monkeypatch.setattr(colors, "USE_COLORS", True)
        line = ColoredConsoleFormatter().format(_record(tag="FAIL", extra_data={"error_kind": "AUTHENTICATION"}))
        assert "\033[" in line


class TestColors:

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert supports_color() is False

    def test_project_switch(self, monkeypatch):
        monkeypatch.setenv("TTS_BRIDGE_NO_COLOR", "1")
        assert supports_color() is False

    def test_colorize_disabled(self, monkeypatch):
        monkeypatch.setattr(colors, "USE_COLORS", False)
        assert colorize("x", colors.Colors.RED) == "x"


class TestRequestId:

    def test_default_and_isolation(self):
        def inner():
            assert get_request_id() == "-"
            set_request_id("abc")
            return get_request_id()

        assert contextvars.Context().run(inner) == "abc"

"""
Log formatters: JSON Lines for files, colored single lines for consoles.

Output Examples:
    JSONL:
        {"ts":"2026-01-15T14:30:05+01:00","level":2,"tag":"INFO","message":"cache_hit","request_id":"a1b2c3d4","extra":{"key":"5a2b..."}}

    Console:
        14:30:05 [ INFO  ] (a1b2c3d4) cache_hit key=5a2b... 0.001s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from . import colors
from .colors import Colors, get_tag_color


class JsonlFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format records as ``HH:MM:SS [ TAG ] (rid) message key=value 0.123s``.

    Timing is colored by duration: green under 0.1s, yellow under 1s,
    red otherwise. Error kinds are highlighted in red.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            colors.colorize(ts, Colors.DIM),
            colors.colorize(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(colors.colorize(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(colors.colorize(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.1:
                time_color = Colors.GREEN
            elif seconds < 1.0:
                time_color = Colors.YELLOW
            else:
                time_color = Colors.RED
            parts.append(colors.colorize(f"{seconds:.3f}s", time_color))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for k, v in extra_data.items():
                parts.append(colors.colorize(f"{k}={v}", self._field_color(k)))

        return " ".join(parts)

    @staticmethod
    def _field_color(key: str) -> str:
        if key in ("error", "error_kind"):
            return Colors.RED
        if key in ("cache", "status"):
            return Colors.MAGENTA
        return Colors.DIM

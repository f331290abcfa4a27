"""
Centralized Logging

Architectural Intent:
- One place that configures the `apiary` logger hierarchy
- Plain "[LEVEL] message" lines for people, one JSON object per line with
  --json-logs for machines
- SSH library chatter (paramiko, invoke) is held at WARNING unless the
  run is at DEBUG
- Given the progress display's rich Console, human-readable records are
  printed through it so they land above the live spinner line
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Optional, TextIO

from rich.console import Console
from rich.logging import RichHandler

HUMAN_FORMAT = "[%(levelname)s] %(message)s"
TRANSPORT_LOGGERS = ("paramiko", "invoke", "fabric")


class JSONFormatter(logging.Formatter):
    """One JSON object per record; carries the task name when logged with one."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        task = getattr(record, "task", None)
        if task is not None:
            entry["task"] = task
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def parse_level(name: str) -> int:
    """Map a level name like 'debug' to its logging constant, INFO if unknown."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    stream: Optional[TextIO] = None,
    console: Optional[Console] = None,
) -> None:
    """Install the single handler of the `apiary` logger.

    Args:
        level: Threshold for apiary's own records.
        json_format: Emit JSON lines instead of human-readable ones.
        stream: Destination, stderr by default so stdout stays the report.
        console: Console shared with the progress display. Human-readable
            records go through it instead of `stream`.
    """
    handler: logging.Handler
    if console is not None and not json_format:
        handler = RichHandler(
            console=console, show_time=False, show_path=False, markup=False
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(HUMAN_FORMAT)
        )
    handler.setLevel(level)

    apiary_logger = logging.getLogger("apiary")
    apiary_logger.setLevel(level)
    apiary_logger.handlers.clear()
    apiary_logger.addHandler(handler)

    transport_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

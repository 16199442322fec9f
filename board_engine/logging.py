"""
Board Coordinator — Structured Logging & Observability Sink

JSON line logging for everything under the ``board_coordinator`` logger
namespace, plus the observability sink the generation core reports to.

Usage:
    from board_engine.logging import configure_logging, LoggingSink

    configure_logging(level="INFO")
    sink = LoggingSink(session="studio-1")
    sink.report("generation_start", {"token": "ab12", "scope": "board"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

ROOT_LOGGER = "board_coordinator"


# ═══════════════════════════════════════════════════════════════════
# JSON Formatter
# ═══════════════════════════════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def __init__(self, service_name: str = ROOT_LOGGER):
        super().__init__()
        self.service_name = service_name
        self.service_version = os.environ.get("BG_VERSION", "0.1.0")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service.name": self.service_name,
            "service.version": self.service_version,
        }

        if hasattr(record, "structured"):
            entry.update(record.structured)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception.type"] = record.exc_info[0].__name__
            entry["exception.message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str)


# ═══════════════════════════════════════════════════════════════════
# Log Configuration
# ═══════════════════════════════════════════════════════════════════

def configure_logging(
    level: str = "INFO",
    stream: Any = None,
    service_name: str = ROOT_LOGGER,
) -> logging.Logger:
    """
    Configure the board_coordinator logger with JSON output.

    Child loggers are reset so they inherit the new level and handler.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith(ROOT_LOGGER + "."):
            child = logging.getLogger(name)
            child.handlers.clear()
            child.setLevel(logging.NOTSET)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = "") -> logging.Logger:
    """Get a child logger under the board_coordinator namespace."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


# ═══════════════════════════════════════════════════════════════════
# Observability Sink
# ═══════════════════════════════════════════════════════════════════

class ObservabilitySink(Protocol):
    def report(self, event_name: str, fields: dict[str, Any]) -> None: ...


class NullSink:
    """No-op sink when observability is disabled."""
    def report(self, event_name: str, fields: dict[str, Any]) -> None:
        pass


# Events that indicate something went wrong; everything else is INFO.
_WARNING_EVENTS = {
    "generation_attempt_failed",
    "generation_stale_discarded",
    "gate_rejected_mutation",
}
_ERROR_EVENTS = {
    "generation_terminal_failure",
    "generation_failed",
}


class LoggingSink:
    """
    Observability sink that writes one structured log record per event.

    Every record carries the session name and a correlation id so a
    generation can be followed from start to apply (or rollback).
    """

    def __init__(self, session: str = "", correlation_id: str | None = None):
        self.session = session
        self.correlation_id = correlation_id or generate_correlation_id()
        self._logger = get_logger("events")

    def _level_for(self, event_name: str) -> int:
        if event_name in _ERROR_EVENTS:
            return logging.ERROR
        if event_name in _WARNING_EVENTS:
            return logging.WARNING
        return logging.INFO

    def report(self, event_name: str, fields: dict[str, Any]) -> None:
        level = self._level_for(event_name)
        if not self._logger.isEnabledFor(level):
            return
        structured = {
            "correlation_id": self.correlation_id,
            "session": self.session,
            "event": event_name,
            **fields,
        }
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="", lno=0, msg=event_name,
            args=(), exc_info=None,
        )
        record.structured = structured
        self._logger.handle(record)

"""
Board Coordinator — Structured Logging Tests

Tests:
  - every log line is valid JSON with the required fields
  - LoggingSink records carry event name, session and correlation id
  - failure events log at WARNING/ERROR, lifecycle events at INFO
  - level filtering drops INFO events under WARNING
  - exceptions are captured on the record
"""

import io
import json
import logging
import os
import sys
import unittest

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from board_engine.logging import (
    ROOT_LOGGER,
    LoggingSink,
    NullSink,
    configure_logging,
    generate_correlation_id,
    get_logger,
)


def _capture_logs(level="DEBUG"):
    buf = io.StringIO()
    configure_logging(level=level, stream=buf)
    return buf


def _parse_log_lines(buf):
    """Parse all JSON lines from buffer."""
    buf.seek(0)
    return [json.loads(line) for line in buf.readlines() if line.strip()]


class LoggingTestCase(unittest.TestCase):

    def tearDown(self):
        logging.getLogger(ROOT_LOGGER).handlers.clear()


class TestJSONFormatter(LoggingTestCase):

    def test_log_entry_schema(self):
        buf = _capture_logs()
        get_logger("controller").info("Generation started: token=%s", "abc")
        entries = _parse_log_lines(buf)
        self.assertEqual(len(entries), 1)
        entry = entries[0]
        for key in ("timestamp", "level", "logger", "message", "service.name", "service.version"):
            self.assertIn(key, entry)
        self.assertEqual(entry["logger"], "board_coordinator.controller")
        self.assertEqual(entry["message"], "Generation started: token=abc")

    def test_exception_captured(self):
        buf = _capture_logs()
        try:
            raise RuntimeError("merge blew up")
        except RuntimeError:
            get_logger("session").exception("Applying generation result failed")
        entry = _parse_log_lines(buf)[0]
        self.assertEqual(entry["exception.type"], "RuntimeError")
        self.assertEqual(entry["exception.message"], "merge blew up")


class TestLoggingSink(LoggingTestCase):

    def test_event_fields(self):
        buf = _capture_logs()
        sink = LoggingSink(session="studio-1", correlation_id="corr-9")
        sink.report("generation_start", {"token": "t1", "scope": "board_preserve"})
        entry = _parse_log_lines(buf)[0]
        self.assertEqual(entry["event"], "generation_start")
        self.assertEqual(entry["session"], "studio-1")
        self.assertEqual(entry["correlation_id"], "corr-9")
        self.assertEqual(entry["token"], "t1")
        self.assertEqual(entry["level"], "INFO")

    def test_levels_by_event(self):
        buf = _capture_logs()
        sink = LoggingSink()
        sink.report("gate_rejected_mutation", {"action": "edit_cell"})
        sink.report("generation_failed", {"token": "t"})
        sink.report("generation_complete", {"token": "t"})
        levels = [e["level"] for e in _parse_log_lines(buf)]
        self.assertEqual(levels, ["WARNING", "ERROR", "INFO"])

    def test_level_filtering(self):
        buf = _capture_logs(level="WARNING")
        sink = LoggingSink()
        sink.report("generation_start", {})
        sink.report("generation_stale_discarded", {"token": "old"})
        events = [e["event"] for e in _parse_log_lines(buf)]
        self.assertEqual(events, ["generation_stale_discarded"])

    def test_correlation_ids_unique(self):
        ids = {generate_correlation_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)
        self.assertNotEqual(LoggingSink().correlation_id, LoggingSink().correlation_id)

    def test_null_sink(self):
        self.assertIsNone(NullSink().report("anything", {"x": 1}))


if __name__ == "__main__":
    unittest.main()

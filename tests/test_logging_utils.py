"""Tests for the structured JSON logging helpers."""

import json
import logging
import unittest
from datetime import datetime, timezone

from ministry_func.shared.logging_utils import JsonFormatter, get_json_logger, log_exception


def _record(**extra) -> logging.LogRecord:
    logger = logging.getLogger("ministry.test")
    return logger.makeRecord("ministry.test", logging.INFO, __file__, 1, "Sermon %s", ("stored",), None, extra=extra)


class JsonFormatterTests(unittest.TestCase):
    def test_extras_are_merged_into_payload(self) -> None:
        line = JsonFormatter().format(_record(event="sermon_stored", key="sermon:2024-03-17"))
        payload = json.loads(line)

        self.assertEqual(payload["message"], "Sermon stored")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["logger"], "ministry.test")
        self.assertEqual(payload["event"], "sermon_stored")
        self.assertEqual(payload["key"], "sermon:2024-03-17")
        self.assertNotIn("args", payload)

    def test_non_json_values_are_made_safe(self) -> None:
        when = datetime(2024, 3, 17, 12, 45, tzinfo=timezone.utc)
        payload = json.loads(JsonFormatter().format(_record(event="x", when=when, audio=b"ID3", tags={"a"})))

        self.assertEqual(payload["when"], "2024-03-17T12:45:00+00:00")
        self.assertEqual(payload["audio"], {"__bytes__": True, "len": 3})
        self.assertEqual(payload["tags"], ["a"])


class LoggerHelperTests(unittest.TestCase):
    def test_logger_configured_once(self) -> None:
        logger = get_json_logger("ministry.test.once")
        again = get_json_logger("ministry.test.once")
        self.assertIs(logger, again)
        self.assertEqual(len(logger.handlers), 1)
        self.assertFalse(logger.propagate)

    def test_log_exception_defaults_event(self) -> None:
        logger = get_json_logger("ministry.test.exc")
        with self.assertLogs(logger, level="ERROR") as captured:
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                log_exception(logger, "Failed", extra={"key": "k"})

        record = captured.records[0]
        self.assertEqual(record.event, "exception")
        self.assertEqual(record.key, "k")
        self.assertIsNotNone(record.exc_info)


if __name__ == "__main__":
    unittest.main()

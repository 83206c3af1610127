"""Tests for structured logging behavior."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
import unittest

from gpt_term.logging_utils import app_only_filter, configure_logging


class LoggingTests(unittest.TestCase):
    """Validate log format and handler wiring."""

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
        root.handlers.clear()

    def _flush(self) -> None:
        for handler in logging.getLogger().handlers:
            handler.flush()

    def test_structured_file_output_is_json_with_extras(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_path = Path(temp_dir) / "logs" / "app.log"
            configure_logging(
                {
                    "level": "INFO",
                    "structured": True,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            logging.getLogger("gpt_term.persistence").info(
                "persistence.save",
                extra={"event": "persistence.save", "conversation_id": "abc"},
            )
            self._flush()
            payload = json.loads(log_path.read_text(encoding="utf-8").splitlines()[-1])
            self.assertEqual(payload["event"], "persistence.save")
            self.assertEqual(payload["conversation_id"], "abc")
            self.assertEqual(payload["level"], "info")
            self.assertEqual(payload["logger"], "gpt_term.persistence")
            self.tearDown()

    def test_plain_output(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_path = Path(temp_dir) / "app.log"
            configure_logging(
                {
                    "level": "DEBUG",
                    "structured": False,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            logging.getLogger("gpt_term.engine").debug("engine.mode.transition")
            self._flush()
            line = log_path.read_text(encoding="utf-8").splitlines()[-1]
            self.assertIn("DEBUG gpt_term.engine engine.mode.transition", line)
            self.tearDown()

    def test_console_handler_only_passes_app_warnings(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False})
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertEqual(handlers[0].level, logging.WARNING)
        self.assertEqual(logging.getLogger("anthropic").level, logging.WARNING)

    def test_app_only_filter(self) -> None:
        def record(name: str) -> logging.LogRecord:
            return logging.LogRecord(name, logging.WARNING, __file__, 1, "m", None, None)

        self.assertTrue(app_only_filter(record("gpt_term.app")))
        self.assertFalse(app_only_filter(record("httpx")))


if __name__ == "__main__":
    unittest.main()

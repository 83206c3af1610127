"""Tests for CLI entrypoint wiring."""

from __future__ import annotations

import contextlib
import io
import tempfile
from pathlib import Path
import unittest
from unittest.mock import patch

from gpt_term.__main__ import main
from gpt_term.config import DEFAULT_CONFIG


def _config(directory: str) -> dict:
    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    config["persistence"]["directory"] = directory
    return config


class MainEntrypointTests(unittest.TestCase):
    """Validate top-level main() behavior."""

    def _run(self, argv: list[str], env: dict[str, str], config: dict | None = None) -> tuple[int, str]:
        out = io.StringIO()
        with tempfile.TemporaryDirectory() as temp_dir:
            cfg = config or _config(str(Path(temp_dir) / "conversations"))
            with patch.dict("os.environ", env, clear=True), patch(
                "gpt_term.__main__.load_config", return_value=cfg
            ), patch("gpt_term.__main__.configure_logging"), patch(
                "gpt_term.app.GptTermApp"
            ) as app_cls_mock, contextlib.redirect_stdout(out):
                code = main(argv)
                self.app_cls_mock = app_cls_mock
        return code, out.getvalue()

    def test_version_flag(self) -> None:
        code, output = self._run(["--version"], {})
        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("gpt-term version "))
        self.app_cls_mock.assert_not_called()

    def test_missing_credential_exits_with_error(self) -> None:
        code, output = self._run([], {})
        self.assertEqual(code, 1)
        self.assertEqual(
            output.strip(), "Error: CLAUDE_API_KEY environment variable is not defined"
        )
        self.app_cls_mock.assert_not_called()

    def test_runs_app_when_ready(self) -> None:
        code, _ = self._run([], {"CLAUDE_API_KEY": "sk-test"})
        self.assertEqual(code, 0)
        self.app_cls_mock.assert_called_once()
        self.app_cls_mock.return_value.run.assert_called_once()

    def test_unusable_storage_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = Path(temp_dir) / "file"
            blocker.write_text("x", encoding="utf-8")
            config = _config(str(blocker / "conversations"))
            code, output = self._run([], {"CLAUDE_API_KEY": "sk-test"}, config)
        self.assertEqual(code, 1)
        self.assertIn("Error initializing storage", output)
        self.app_cls_mock.assert_not_called()


if __name__ == "__main__":
    unittest.main()

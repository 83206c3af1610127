"""OS process layer: shell execution, clipboard, and external editor hand-off."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shlex
import shutil
import subprocess
import sys
import tempfile
from typing import Any

from .exceptions import ClipboardUnavailableError, EditorError, ExternalProcessError

LOGGER = logging.getLogger(__name__)

_CLIPBOARD_COMMANDS: dict[str, list[str]] = {
    "darwin": ["pbcopy"],
    "linux": ["xclip", "-selection", "clipboard"],
    "win32": ["clip"],
}


@dataclass(frozen=True)
class ProcessResult:
    """Combined stdout+stderr and exit status of a finished process."""

    output: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_external(
    argv: Sequence[str],
    stdin: str | None = None,
    *,
    timeout: float | None = None,
) -> ProcessResult:
    """Run ``argv`` without a terminal, capturing stderr into stdout."""
    if not argv:
        raise ExternalProcessError("No program given.")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        raise ExternalProcessError(f"Unable to start {argv[0]!r}: {exc}") from exc

    payload = stdin.encode("utf-8") if stdin is not None else None
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(payload), timeout=timeout)
    except TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise ExternalProcessError(f"{argv[0]!r} timed out after {timeout}s") from exc
    return ProcessResult(
        output=(stdout or b"").decode("utf-8", errors="replace"),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )


async def run_shell(
    command: str, shell: str = "sh", *, timeout: float | None = None
) -> ProcessResult:
    """Run ``command`` through ``shell -c`` exactly as given."""
    return await run_external([shell, "-c", command], timeout=timeout)


def clipboard_argv(platform: str | None = None) -> list[str]:
    """Return the clipboard tool invocation for ``platform``."""
    name = platform or sys.platform
    for prefix, argv in _CLIPBOARD_COMMANDS.items():
        if name.startswith(prefix):
            return list(argv)
    raise ClipboardUnavailableError(
        f"Unsupported platform for clipboard operations: {name}"
    )


async def copy_to_clipboard(text: str, platform: str | None = None) -> None:
    argv = clipboard_argv(platform)
    if shutil.which(argv[0]) is None:
        raise ClipboardUnavailableError(f"Clipboard tool {argv[0]!r} is not installed.")
    result = await run_external(argv, stdin=text)
    if not result.ok:
        raise ExternalProcessError(
            f"{argv[0]!r} exited with status {result.returncode}: {result.output.strip()}"
        )


def resolve_editor(
    environ: Mapping[str, str], env_var: str = "EDITOR", default: str = "nvim"
) -> list[str]:
    """Split the preferred editor command, falling back to ``default``."""
    value = environ.get(env_var, "").strip() or default
    return shlex.split(value)


def edit_text(
    content: str,
    editor_argv: Sequence[str],
    *,
    runner: Callable[..., Any] = subprocess.run,
) -> str:
    """Open ``content`` in the editor and return what was saved.

    The temporary file is removed on every exit path.
    """
    if not editor_argv:
        raise EditorError("No editor configured.")
    try:
        fd, raw_path = tempfile.mkstemp(prefix="gpt-term-edit-", suffix=".txt")
    except OSError as exc:
        raise EditorError(f"Unable to create temporary file: {exc}") from exc
    path = Path(raw_path)
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            raise EditorError(f"Unable to write temporary file: {exc}") from exc
        try:
            completed = runner([*editor_argv, str(path)], check=False)
        except OSError as exc:
            raise EditorError(f"Unable to start editor {editor_argv[0]!r}: {exc}") from exc
        if completed.returncode != 0:
            raise EditorError(f"Editor exited with status {completed.returncode}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise EditorError(f"Unable to read edited message: {exc}") from exc
    finally:
        path.unlink(missing_ok=True)
        LOGGER.debug(
            "external.editor.cleanup",
            extra={"event": "external.editor.cleanup", "path": str(path)},
        )

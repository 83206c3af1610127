"""Pure parsing helpers for command tags and fenced code blocks."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal

OPEN_TAG = "<command>"
CLOSE_TAG = "</command>"

# A body may not contain another opening tag, so a closing tag pairs with the
# nearest opening tag before it and an unclosed tag never matches.
_COMMAND_RE = re.compile(r"<command>((?:(?!<command>).)*?)</command>", re.DOTALL)
_CODE_BLOCK_RE = re.compile(r"```[^\n]*\n(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class Segment:
    """A run of assistant text classified for rendering."""

    kind: Literal["text", "command", "code"]
    text: str


def extract_commands(text: str) -> list[str]:
    """Return the trimmed body of every command tag pair, in document order."""
    commands: list[str] = []
    for match in _COMMAND_RE.finditer(text):
        body = match.group(1).strip()
        if body:
            commands.append(body)
    return commands


def has_commands(text: str) -> bool:
    return bool(extract_commands(text))


def _split_commands(text: str) -> list[Segment]:
    segments: list[Segment] = []
    cursor = 0
    for match in _COMMAND_RE.finditer(text):
        if match.start() > cursor:
            segments.append(Segment("text", text[cursor : match.start()]))
        segments.append(Segment("command", match.group(1).strip()))
        cursor = match.end()
    if cursor < len(text):
        segments.append(Segment("text", text[cursor:]))
    return segments


def split_segments(text: str) -> list[Segment]:
    """Split assistant content into plain text, command and code segments."""
    segments: list[Segment] = []
    cursor = 0
    for match in _CODE_BLOCK_RE.finditer(text):
        if match.start() > cursor:
            segments.extend(_split_commands(text[cursor : match.start()]))
        segments.append(Segment("code", match.group(1).rstrip("\n")))
        cursor = match.end()
    if cursor < len(text):
        segments.extend(_split_commands(text[cursor:]))
    return segments


def fenced(body: str) -> str:
    """Wrap ``body`` in a fenced block, closing the fence on its own line."""
    if body and not body.endswith("\n"):
        body += "\n"
    return f"```\n{body}```"


def execution_report(command: str, output: str, returncode: int) -> str:
    """Describe a finished command as a fenced block for the transcript."""
    if returncode == 0:
        status = "Command executed successfully\n"
    else:
        status = f"Command failed: exit status {returncode}\n"
    return fenced(f"Command ran: {command}\nCommand result:\n{status}{output}")

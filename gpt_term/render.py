"""Turn conversations and mode data into styled, width-wrapped lines."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import io
from typing import Any

from rich.console import Console
from rich.style import Style
from rich.text import Text

from .commands import has_commands, split_segments
from .models import Conversation, Message, Role

CODE_INDENT = "    "


@dataclass(frozen=True)
class Theme:
    """Styles for every rendered element, built once from the ``ui`` section."""

    user: Style
    assistant: Style
    selection: Style
    command: Style
    code: Style
    indicator: Style
    title: Style = field(default_factory=lambda: Style(bold=True))
    muted: Style = field(default_factory=lambda: Style(dim=True))

    @classmethod
    def from_config(cls, ui: Mapping[str, Any]) -> Theme:
        return cls(
            user=Style(color=ui.get("user_color", "#7aa2f7"), bold=True),
            assistant=Style(color=ui.get("assistant_color", "#9ece6a"), bold=True),
            selection=Style(color=ui.get("selection_color", "#e0af68"), bold=True, reverse=True),
            command=Style(color=ui.get("command_color", "#bb9af7"), bold=True),
            code=Style(bgcolor=ui.get("code_background", "#24283b")),
            indicator=Style(color=ui.get("indicator_color", "#565f89")),
        )


@dataclass
class Rendered:
    """Lines for one mode plus the first line of each addressable item."""

    lines: list[Text] = field(default_factory=list)
    anchors: dict[int, int] = field(default_factory=dict)


def help_text(keybinds: Mapping[str, str]) -> str:
    def key(name: str, fallback: str) -> str:
        return keybinds.get(name, fallback).replace(",", "/")

    return "\n".join(
        [
            "gpt-term help",
            "",
            f"  {key('edit_navigation', 'ctrl+j/ctrl+k')}: enter edit mode and walk through messages (j/k)",
            "  enter: edit the selected user message (later messages are discarded)",
            "  x: run a command from the selected assistant message",
            "  c: copy the selected message or command to the clipboard",
            f"  {key('execute_last', 'ctrl+x')}: run a command from the last assistant message",
            f"  {key('browse_history', 'ctrl+r')}: browse conversation history",
            f"  {key('load_latest', 'ctrl+l')}: load the next most recent conversation",
            f"  {key('new_chat', 'ctrl+n')}: start a new chat",
            f"  {key('show_help', 'ctrl+h')}: show this help",
            f"  {key('quit', 'ctrl+c')}: quit",
            "",
            "Commands in replies are highlighted. Every command must be chosen from a",
            "list before it runs, even when there is only one.",
            "",
            "Press any key to return.",
        ]
    )


class TranscriptRenderer:
    """Render each mode's content for a viewport ``width`` columns wide."""

    def __init__(self, theme: Theme, keybinds: Mapping[str, str] | None = None) -> None:
        self.theme = theme
        self.keybinds = dict(keybinds or {})
        self.width = 0
        self._console = Console(file=io.StringIO(), width=80, color_system=None)

    def _wrap(self, text: Text, indent: str = "") -> list[Text]:
        width = self.width - len(indent)
        if width <= 0:
            pieces = list(text.split("\n", allow_blank=True))
        else:
            pieces = list(text.wrap(self._console, width, overflow="fold"))
        if not indent:
            return pieces
        return [Text(indent, style=piece.style) + piece for piece in pieces]

    def _message_body(self, message: Message) -> list[Text]:
        if message.role is not Role.ASSISTANT:
            return self._wrap(Text(message.content))
        lines: list[Text] = []
        current = Text()
        for segment in split_segments(message.content):
            if segment.kind == "text":
                current.append(segment.text)
            elif segment.kind == "command":
                current.append(segment.text, style=self.theme.command)
            else:
                if current.plain.strip():
                    lines.extend(self._wrap(current))
                current = Text()
                for code_line in segment.text.split("\n"):
                    lines.extend(self._wrap(Text(code_line, style=self.theme.code), CODE_INDENT))
        if current.plain.strip():
            lines.extend(self._wrap(current))
        return lines

    def _label(self, message: Message, selected: bool) -> Text:
        if message.role is Role.USER:
            label = Text("You:", style=self.theme.user)
        else:
            label = Text("Assistant:", style=self.theme.assistant)
        if selected:
            return Text("> ", style=self.theme.selection) + label
        return label

    def _instruction(self, message: Message) -> Text:
        if message.role is Role.USER:
            hint = "enter: edit and discard every later message (cannot be undone) | c: copy | esc: cancel"
        elif has_commands(message.content):
            hint = "x: choose a command to run | c: copy | esc: cancel"
        else:
            hint = "c: copy | esc: cancel"
        return Text(hint, style=self.theme.selection)

    def transcript(self, conversation: Conversation, cursor: int | None = None) -> Rendered:
        """Messages after the system prompt; ``cursor`` highlights one for editing."""
        rendered = Rendered()
        if conversation.has_turns:
            stamp = conversation.created_at.strftime("%Y-%m-%d %H:%M")
            rendered.lines.extend(
                self._wrap(Text(f"- Beginning of conversation {stamp} -", style=self.theme.muted))
            )
            rendered.lines.append(Text())
        for index, message in enumerate(conversation.messages):
            if message.role is Role.SYSTEM:
                continue
            selected = index == cursor
            rendered.anchors[index] = len(rendered.lines)
            rendered.lines.append(self._label(message, selected))
            rendered.lines.extend(self._message_body(message))
            if selected:
                rendered.lines.extend(self._wrap(self._instruction(message)))
            rendered.lines.append(Text())
        return rendered

    def history(self, items: Sequence[Conversation], selected: int) -> Rendered:
        rendered = Rendered(lines=[Text("Conversation history", style=self.theme.title), Text()])
        if not items:
            rendered.lines.append(Text("No saved conversations.", style=self.theme.muted))
            return rendered
        for index, conversation in enumerate(items):
            stamp = conversation.created_at.strftime("%Y-%m-%d %H:%M")
            summary = conversation.summary or "(no user messages)"
            row = Text(f"{stamp}  {summary}")
            if index == selected:
                row = Text("> ") + row
                row.stylize(self.theme.selection)
            else:
                row = Text("  ") + row
            rendered.anchors[index] = len(rendered.lines)
            rendered.lines.extend(self._wrap(row))
        return rendered

    def commands(self, commands: Sequence[str], selected: int) -> Rendered:
        rendered = Rendered(lines=[Text("Select a command to run:", style=self.theme.title), Text()])
        for index, command in enumerate(commands):
            prefix = "> " if index == selected else "  "
            row = Text(f"{prefix}{index + 1}. ")
            row.append(command, style=self.theme.command)
            if index == selected:
                row.stylize(self.theme.selection)
            rendered.anchors[index] = len(rendered.lines)
            rendered.lines.extend(self._wrap(row))
        rendered.lines.append(Text())
        rendered.lines.append(
            Text("enter/1-9: run | c: copy | esc: cancel", style=self.theme.muted)
        )
        return rendered

    def help(self) -> Rendered:
        return Rendered(lines=self._wrap(Text(help_text(self.keybinds))))

"""Tests for the transcript renderer."""

from __future__ import annotations

import unittest

from gpt_term.models import Conversation, Role
from gpt_term.render import Theme, TranscriptRenderer, help_text


def _renderer(width: int = 40) -> TranscriptRenderer:
    renderer = TranscriptRenderer(Theme.from_config({}), keybinds={"quit": "ctrl+q"})
    renderer.width = width
    return renderer


class RendererTests(unittest.TestCase):
    """Validate decorations, anchors and wrapping."""

    def setUp(self) -> None:
        self.conversation = Conversation.new("hidden system prompt")
        self.conversation.append(Role.USER, "list files")
        self.conversation.append(
            Role.ASSISTANT, "Run <command>ls -la</command>\n```\nexample\n```"
        )

    def test_system_prompt_is_hidden_and_banner_shown(self) -> None:
        plain = [line.plain for line in _renderer().transcript(self.conversation).lines]
        self.assertTrue(plain[0].startswith("- Beginning of conversation"))
        self.assertNotIn("hidden system prompt", "\n".join(plain))
        self.assertIn("You:", plain)
        self.assertIn("Assistant:", plain)

    def test_empty_conversation_has_no_banner(self) -> None:
        rendered = _renderer().transcript(Conversation.new("s"))
        self.assertEqual(rendered.lines, [])

    def test_anchors_point_at_message_labels(self) -> None:
        rendered = _renderer().transcript(self.conversation)
        self.assertEqual(rendered.lines[rendered.anchors[1]].plain, "You:")
        self.assertEqual(rendered.lines[rendered.anchors[2]].plain, "Assistant:")
        self.assertNotIn(0, rendered.anchors)

    def test_code_blocks_are_indented(self) -> None:
        plain = [line.plain for line in _renderer().transcript(self.conversation).lines]
        self.assertIn("    example", plain)

    def test_long_lines_wrap_to_width(self) -> None:
        self.conversation.append(Role.USER, "word " * 30)
        rendered = _renderer(width=20).transcript(self.conversation)
        self.assertTrue(all(len(line.plain) <= 20 for line in rendered.lines))

    def test_editing_cursor_adds_instruction_bar(self) -> None:
        plain = [
            line.plain for line in _renderer(width=200).transcript(self.conversation, cursor=1).lines
        ]
        self.assertIn("> You:", plain)
        self.assertTrue(any("cannot be undone" in line for line in plain))
        plain = [
            line.plain for line in _renderer(width=200).transcript(self.conversation, cursor=2).lines
        ]
        self.assertTrue(any("x: choose a command" in line for line in plain))

    def test_history_rows(self) -> None:
        other = Conversation.new("s")
        rendered = _renderer(width=80).history([self.conversation, other], selected=1)
        rows = [rendered.lines[rendered.anchors[i]].plain for i in (0, 1)]
        self.assertTrue(rows[0].startswith("  ") and rows[0].endswith("list files"))
        self.assertTrue(rows[1].startswith("> ") and rows[1].endswith("(no user messages)"))

    def test_command_list_is_numbered(self) -> None:
        rendered = _renderer().commands(["ls -la", "pwd"], selected=0)
        rows = [rendered.lines[rendered.anchors[i]].plain for i in (0, 1)]
        self.assertEqual(rows, ["> 1. ls -la", "  2. pwd"])

    def test_help_uses_configured_keys(self) -> None:
        self.assertIn("ctrl+q: quit", help_text({"quit": "ctrl+q"}))
        plain = "\n".join(line.plain for line in _renderer(width=120).help().lines)
        self.assertIn("ctrl+q: quit", plain)


if __name__ == "__main__":
    unittest.main()

"""Tests for the conversation data model."""

from __future__ import annotations

from datetime import datetime, timezone
import unittest

from gpt_term.models import Conversation, Message, Role, summarize


def _conversation(*turns: tuple[Role, str]) -> Conversation:
    conversation = Conversation.new("system prompt")
    for role, content in turns:
        conversation.append(role, content)
    return conversation


class ConversationTests(unittest.TestCase):
    """Validate message ordering, edits and snapshot encoding."""

    def test_new_conversation_holds_only_system_message(self) -> None:
        conversation = Conversation.new("be helpful")
        self.assertEqual(len(conversation), 1)
        self.assertIs(conversation.messages[0].role, Role.SYSTEM)
        self.assertFalse(conversation.has_turns)
        self.assertEqual(conversation.summary, "")

    def test_first_message_must_be_system(self) -> None:
        with self.assertRaises(ValueError):
            Conversation(
                id="x",
                created_at=datetime.now(timezone.utc),
                messages=[Message(Role.USER, "hi")],
            )

    def test_append_rejects_system_role(self) -> None:
        with self.assertRaises(ValueError):
            Conversation.new("s").append(Role.SYSTEM, "again")

    def test_summary_follows_first_user_message(self) -> None:
        conversation = _conversation((Role.USER, "hi"), (Role.ASSISTANT, "hello"))
        self.assertEqual(conversation.summary, "hi")
        conversation.append(Role.USER, "second question")
        self.assertEqual(conversation.summary, "hi")

    def test_summary_truncates_long_text(self) -> None:
        text = "x" * 60
        self.assertEqual(summarize([Message(Role.USER, text)]), "x" * 47 + "...")
        self.assertEqual(summarize([Message(Role.USER, "y" * 50)]), "y" * 50)

    def test_commit_edit_truncates_after_index(self) -> None:
        conversation = _conversation((Role.USER, "hi"), (Role.ASSISTANT, "hello"))
        discarded = conversation.commit_edit(1, "bye")
        self.assertEqual(discarded, 1)
        self.assertEqual(len(conversation), 2)
        self.assertEqual(conversation.messages[1].content, "bye")
        self.assertEqual(conversation.summary, "bye")

    def test_commit_edit_length_is_index_plus_one(self) -> None:
        conversation = _conversation(
            (Role.USER, "a"),
            (Role.ASSISTANT, "b"),
            (Role.USER, "c"),
            (Role.ASSISTANT, "d"),
            (Role.USER, "e"),
        )
        for index in (5, 3, 1):
            conversation.commit_edit(index, f"edited {index}")
            self.assertEqual(len(conversation), index + 1)
            self.assertEqual(conversation.messages[index].content, f"edited {index}")

    def test_commit_edit_rejects_system_and_assistant(self) -> None:
        conversation = _conversation((Role.USER, "hi"), (Role.ASSISTANT, "hello"))
        with self.assertRaises(IndexError):
            conversation.commit_edit(0, "nope")
        with self.assertRaises(ValueError):
            conversation.commit_edit(2, "nope")
        with self.assertRaises(IndexError):
            conversation.commit_edit(3, "nope")

    def test_last_assistant_index(self) -> None:
        conversation = _conversation((Role.USER, "hi"))
        self.assertIsNone(conversation.last_assistant_index())
        conversation.append(Role.ASSISTANT, "a")
        conversation.append(Role.USER, "b")
        self.assertEqual(conversation.last_assistant_index(), 2)

    def test_snapshot_is_independent_copy(self) -> None:
        conversation = _conversation((Role.USER, "hi"))
        snapshot = conversation.snapshot()
        conversation.append(Role.ASSISTANT, "later")
        self.assertEqual(len(snapshot), 2)
        self.assertEqual(snapshot.id, conversation.id)

    def test_dict_encoding_preserves_fields(self) -> None:
        conversation = _conversation((Role.USER, "hi"), (Role.ASSISTANT, "hello"))
        decoded = Conversation.from_dict(conversation.to_dict())
        self.assertEqual(decoded.id, conversation.id)
        self.assertEqual(decoded.created_at, conversation.created_at)
        self.assertEqual(decoded.summary, "hi")
        self.assertEqual(
            [(m.role, m.content) for m in decoded.messages],
            [(Role.SYSTEM, "system prompt"), (Role.USER, "hi"), (Role.ASSISTANT, "hello")],
        )

    def test_from_dict_rejects_malformed_records(self) -> None:
        with self.assertRaises(ValueError):
            Conversation.from_dict({"id": "x"})
        with self.assertRaises(ValueError):
            Conversation.from_dict(
                {
                    "id": "x",
                    "created_at": "2024-01-01T00:00:00",
                    "messages": [{"role": "robot", "content": "?"}],
                }
            )


if __name__ == "__main__":
    unittest.main()

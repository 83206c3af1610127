"""Conversation data model and snapshot (de)serialisation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

SUMMARY_LENGTH = 50


def _now() -> datetime:
    return datetime.now().astimezone()


class Role(str, Enum):
    """Author of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single turn fragment; replaced, never mutated."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, str]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Message:
        """Build a message from a snapshot entry, raising ValueError when malformed."""
        if not isinstance(payload, dict):
            raise ValueError("Message entry must be an object.")
        role = Role(str(payload.get("role", "")).strip().lower())
        content = payload.get("content", "")
        if not isinstance(content, str):
            raise ValueError("Message content must be a string.")
        raw_ts = payload.get("timestamp")
        timestamp = datetime.fromisoformat(raw_ts) if isinstance(raw_ts, str) else _now()
        return cls(role=role, content=content, timestamp=timestamp)


def summarize(messages: list[Message], limit: int = SUMMARY_LENGTH) -> str:
    """Derive a title from the first user message; empty when there is none."""
    for message in messages:
        if message.role is Role.USER:
            if len(message.content) > limit:
                return message.content[: limit - 3] + "..."
            return message.content
    return ""


@dataclass
class Conversation:
    """Ordered message history whose first entry is the hidden system prompt."""

    id: str
    created_at: datetime
    messages: list[Message]
    summary: str = ""
    summary_length: int = field(default=SUMMARY_LENGTH, repr=False, compare=False)

    @classmethod
    def new(cls, system_prompt: str, summary_length: int = SUMMARY_LENGTH) -> Conversation:
        created = _now()
        return cls(
            id=str(uuid4()),
            created_at=created,
            messages=[Message(Role.SYSTEM, system_prompt, created)],
            summary_length=summary_length,
        )

    def __post_init__(self) -> None:
        if not self.messages or self.messages[0].role is not Role.SYSTEM:
            raise ValueError("Conversation must start with a system message.")

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def has_turns(self) -> bool:
        return len(self.messages) > 1

    def refresh_summary(self) -> None:
        self.summary = summarize(self.messages, self.summary_length)

    def append(self, role: Role, content: str) -> Message:
        """Append a message and keep the derived summary current."""
        if role is Role.SYSTEM:
            raise ValueError("Only the leading message may use the system role.")
        message = Message(role, content)
        self.messages.append(message)
        if role is Role.USER:
            self.refresh_summary()
        return message

    def commit_edit(self, index: int, content: str) -> int:
        """Replace user message ``index`` and drop every later message.

        This is irreversible. Returns the number of messages discarded.
        """
        if not 1 <= index < len(self.messages):
            raise IndexError(f"Message index {index} is not editable.")
        target = self.messages[index]
        if target.role is not Role.USER:
            raise ValueError("Only user messages can be edited.")
        discarded = len(self.messages) - index - 1
        self.messages[index] = replace(target, content=content, timestamp=_now())
        del self.messages[index + 1 :]
        self.refresh_summary()
        return discarded

    def last_assistant_index(self) -> int | None:
        for index in range(len(self.messages) - 1, 0, -1):
            if self.messages[index].role is Role.ASSISTANT:
                return index
        return None

    def snapshot(self) -> Conversation:
        """Return a copy safe to hand to background work."""
        return Conversation(
            id=self.id,
            created_at=self.created_at,
            messages=list(self.messages),
            summary=self.summary,
            summary_length=self.summary_length,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "messages": [message.to_dict() for message in self.messages],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Conversation:
        """Decode a snapshot record, raising ValueError when malformed."""
        if not isinstance(payload, dict):
            raise ValueError("Conversation snapshot must be an object.")
        conv_id = payload.get("id")
        created_raw = payload.get("created_at")
        raw_messages = payload.get("messages")
        if not isinstance(conv_id, str) or not conv_id:
            raise ValueError("Conversation snapshot is missing an id.")
        if not isinstance(created_raw, str):
            raise ValueError("Conversation snapshot is missing created_at.")
        if not isinstance(raw_messages, list):
            raise ValueError("Conversation snapshot messages must be a list.")
        summary = payload.get("summary", "")
        return cls(
            id=conv_id,
            created_at=datetime.fromisoformat(created_raw),
            messages=[Message.from_dict(item) for item in raw_messages],
            summary=summary if isinstance(summary, str) else "",
        )

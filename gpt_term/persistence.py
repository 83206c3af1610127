"""On-disk conversation snapshots keyed by creation time and id."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile

from .exceptions import ConversationNotFoundError, PersistenceError, PersistenceFormatError
from .models import Conversation

LOGGER = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".convo"


class ConversationPersistence:
    """Save, list, and load whole-conversation snapshots."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def _enforce_permissions(self, path: Path, mode: int = 0o600) -> None:
        """Set POSIX permissions on a file or directory; silently ignores failures."""
        if os.name != "posix":
            return
        try:
            path.chmod(mode)
        except OSError:
            pass

    def ensure_ready(self) -> None:
        """Create the snapshot directory, raising PersistenceError when impossible."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Error creating storage directory {self.directory}: {exc}"
            ) from exc
        self._enforce_permissions(self.directory, 0o700)

    @staticmethod
    def filename_for(conversation: Conversation) -> str:
        stamp = conversation.created_at.strftime("%Y-%m-%dT%H-%M-%S")
        return f"{stamp}_{conversation.id}{SNAPSHOT_SUFFIX}"

    def save_conversation(self, conversation: Conversation) -> Path:
        """Atomically replace the conversation's snapshot with its current state."""
        self.ensure_ready()
        target = self.directory / self.filename_for(conversation)
        data = json.dumps(conversation.to_dict(), ensure_ascii=False, indent=2)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=".tmp-",
                suffix=SNAPSHOT_SUFFIX,
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(data)
            self._enforce_permissions(tmp_path)
            os.replace(tmp_path, target)
        except OSError as exc:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Error writing conversation file: {exc}") from exc
        LOGGER.info(
            "persistence.save",
            extra={
                "event": "persistence.save",
                "conversation_id": conversation.id,
                "messages": len(conversation),
            },
        )
        return target

    def _read_snapshot(self, path: Path) -> Conversation:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return Conversation.from_dict(payload)
        except (OSError, ValueError) as exc:
            raise PersistenceFormatError(f"Unreadable snapshot {path.name}: {exc}") from exc

    def _snapshot_paths(self) -> list[Path]:
        if not self.directory.exists():
            return []
        try:
            return sorted(
                path
                for path in self.directory.glob(f"*{SNAPSHOT_SUFFIX}")
                if not path.name.startswith(".tmp-")
            )
        except OSError as exc:
            raise PersistenceError(f"Error reading directory: {exc}") from exc

    def list_conversations(self) -> list[Conversation]:
        """Return every readable snapshot, newest first; unreadable files are skipped."""
        conversations: list[Conversation] = []
        for path in self._snapshot_paths():
            try:
                conversations.append(self._read_snapshot(path))
            except PersistenceFormatError as exc:
                LOGGER.warning(
                    "persistence.skip",
                    extra={"event": "persistence.skip", "reason": str(exc)},
                )
        conversations.sort(key=lambda conv: conv.created_at, reverse=True)
        return conversations

    def load_conversation(self, conversation_id: str) -> Conversation:
        """Load one snapshot by id or raise ConversationNotFoundError."""
        for path in self._snapshot_paths():
            if not path.stem.endswith(f"_{conversation_id}"):
                continue
            conversation = self._read_snapshot(path)
            if conversation.id == conversation_id:
                return conversation
        raise ConversationNotFoundError(f"conversation not found: {conversation_id}")

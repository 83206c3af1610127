"""Background work that leaves the process, reported back as single events.

Every operation started here schedules one task and, when that task ends,
calls ``deliver`` exactly once with a typed completion event. Work receives
copies of conversation data, never the live objects owned by the engine.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
import logging
from typing import Any, Protocol, Union

from .exceptions import GptTermError
from .external import ProcessResult, copy_to_clipboard, edit_text, run_shell
from .models import Conversation, Message
from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)

COMPLETION_TASK = "completion"


class CompletionClient(Protocol):
    async def complete(self, messages: Sequence[Message]) -> str: ...


@dataclass(frozen=True)
class ReplyReceived:
    conversation_id: str
    text: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class EditFinished:
    conversation_id: str
    index: int
    text: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class CommandFinished:
    conversation_id: str
    command: str
    output: str = ""
    returncode: int = 0
    error: str | None = None


@dataclass(frozen=True)
class ClipboardFinished:
    error: str | None = None


CompletionEvent = Union[ReplyReceived, EditFinished, CommandFinished, ClipboardFinished]


class TaskCoordinator:
    """Fire assistant, editor, shell and clipboard work off the control loop."""

    def __init__(
        self,
        client: CompletionClient,
        deliver: Callable[[CompletionEvent], None],
        *,
        editor_argv: Sequence[str] = ("nvim",),
        shell: str = "sh",
        shell_timeout: float | None = None,
        hand_off: Callable[[], AbstractContextManager[Any]] = nullcontext,
        shell_runner: Callable[..., Awaitable[ProcessResult]] = run_shell,
        clipboard: Callable[[str], Awaitable[None]] = copy_to_clipboard,
        editor: Callable[[str, Sequence[str]], str] = edit_text,
        tasks: TaskManager | None = None,
    ) -> None:
        self.client = client
        self._deliver = deliver
        self.editor_argv = list(editor_argv)
        self.shell = shell
        self.shell_timeout = shell_timeout
        self._hand_off = hand_off
        self._shell_runner = shell_runner
        self._clipboard = clipboard
        self._editor = editor
        self.tasks = tasks or TaskManager()

    @property
    def completion_pending(self) -> bool:
        return self.tasks.running(COMPLETION_TASK)

    def request_completion(self, conversation: Conversation) -> None:
        """Send a copy of ``conversation`` to the assistant."""
        snapshot = conversation.snapshot()
        self.tasks.spawn(self._complete(snapshot), name=COMPLETION_TASK)

    async def _complete(self, conversation: Conversation) -> None:
        LOGGER.info(
            "coordinator.completion.start",
            extra={
                "event": "coordinator.completion.start",
                "conversation_id": conversation.id,
                "messages": len(conversation),
            },
        )
        try:
            text = await self.client.complete(conversation.messages)
        except GptTermError as exc:
            LOGGER.warning(
                "coordinator.completion.failed",
                extra={"event": "coordinator.completion.failed", "reason": str(exc)},
            )
            self._deliver(ReplyReceived(conversation.id, error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001 - the loop must always get an event.
            LOGGER.exception(
                "coordinator.completion.crashed",
                extra={"event": "coordinator.completion.crashed"},
            )
            self._deliver(ReplyReceived(conversation.id, error=f"Unexpected error: {exc}"))
            return
        self._deliver(ReplyReceived(conversation.id, text=text))

    def edit(self, conversation_id: str, index: int, content: str) -> None:
        """Open ``content`` in the external editor with terminal control handed off."""
        self.tasks.spawn(self._edit(conversation_id, index, content))

    async def _edit(self, conversation_id: str, index: int, content: str) -> None:
        LOGGER.info(
            "coordinator.editor.start",
            extra={"event": "coordinator.editor.start", "editor": self.editor_argv[:1]},
        )
        try:
            # The editor owns the terminal until it exits.
            with self._hand_off():
                text = self._editor(content, self.editor_argv)
        except GptTermError as exc:
            self._deliver(EditFinished(conversation_id, index, error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001 - the loop must always get an event.
            LOGGER.exception(
                "coordinator.editor.crashed",
                extra={"event": "coordinator.editor.crashed"},
            )
            self._deliver(
                EditFinished(conversation_id, index, error=f"Unexpected error: {exc}")
            )
            return
        self._deliver(EditFinished(conversation_id, index, text=text))

    def execute(self, conversation_id: str, command: str) -> None:
        """Run ``command`` through the configured shell."""
        self.tasks.spawn(self._execute(conversation_id, command))

    async def _execute(self, conversation_id: str, command: str) -> None:
        LOGGER.info(
            "coordinator.command.start",
            extra={"event": "coordinator.command.start", "shell": self.shell},
        )
        try:
            result = await self._shell_runner(
                command, self.shell, timeout=self.shell_timeout
            )
        except GptTermError as exc:
            self._deliver(CommandFinished(conversation_id, command, error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001 - the loop must always get an event.
            LOGGER.exception(
                "coordinator.command.crashed",
                extra={"event": "coordinator.command.crashed"},
            )
            self._deliver(
                CommandFinished(conversation_id, command, error=f"Unexpected error: {exc}")
            )
            return
        LOGGER.info(
            "coordinator.command.complete",
            extra={"event": "coordinator.command.complete", "returncode": result.returncode},
        )
        self._deliver(
            CommandFinished(
                conversation_id,
                command,
                output=result.output,
                returncode=result.returncode,
            )
        )

    def copy(self, text: str) -> None:
        """Send ``text`` to the system clipboard."""
        self.tasks.spawn(self._copy(text))

    async def _copy(self, text: str) -> None:
        try:
            await self._clipboard(text)
        except GptTermError as exc:
            self._deliver(ClipboardFinished(error=str(exc)))
            return
        except Exception as exc:  # noqa: BLE001 - the loop must always get an event.
            LOGGER.exception(
                "coordinator.clipboard.crashed",
                extra={"event": "coordinator.clipboard.crashed"},
            )
            self._deliver(ClipboardFinished(error=f"Unexpected error: {exc}"))
            return
        self._deliver(ClipboardFinished())

    async def shutdown(self) -> None:
        """Drop outstanding work; results still in flight are never delivered."""
        await self.tasks.cancel_all()

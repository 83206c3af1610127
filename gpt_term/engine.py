"""Interaction engine: the single owner of conversation and mode state.

The engine is driven by three kinds of events, each processed to completion
before the next one: keys (routed through ``ModeMachine``), global actions,
and completion events from ``TaskCoordinator``. Rendered content is always
regenerated before any scroll arithmetic runs so line anchors are never stale.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rich.text import Text

from .commands import execution_report
from .coordinator import (
    ClipboardFinished,
    CommandFinished,
    CompletionEvent,
    EditFinished,
    ReplyReceived,
)
from .exceptions import GptTermError
from .models import Conversation, Role
from .modes import (
    BrowseHistory,
    CommandSelect,
    CopyText,
    Editing,
    Effect,
    EditMessage,
    GlobalAction,
    Help,
    History,
    LoadLatest,
    Mode,
    ModeMachine,
    ModeState,
    NewChat,
    Normal,
    OpenConversation,
    Quit,
    RevealMessage,
    RevealRow,
    RunCommand,
    Scroll,
    ScrollEdge,
    ScrollPage,
    Step,
)
from .render import Rendered, TranscriptRenderer
from .state import RequestGate
from .viewport import ScrollManager

LOGGER = logging.getLogger(__name__)

BUSY_MESSAGE = "A reply is still loading; wait for it before sending another request."

_STATUS_HINTS: dict[Mode, str] = {
    Mode.NORMAL: "enter: send | ctrl+j/k: edit mode | ctrl+x: run command | ctrl+h: help",
    Mode.EDITING: "j/k: move | enter: edit | x: run command | c: copy | esc: back",
    Mode.HISTORY: "up/down: select | enter: open | esc: back",
    Mode.COMMAND_SELECT: "up/down or 1-9: choose | enter: run | c: copy | esc: back",
    Mode.HELP: "press any key to return",
}


class ConversationStore(Protocol):
    def save_conversation(self, conversation: Conversation) -> Any: ...

    def list_conversations(self) -> list[Conversation]: ...


class Coordinator(Protocol):
    def request_completion(self, conversation: Conversation) -> None: ...

    def edit(self, conversation_id: str, index: int, content: str) -> None: ...

    def execute(self, conversation_id: str, command: str) -> None: ...

    def copy(self, text: str) -> None: ...


class InteractionEngine:
    """Compose mode machine, viewport, request gate and background work."""

    def __init__(
        self,
        *,
        store: ConversationStore,
        coordinator: Coordinator,
        renderer: TranscriptRenderer,
        system_prompt: str,
        ui_config: dict[str, Any] | None = None,
    ) -> None:
        ui = ui_config or {}
        self.store = store
        self.coordinator = coordinator
        self.renderer = renderer
        self.system_prompt = system_prompt
        self.summary_length = int(ui.get("summary_length", 50))
        self.edit_bias = float(ui.get("edit_bias", 0.25))
        self.history_bias = float(ui.get("history_bias", 0.5))
        self.machine = ModeMachine(scroll_step=int(ui.get("scroll_step", 3)))
        self.scroll: ScrollManager[Text] = ScrollManager()
        self.gate = RequestGate()
        self.state: ModeState = Normal()
        self.conversation = Conversation.new(system_prompt, self.summary_length)
        self.error: str | None = None
        self.status: str | None = None
        self.quit_requested = False
        self._rendered = Rendered()
        self._recent_index = -1
        self._refresh()

    # -- read-only views -------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def is_loading(self) -> bool:
        return self.gate.busy

    @property
    def accepts_input(self) -> bool:
        """Whether the message box may offer a send affordance."""
        return isinstance(self.state, Normal) and not self.gate.busy

    @property
    def title(self) -> str:
        if isinstance(self.state, (Normal, Editing)):
            return self.conversation.summary
        if isinstance(self.state, History):
            return "History"
        if isinstance(self.state, CommandSelect):
            return "Run command"
        return "Help"

    @property
    def status_hint(self) -> str:
        return _STATUS_HINTS[self.mode]

    def visible_lines(self) -> list[Text]:
        return self.scroll.visible_lines()

    # -- inputs ----------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Re-wrap for a new viewport; a view resting on the last line stays there."""
        scroll = self.scroll
        first_size = not scroll.ready
        pinned = scroll.offset >= scroll.max_offset and (
            scroll.overflows or isinstance(self.state, Normal)
        )
        self.renderer.width = max(0, width)
        scroll.resize(width, height)
        self._refresh()
        if first_size or pinned:
            scroll.goto_bottom()

    def handle_key(self, key: str) -> None:
        step = self.machine.handle_key(
            self.state, key, self.conversation, page_size=self.scroll.height
        )
        self._apply(step)

    def apply_global(self, action: GlobalAction) -> None:
        self._apply(self.machine.apply_global(self.state, action, self.conversation))

    def wheel(self, direction: int) -> None:
        """Mouse wheel: moves the selection in History, scrolls elsewhere."""
        if isinstance(self.state, History):
            self.handle_key("down" if direction > 0 else "up")
            return
        self.scroll.scroll_by(direction * self.machine.scroll_step)

    def submit(self, text: str) -> bool:
        """Append a user message and ask for a reply; False when nothing was sent."""
        content = text.strip()
        if not content or not isinstance(self.state, Normal):
            return False
        if self.gate.busy:
            self.error = BUSY_MESSAGE
            return False
        self.error = None
        self.conversation.append(Role.USER, content)
        self._request_completion()
        self._refresh()
        self.scroll.goto_bottom()
        return True

    def handle_completion(self, event: CompletionEvent) -> None:
        """Merge the result of one background operation into engine state."""
        if isinstance(event, ReplyReceived):
            self._on_reply(event)
        elif isinstance(event, EditFinished):
            self._on_edit(event)
        elif isinstance(event, CommandFinished):
            self._on_command(event)
        elif isinstance(event, ClipboardFinished):
            if event.error:
                self.error = event.error
            else:
                self.status = "Copied to clipboard."
        self._refresh()

    # -- completion handlers --------------------------------------------

    def _is_stale(self, conversation_id: str, kind: str) -> bool:
        if conversation_id == self.conversation.id:
            return False
        LOGGER.info(
            "engine.result.dropped",
            extra={
                "event": "engine.result.dropped",
                "kind": kind,
                "conversation_id": conversation_id,
            },
        )
        return True

    def _on_reply(self, event: ReplyReceived) -> None:
        self.gate.finish()
        self.status = None
        if self._is_stale(event.conversation_id, "reply"):
            return
        if event.error is not None:
            self.error = f"Error: {event.error}"
            return
        self.conversation.append(Role.ASSISTANT, event.text or "")
        self._save()
        if isinstance(self.state, Normal):
            self._refresh()
            self.scroll.goto_bottom()

    def _on_edit(self, event: EditFinished) -> None:
        if self._is_stale(event.conversation_id, "edit"):
            return
        if event.error is not None:
            self.error = f"Error: {event.error}"
            return
        content = (event.text or "").rstrip()
        if not content:
            self.status = "Edit cancelled."
            return
        if self.gate.busy:
            self.error = BUSY_MESSAGE
            return
        try:
            discarded = self.conversation.commit_edit(event.index, content)
        except (IndexError, ValueError) as exc:
            self.error = f"Error: {exc}"
            return
        LOGGER.info(
            "engine.edit.committed",
            extra={
                "event": "engine.edit.committed",
                "index": event.index,
                "discarded": discarded,
            },
        )
        self.state = Normal()
        self._save()
        self._request_completion()
        self.status = f"Message edited; {discarded} later message(s) discarded."
        self._refresh()
        self.scroll.goto_bottom()

    def _on_command(self, event: CommandFinished) -> None:
        if self._is_stale(event.conversation_id, "command"):
            return
        self.status = None
        if event.error is not None:
            self.error = f"Error: {event.error}"
            return
        self.conversation.append(
            Role.ASSISTANT, execution_report(event.command, event.output, event.returncode)
        )
        self._save()
        if isinstance(self.state, Normal):
            self._refresh()
            self.scroll.goto_bottom()

    # -- transitions and effects ----------------------------------------

    def _apply(self, step: Step) -> None:
        previous = self.state
        self.state = step.state
        if previous.mode is not self.state.mode:
            LOGGER.debug(
                "engine.mode.transition",
                extra={
                    "event": "engine.mode.transition",
                    "from": previous.mode.value,
                    "to": self.state.mode.value,
                },
            )
            self.error = None
        self._refresh()
        if previous.mode is not self.state.mode:
            self._settle_viewport(previous)
        for effect in step.effects:
            self._perform(effect)

    def _settle_viewport(self, previous: ModeState) -> None:
        if isinstance(self.state, (History, CommandSelect, Help)):
            self.scroll.goto_top()
        elif isinstance(self.state, Normal) and not isinstance(previous, Editing):
            self.scroll.goto_bottom()

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, Quit):
            self.quit_requested = True
        elif isinstance(effect, NewChat):
            self._open(Conversation.new(self.system_prompt, self.summary_length))
            self._recent_index = -1
        elif isinstance(effect, BrowseHistory):
            self._browse_history()
        elif isinstance(effect, LoadLatest):
            self._load_next_recent()
        elif isinstance(effect, Scroll):
            self.scroll.scroll_by(effect.delta)
        elif isinstance(effect, ScrollPage):
            self.scroll.scroll_half_page(effect.direction)
        elif isinstance(effect, ScrollEdge):
            if effect.bottom:
                self.scroll.goto_bottom()
            else:
                self.scroll.goto_top()
        elif isinstance(effect, RevealMessage):
            self._reveal(effect.index, self.edit_bias, len(self.conversation) - 1)
        elif isinstance(effect, RevealRow):
            last = len(self.state.items) - 1 if isinstance(self.state, History) else 0
            self._reveal(effect.index, self.history_bias, last)
        elif isinstance(effect, EditMessage):
            if self.gate.busy:
                self.error = BUSY_MESSAGE
                return
            self.coordinator.edit(self.conversation.id, effect.index, effect.content)
        elif isinstance(effect, RunCommand):
            self.status = f"Running: {effect.command}"
            self.coordinator.execute(self.conversation.id, effect.command)
        elif isinstance(effect, CopyText):
            self.coordinator.copy(effect.text)
        elif isinstance(effect, OpenConversation):
            self._open(effect.conversation)

    def _reveal(self, index: int, bias: float, last_index: int) -> None:
        anchor = self._rendered.anchors.get(index)
        if anchor is None:
            return
        self.scroll.ensure_visible(anchor, bias, pin_bottom=index == last_index)

    def _open(self, conversation: Conversation) -> None:
        conversation.summary_length = self.summary_length
        self.conversation = conversation
        self.error = None
        self.status = None
        self._refresh()
        self.scroll.goto_bottom()
        LOGGER.info(
            "engine.conversation.opened",
            extra={"event": "engine.conversation.opened", "conversation_id": conversation.id},
        )

    def _list_saved(self) -> list[Conversation] | None:
        try:
            return self.store.list_conversations()
        except GptTermError as exc:
            self.error = f"Error: {exc}"
            return None

    def _browse_history(self) -> None:
        items = self._list_saved()
        if items is None:
            return
        self.state = self.machine.history_state(items)
        self._refresh()
        self.scroll.goto_top()

    def _load_next_recent(self) -> None:
        items = self._list_saved()
        if not items:
            return
        ordered = sorted(items, key=lambda conv: conv.created_at, reverse=True)
        self._recent_index = (self._recent_index + 1) % len(ordered)
        self._open(ordered[self._recent_index])

    def _request_completion(self) -> None:
        if not self.gate.try_begin(self.conversation.id):
            self.error = BUSY_MESSAGE
            return
        self.status = "Loading..."
        self.coordinator.request_completion(self.conversation)

    def _save(self) -> None:
        try:
            self.store.save_conversation(self.conversation)
        except GptTermError as exc:
            LOGGER.warning(
                "engine.save.failed",
                extra={"event": "engine.save.failed", "reason": str(exc)},
            )
            self.error = f"Error saving conversation: {exc}"

    def _refresh(self) -> None:
        state = self.state
        if isinstance(state, Editing):
            self._rendered = self.renderer.transcript(self.conversation, state.cursor_index)
        elif isinstance(state, History):
            self._rendered = self.renderer.history(state.items, state.selected)
        elif isinstance(state, CommandSelect):
            self._rendered = self.renderer.commands(state.commands, state.selected)
        elif isinstance(state, Help):
            self._rendered = self.renderer.help()
        else:
            self._rendered = self.renderer.transcript(self.conversation)
        self.scroll.set_content(self._rendered.lines)

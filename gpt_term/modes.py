"""Interaction modes and their per-mode key tables.

Each mode is its own immutable variant carrying only the fields that are
meaningful in it. ``ModeMachine`` maps ``(mode, input)`` to a ``Step``: the
next mode plus the effects the engine must carry out. Input a mode does not
recognise returns the current mode unchanged with no effects.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from .commands import extract_commands
from .models import Conversation, Role


class Mode(str, Enum):
    NORMAL = "normal"
    EDITING = "editing"
    HISTORY = "history"
    COMMAND_SELECT = "command_select"
    HELP = "help"


@dataclass(frozen=True)
class Normal:
    mode: ClassVar[Mode] = Mode.NORMAL


@dataclass(frozen=True)
class Editing:
    cursor_index: int
    mode: ClassVar[Mode] = Mode.EDITING


@dataclass(frozen=True)
class History:
    items: tuple[Conversation, ...] = ()
    selected: int = 0
    mode: ClassVar[Mode] = Mode.HISTORY


@dataclass(frozen=True)
class CommandSelect:
    commands: tuple[str, ...]
    selected: int = 0
    mode: ClassVar[Mode] = Mode.COMMAND_SELECT

    def __post_init__(self) -> None:
        if not self.commands:
            raise ValueError("Command selection requires at least one command.")

    @property
    def current(self) -> str:
        return self.commands[self.selected]


@dataclass(frozen=True)
class Help:
    mode: ClassVar[Mode] = Mode.HELP


ModeState = Union[Normal, Editing, History, CommandSelect, Help]


# Effects requested from the engine.


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class NewChat:
    pass


@dataclass(frozen=True)
class BrowseHistory:
    pass


@dataclass(frozen=True)
class LoadLatest:
    pass


@dataclass(frozen=True)
class Scroll:
    delta: int


@dataclass(frozen=True)
class ScrollPage:
    direction: int


@dataclass(frozen=True)
class ScrollEdge:
    bottom: bool


@dataclass(frozen=True)
class RevealMessage:
    index: int


@dataclass(frozen=True)
class RevealRow:
    index: int


@dataclass(frozen=True)
class EditMessage:
    index: int
    content: str


@dataclass(frozen=True)
class RunCommand:
    command: str


@dataclass(frozen=True)
class CopyText:
    text: str


@dataclass(frozen=True)
class OpenConversation:
    conversation: Conversation


Effect = Union[
    Quit,
    NewChat,
    BrowseHistory,
    LoadLatest,
    Scroll,
    ScrollPage,
    ScrollEdge,
    RevealMessage,
    RevealRow,
    EditMessage,
    RunCommand,
    CopyText,
    OpenConversation,
]


@dataclass(frozen=True)
class Step:
    state: ModeState
    effects: tuple[Effect, ...] = ()


class GlobalAction(str, Enum):
    """Inputs accepted regardless of the active mode."""

    QUIT = "quit"
    NEW_CHAT = "new_chat"
    SHOW_HELP = "show_help"
    EXECUTE_LAST = "execute_last"
    EDIT_NAVIGATION = "edit_navigation"
    BROWSE_HISTORY = "browse_history"
    LOAD_LATEST = "load_latest"


_KeyHandler = Callable[[ModeState, Conversation, int], Step]


class ModeMachine:
    """Apply global actions and the active mode's key table."""

    def __init__(self, scroll_step: int = 3) -> None:
        self.scroll_step = max(1, scroll_step)
        self._tables: dict[Mode, dict[str, _KeyHandler]] = {
            Mode.NORMAL: {
                "up": lambda s, c, p: Step(s, (Scroll(-self.scroll_step),)),
                "down": lambda s, c, p: Step(s, (Scroll(self.scroll_step),)),
                "pageup": lambda s, c, p: Step(s, (ScrollPage(-1),)),
                "pagedown": lambda s, c, p: Step(s, (ScrollPage(1),)),
                "home": lambda s, c, p: Step(s, (ScrollEdge(bottom=False),)),
                "end": lambda s, c, p: Step(s, (ScrollEdge(bottom=True),)),
                "escape": lambda s, c, p: Step(s, (Quit(),)),
            },
            Mode.EDITING: {
                "escape": lambda s, c, p: Step(Normal()),
                "k": lambda s, c, p: self._move_cursor(s, c, -1),
                "j": lambda s, c, p: self._move_cursor(s, c, 1),
                "up": lambda s, c, p: Step(s, (Scroll(-self.scroll_step),)),
                "down": lambda s, c, p: Step(s, (Scroll(self.scroll_step),)),
                "x": lambda s, c, p: self._execute(s, c),
                "c": self._copy_message,
                "enter": self._edit_message,
            },
            Mode.HISTORY: {
                "escape": lambda s, c, p: Step(Normal()),
                "up": lambda s, c, p: self._select_row(s, s.selected - 1),
                "down": lambda s, c, p: self._select_row(s, s.selected + 1),
                "pageup": lambda s, c, p: self._select_row(s, s.selected - max(1, p)),
                "pagedown": lambda s, c, p: self._select_row(s, s.selected + max(1, p)),
                "home": lambda s, c, p: self._select_row(s, 0),
                "end": lambda s, c, p: self._select_row(s, len(s.items) - 1),
                "enter": self._open_conversation,
            },
            Mode.COMMAND_SELECT: {
                "escape": lambda s, c, p: Step(Normal()),
                "up": lambda s, c, p: self._select_command(s, s.selected - 1),
                "down": lambda s, c, p: self._select_command(s, s.selected + 1),
                "enter": lambda s, c, p: Step(Normal(), (RunCommand(s.current),)),
                "c": lambda s, c, p: Step(Normal(), (CopyText(s.current),)),
            },
        }

    def apply_global(
        self, state: ModeState, action: GlobalAction, conversation: Conversation
    ) -> Step:
        if action is GlobalAction.QUIT:
            return Step(state, (Quit(),))
        if action is GlobalAction.NEW_CHAT:
            return Step(Normal(), (NewChat(),))
        if action is GlobalAction.SHOW_HELP:
            return Step(Help())
        if action is GlobalAction.EXECUTE_LAST:
            return self._execute(state, conversation)
        if action is GlobalAction.EDIT_NAVIGATION:
            last = len(conversation) - 1
            if last < 1:
                return Step(state)
            return Step(Editing(last), (RevealMessage(last),))
        if action is GlobalAction.BROWSE_HISTORY:
            if isinstance(state, Normal):
                return Step(state, (BrowseHistory(),))
            return Step(state)
        if action is GlobalAction.LOAD_LATEST:
            return Step(Normal(), (LoadLatest(),))
        return Step(state)

    def handle_key(
        self,
        state: ModeState,
        key: str,
        conversation: Conversation,
        page_size: int = 0,
    ) -> Step:
        """Run ``key`` through the active mode's table only."""
        if isinstance(state, Help):
            return Step(Normal())
        table = self._tables.get(state.mode, {})
        handler = table.get(key)
        if handler is not None:
            return handler(state, conversation, page_size)
        if isinstance(state, CommandSelect) and key.isdigit():
            number = int(key)
            if 1 <= number <= len(state.commands):
                return Step(Normal(), (RunCommand(state.commands[number - 1]),))
        return Step(state)

    @staticmethod
    def history_state(items: list[Conversation]) -> History:
        """Build the History mode with items ordered newest first."""
        ordered = sorted(items, key=lambda conv: conv.created_at, reverse=True)
        return History(items=tuple(ordered), selected=0)

    @staticmethod
    def _move_cursor(state: ModeState, conversation: Conversation, delta: int) -> Step:
        if not isinstance(state, Editing):
            return Step(state)
        target = state.cursor_index + delta
        if not 1 <= target <= len(conversation) - 1:
            return Step(state)
        return Step(Editing(target), (RevealMessage(target),))

    @staticmethod
    def _execute(state: ModeState, conversation: Conversation) -> Step:
        if isinstance(state, Editing):
            if not 0 <= state.cursor_index < len(conversation):
                return Step(state)
            message = conversation.messages[state.cursor_index]
            if message.role is not Role.ASSISTANT:
                return Step(state)
            text = message.content
        else:
            index = conversation.last_assistant_index()
            if index is None:
                return Step(state)
            text = conversation.messages[index].content
        commands = extract_commands(text)
        if not commands:
            return Step(state)
        return Step(CommandSelect(tuple(commands)))

    @staticmethod
    def _copy_message(state: ModeState, conversation: Conversation, _page: int) -> Step:
        if not isinstance(state, Editing):
            return Step(state)
        if not 0 <= state.cursor_index < len(conversation):
            return Step(state)
        content = conversation.messages[state.cursor_index].content
        return Step(Normal(), (CopyText(content),))

    @staticmethod
    def _edit_message(state: ModeState, conversation: Conversation, _page: int) -> Step:
        if not isinstance(state, Editing):
            return Step(state)
        if not 0 <= state.cursor_index < len(conversation):
            return Step(Normal())
        message = conversation.messages[state.cursor_index]
        if message.role is Role.USER:
            return Step(state, (EditMessage(state.cursor_index, message.content),))
        return Step(Normal())

    @staticmethod
    def _select_row(state: ModeState, target: int) -> Step:
        if not isinstance(state, History):
            return Step(state)
        if not state.items:
            return Step(state)
        clamped = min(max(0, target), len(state.items) - 1)
        if clamped == state.selected:
            return Step(state)
        return Step(History(state.items, clamped), (RevealRow(clamped),))

    @staticmethod
    def _open_conversation(state: ModeState, _conv: Conversation, _page: int) -> Step:
        if not isinstance(state, History):
            return Step(state)
        if not state.items:
            return Step(state)
        chosen = state.items[state.selected]
        return Step(Normal(), (OpenConversation(chosen), ScrollEdge(bottom=True)))

    @staticmethod
    def _select_command(state: ModeState, target: int) -> Step:
        if not isinstance(state, CommandSelect):
            return Step(state)
        if not 0 <= target < len(state.commands):
            return Step(state)
        return Step(CommandSelect(state.commands, target))

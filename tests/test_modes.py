"""Tests for the mode state machine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import unittest

from gpt_term.models import Conversation, Role
from gpt_term.modes import (
    BrowseHistory,
    CommandSelect,
    CopyText,
    Editing,
    EditMessage,
    GlobalAction,
    Help,
    History,
    LoadLatest,
    ModeMachine,
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
)


def _conversation(*turns: tuple[Role, str]) -> Conversation:
    conversation = Conversation.new("system")
    for role, content in turns:
        conversation.append(role, content)
    return conversation


class GlobalActionTests(unittest.TestCase):
    """Validate actions accepted in every mode."""

    def setUp(self) -> None:
        self.machine = ModeMachine()
        self.conversation = _conversation(
            (Role.USER, "list files"),
            (Role.ASSISTANT, "Try <command>ls -la</command> or <command>ls</command>"),
        )

    def test_quit_is_accepted_everywhere(self) -> None:
        for state in (Normal(), Editing(1), History(), CommandSelect(("ls",)), Help()):
            step = self.machine.apply_global(state, GlobalAction.QUIT, self.conversation)
            self.assertEqual(step.effects, (Quit(),))

    def test_new_chat_returns_to_normal(self) -> None:
        step = self.machine.apply_global(Help(), GlobalAction.NEW_CHAT, self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, (NewChat(),))

    def test_help_from_any_mode(self) -> None:
        step = self.machine.apply_global(Editing(2), GlobalAction.SHOW_HELP, self.conversation)
        self.assertEqual(step.state, Help())

    def test_edit_navigation_starts_at_last_message(self) -> None:
        step = self.machine.apply_global(
            Normal(), GlobalAction.EDIT_NAVIGATION, self.conversation
        )
        self.assertEqual(step.state, Editing(2))
        self.assertEqual(step.effects, (RevealMessage(2),))

    def test_edit_navigation_without_turns_is_a_no_op(self) -> None:
        step = self.machine.apply_global(
            Normal(), GlobalAction.EDIT_NAVIGATION, Conversation.new("s")
        )
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, ())

    def test_browse_history_only_from_normal(self) -> None:
        step = self.machine.apply_global(
            Normal(), GlobalAction.BROWSE_HISTORY, self.conversation
        )
        self.assertEqual(step.effects, (BrowseHistory(),))
        step = self.machine.apply_global(
            Editing(1), GlobalAction.BROWSE_HISTORY, self.conversation
        )
        self.assertEqual(step.state, Editing(1))
        self.assertEqual(step.effects, ())

    def test_load_latest(self) -> None:
        step = self.machine.apply_global(Help(), GlobalAction.LOAD_LATEST, self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, (LoadLatest(),))

    def test_execute_last_targets_latest_assistant_message(self) -> None:
        self.conversation.append(Role.USER, "thanks")
        step = self.machine.apply_global(
            Normal(), GlobalAction.EXECUTE_LAST, self.conversation
        )
        self.assertEqual(step.state, CommandSelect(("ls -la", "ls")))

    def test_execute_last_without_commands_is_a_no_op(self) -> None:
        conversation = _conversation((Role.USER, "hi"), (Role.ASSISTANT, "hello"))
        step = self.machine.apply_global(Normal(), GlobalAction.EXECUTE_LAST, conversation)
        self.assertEqual(step.state, Normal())
        step = self.machine.apply_global(
            Normal(), GlobalAction.EXECUTE_LAST, Conversation.new("s")
        )
        self.assertEqual(step.state, Normal())


class ModeKeyTests(unittest.TestCase):
    """Validate per-mode key tables."""

    def setUp(self) -> None:
        self.machine = ModeMachine(scroll_step=3)
        self.conversation = _conversation(
            (Role.USER, "hi"),
            (Role.ASSISTANT, "run <command>ls -la</command>"),
            (Role.USER, "and?"),
            (Role.ASSISTANT, "nothing to run"),
        )

    def test_normal_scroll_keys(self) -> None:
        key = lambda k: self.machine.handle_key(Normal(), k, self.conversation).effects
        self.assertEqual(key("up"), (Scroll(-3),))
        self.assertEqual(key("down"), (Scroll(3),))
        self.assertEqual(key("pageup"), (ScrollPage(-1),))
        self.assertEqual(key("pagedown"), (ScrollPage(1),))
        self.assertEqual(key("home"), (ScrollEdge(bottom=False),))
        self.assertEqual(key("end"), (ScrollEdge(bottom=True),))
        self.assertEqual(key("escape"), (Quit(),))

    def test_unknown_key_is_a_no_op_in_every_mode(self) -> None:
        for state in (Normal(), Editing(1), History(), CommandSelect(("ls",))):
            step = self.machine.handle_key(state, "f7", self.conversation)
            self.assertEqual(step.state, state)
            self.assertEqual(step.effects, ())

    def test_help_consumes_any_key(self) -> None:
        step = self.machine.handle_key(Help(), "z", self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, ())

    def test_editing_cursor_stays_in_bounds(self) -> None:
        step = self.machine.handle_key(Editing(1), "k", self.conversation)
        self.assertEqual(step.state, Editing(1))
        step = self.machine.handle_key(Editing(4), "j", self.conversation)
        self.assertEqual(step.state, Editing(4))
        step = self.machine.handle_key(Editing(3), "k", self.conversation)
        self.assertEqual(step.state, Editing(2))
        self.assertEqual(step.effects, (RevealMessage(2),))

    def test_editing_enter_on_user_message_requests_edit(self) -> None:
        step = self.machine.handle_key(Editing(1), "enter", self.conversation)
        self.assertEqual(step.state, Editing(1))
        self.assertEqual(step.effects, (EditMessage(1, "hi"),))

    def test_editing_enter_on_assistant_message_returns_to_normal(self) -> None:
        step = self.machine.handle_key(Editing(2), "enter", self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, ())

    def test_editing_execute_requires_commands(self) -> None:
        step = self.machine.handle_key(Editing(2), "x", self.conversation)
        self.assertEqual(step.state, CommandSelect(("ls -la",)))
        for index in (1, 4):
            step = self.machine.handle_key(Editing(index), "x", self.conversation)
            self.assertEqual(step.state, Editing(index))

    def test_editing_copy(self) -> None:
        step = self.machine.handle_key(Editing(3), "c", self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, (CopyText("and?"),))

    def test_editing_escape(self) -> None:
        self.assertEqual(
            self.machine.handle_key(Editing(3), "escape", self.conversation).state, Normal()
        )

    def test_command_select_always_requires_confirmation(self) -> None:
        state = CommandSelect(("ls -la",))
        self.assertEqual(state.selected, 0)
        step = self.machine.handle_key(state, "enter", self.conversation)
        self.assertEqual(step.state, Normal())
        self.assertEqual(step.effects, (RunCommand("ls -la"),))

    def test_command_select_navigation_and_digits(self) -> None:
        state = CommandSelect(("a", "b", "c"))
        state = self.machine.handle_key(state, "down", self.conversation).state
        state = self.machine.handle_key(state, "down", self.conversation).state
        state = self.machine.handle_key(state, "down", self.conversation).state
        self.assertEqual(state, CommandSelect(("a", "b", "c"), 2))
        step = self.machine.handle_key(state, "2", self.conversation)
        self.assertEqual(step.effects, (RunCommand("b"),))
        step = self.machine.handle_key(state, "9", self.conversation)
        self.assertEqual(step.state, state)
        step = self.machine.handle_key(state, "c", self.conversation)
        self.assertEqual(step.effects, (CopyText("c"),))

    def test_command_select_rejects_empty_list(self) -> None:
        with self.assertRaises(ValueError):
            CommandSelect(())


class HistoryModeTests(unittest.TestCase):
    """Validate history browsing and selection."""

    def setUp(self) -> None:
        self.machine = ModeMachine()
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        self.items = []
        for offset in (0, 2, 1):
            conversation = Conversation.new("s")
            conversation.created_at = base + timedelta(days=offset)
            self.items.append(conversation)

    def test_history_state_sorts_newest_first(self) -> None:
        state = self.machine.history_state(self.items)
        created = [item.created_at.day for item in state.items]
        self.assertEqual(created, [3, 2, 1])
        self.assertEqual(state.selected, 0)

    def test_empty_history_ignores_navigation_and_selection(self) -> None:
        state = self.machine.history_state([])
        for key in ("up", "down", "pageup", "pagedown", "home", "end", "enter"):
            step = self.machine.handle_key(state, key, Conversation.new("s"), page_size=10)
            self.assertEqual(step.state, state)
            self.assertEqual(step.effects, ())

    def test_paging_and_edges(self) -> None:
        state = self.machine.history_state(self.items)
        step = self.machine.handle_key(state, "pagedown", Conversation.new("s"), page_size=10)
        self.assertEqual(step.state.selected, 2)
        self.assertEqual(step.effects, (RevealRow(2),))
        step = self.machine.handle_key(step.state, "home", Conversation.new("s"))
        self.assertEqual(step.state.selected, 0)

    def test_enter_opens_selected_conversation_at_bottom(self) -> None:
        state = self.machine.history_state(self.items)
        state = self.machine.handle_key(state, "down", Conversation.new("s")).state
        step = self.machine.handle_key(state, "enter", Conversation.new("s"))
        self.assertEqual(step.state, Normal())
        self.assertEqual(
            step.effects,
            (OpenConversation(state.items[1]), ScrollEdge(bottom=True)),
        )


class MismatchedStateTests(unittest.TestCase):
    """Helpers given another mode's state leave it untouched."""

    def test_helpers_return_state_unchanged(self) -> None:
        conversation = Conversation.new("system")
        conversation.append(Role.USER, "hi")
        normal = Normal()
        self.assertEqual(ModeMachine._move_cursor(normal, conversation, 1).state, normal)
        self.assertEqual(ModeMachine._copy_message(normal, conversation, 0).effects, ())
        self.assertEqual(ModeMachine._edit_message(normal, conversation, 0).effects, ())
        self.assertEqual(ModeMachine._select_row(Help(), 1).state, Help())
        self.assertEqual(ModeMachine._open_conversation(normal, conversation, 0).effects, ())
        editing = Editing(1)
        self.assertEqual(ModeMachine._select_command(editing, 0).state, editing)


if __name__ == "__main__":
    unittest.main()

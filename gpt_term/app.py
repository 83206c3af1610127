"""Main Textual application for gpt-term."""

from __future__ import annotations

import logging
import os
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Key
from textual.message import Message
from textual.widgets import Input, Static

from .client import AssistantClient
from .config import load_config, resolve_api_key
from .coordinator import CompletionEvent, TaskCoordinator
from .engine import ConversationStore, InteractionEngine
from .external import resolve_editor
from .modes import GlobalAction, Mode
from .persistence import ConversationPersistence
from .render import Theme, TranscriptRenderer
from .widgets import ActivityBar, StatusBar, TranscriptView

LOGGER = logging.getLogger(__name__)


class TaskFinished(Message):
    """Carries one background completion event into the message queue."""

    def __init__(self, event: CompletionEvent) -> None:
        super().__init__()
        self.event = event


class GptTermApp(App[None]):
    """Terminal client that drives an InteractionEngine."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #app-root {
        height: 1fr;
        layout: vertical;
    }
    #title {
        height: auto;
        text-style: bold;
        padding: 0 1;
    }
    .indicator {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    #message_input {
        height: 3;
    }
    """

    GLOBAL_ACTIONS: frozenset[str] = frozenset(action.value for action in GlobalAction)

    BINDINGS = [
        Binding(
            "ctrl+c", "global_action('quit')", "Quit", show=False, priority=True, id="quit"
        ),
        Binding(
            "ctrl+n",
            "global_action('new_chat')",
            "New Chat",
            show=False,
            priority=True,
            id="new_chat",
        ),
        Binding(
            "ctrl+h",
            "global_action('show_help')",
            "Help",
            show=False,
            priority=True,
            id="show_help",
        ),
        Binding(
            "ctrl+x",
            "global_action('execute_last')",
            "Run Command",
            show=False,
            priority=True,
            id="execute_last",
        ),
        Binding(
            "ctrl+j,ctrl+k",
            "global_action('edit_navigation')",
            "Edit",
            show=False,
            priority=True,
            id="edit_navigation",
        ),
        Binding(
            "ctrl+r",
            "global_action('browse_history')",
            "History",
            show=False,
            priority=True,
            id="browse_history",
        ),
        Binding(
            "ctrl+l",
            "global_action('load_latest')",
            "Load Latest",
            show=False,
            priority=True,
            id="load_latest",
        ),
    ]

    def __init__(
        self,
        config: dict[str, dict[str, Any]] | None = None,
        *,
        client: Any | None = None,
        store: ConversationStore | None = None,
    ) -> None:
        self.config = config or load_config()
        self.window_title = str(self.config["app"]["title"])
        assistant_cfg = self.config["assistant"]
        ui_cfg = self.config["ui"]

        if client is None:
            client = AssistantClient(
                api_key=resolve_api_key(assistant_cfg) or "",
                model=str(assistant_cfg["model"]),
                max_tokens=int(assistant_cfg["max_tokens"]),
                timeout=int(assistant_cfg["timeout"]),
                max_retries=int(assistant_cfg["max_retries"]),
            )
        if store is None:
            store = ConversationPersistence(str(self.config["persistence"]["directory"]))

        editor_cfg = self.config["editor"]
        shell_cfg = self.config["shell"]
        self.coordinator = TaskCoordinator(
            client,
            self._deliver,
            editor_argv=resolve_editor(
                os.environ, str(editor_cfg["env_var"]), str(editor_cfg["default"])
            ),
            shell=str(shell_cfg["program"]),
            shell_timeout=shell_cfg.get("timeout_seconds"),
            hand_off=self.suspend,
        )
        self.engine = InteractionEngine(
            store=store,
            coordinator=self.coordinator,
            renderer=TranscriptRenderer(
                Theme.from_config(ui_cfg), keybinds=self.config["keybinds"]
            ),
            system_prompt=str(assistant_cfg["system_prompt"]),
            ui_config=ui_cfg,
        )
        self._spinner_interval = float(ui_cfg["spinner_interval"])

        # Cached widget references, populated in on_mount().
        self._w_title: Static | None = None
        self._w_above: Static | None = None
        self._w_below: Static | None = None
        self._w_transcript: TranscriptView | None = None
        self._w_input: Input | None = None
        self._w_activity: ActivityBar | None = None
        self._w_status: StatusBar | None = None
        super().__init__()

    def compose(self) -> ComposeResult:
        with Container(id="app-root"):
            yield Static("", id="title")
            yield Static("", id="indicator_up", classes="indicator")
            yield TranscriptView(id="transcript")
            yield Static("", id="indicator_down", classes="indicator")
            yield Input(placeholder="Send a message...", id="message_input")
            yield ActivityBar(
                shortcut_hints=self.engine.status_hint,
                interval=self._spinner_interval,
                id="activity_bar",
            )
            yield StatusBar(id="status_bar")

    def on_mount(self) -> None:
        self.title = self.window_title
        self.set_keymap(
            {
                action: str(keys)
                for action, keys in self.config["keybinds"].items()
                if action in self.GLOBAL_ACTIONS
            }
        )
        self._w_title = self.query_one("#title", Static)
        self._w_above = self.query_one("#indicator_up", Static)
        self._w_below = self.query_one("#indicator_down", Static)
        self._w_transcript = self.query_one("#transcript", TranscriptView)
        self._w_input = self.query_one("#message_input", Input)
        self._w_activity = self.query_one("#activity_bar", ActivityBar)
        self._w_status = self.query_one("#status_bar", StatusBar)
        self._w_input.focus()
        self._sync()

    def _deliver(self, event: CompletionEvent) -> None:
        self.post_message(TaskFinished(event))

    def _sync(self) -> None:
        """Push engine state into the widgets after every processed event."""
        engine = self.engine
        if engine.quit_requested:
            self.exit()
            return
        title, above, below = self._w_title, self._w_above, self._w_below
        transcript, message_input = self._w_transcript, self._w_input
        activity, status = self._w_activity, self._w_status
        if (
            title is None
            or above is None
            or below is None
            or transcript is None
            or message_input is None
            or activity is None
            or status is None
        ):
            return

        title.update(engine.title)
        title.display = bool(engine.title)
        above.update("▲" if engine.scroll.can_scroll_up else "")
        below.update("▼" if engine.scroll.can_scroll_down else "")
        transcript.show(engine.visible_lines())

        was_disabled = message_input.disabled
        message_input.disabled = not engine.accepts_input
        if was_disabled and not message_input.disabled:
            message_input.focus()

        if engine.is_loading and not activity.running:
            activity.start_activity("Loading...")
        elif not engine.is_loading and activity.running:
            activity.stop_activity()
        activity.set_shortcut_hints(engine.status_hint)

        notice = engine.error or engine.status
        status.set_status(
            mode=engine.mode.value,
            message_count=len(engine.conversation) - 1,
            notice=notice,
            is_error=engine.error is not None,
        )

    def action_global_action(self, name: str) -> None:
        """Apply one of the mode-independent actions."""
        self.engine.apply_global(GlobalAction(name))
        self._sync()

    def on_key(self, event: Key) -> None:
        """Route keys the focused widgets leave unhandled to the active mode."""
        if self.engine.mode is Mode.NORMAL and event.key not in {
            "up",
            "down",
            "pageup",
            "pagedown",
            "home",
            "end",
            "escape",
        }:
            return
        event.stop()
        event.prevent_default()
        self.engine.handle_key(event.key)
        self._sync()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "message_input":
            return
        if self.engine.submit(event.value):
            event.input.value = ""
        self._sync()

    def on_transcript_view_sized(self, message: TranscriptView.Sized) -> None:
        self.engine.resize(message.width, message.height)
        self._sync()

    def on_transcript_view_wheel(self, message: TranscriptView.Wheel) -> None:
        self.engine.wheel(message.direction)
        self._sync()

    def on_task_finished(self, message: TaskFinished) -> None:
        self.engine.handle_completion(message.event)
        self._sync()

    async def on_unmount(self) -> None:
        """Cancel background work; results still in flight are discarded."""
        await self.coordinator.shutdown()

"""Activity bar widget showing the busy animation and key hints."""

from __future__ import annotations

import logging
from typing import Any

from textual.app import ComposeResult
from textual.timer import Timer
from textual.widgets import Label, Static

LOGGER = logging.getLogger(__name__)

_ANIMATION_FRAMES: tuple[str, ...] = (
    "·······",
    "●······",
    "·●·····",
    "··●····",
    "···●···",
    "····●··",
    "·····●·",
    "······●",
)


class ActivityBar(Static):
    """Render a spinner while a reply is outstanding, plus mode hints."""

    DEFAULT_CSS = """
    ActivityBar {
        layout: horizontal;
        height: 1;
        padding: 0 1;
    }
    ActivityBar #activity_left {
        width: auto;
        margin-right: 2;
    }
    ActivityBar #activity_right {
        width: 1fr;
        text-align: right;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        shortcut_hints: str = "",
        interval: float = 0.12,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._shortcut_hints = shortcut_hints
        self._interval = interval
        self._timer: Timer | None = None
        self._frame_index = 0
        self._hint = ""

    @property
    def running(self) -> bool:
        return self._timer is not None

    @property
    def frame_index(self) -> int:
        return self._frame_index

    def compose(self) -> ComposeResult:
        yield Label("", id="activity_left")
        yield Label(self._shortcut_hints, id="activity_right")

    def set_shortcut_hints(self, hints: str) -> None:
        if hints == self._shortcut_hints:
            return
        self._shortcut_hints = hints
        self.query_one("#activity_right", Label).update(hints)

    def start_activity(self, hint: str = "Loading...") -> None:
        """Begin ticking the spinner; repeated calls are ignored."""
        if self._timer is not None:
            return
        self._hint = hint
        self._frame_index = 0
        self._tick()
        self._timer = self.set_interval(self._interval, self._tick)

    def stop_activity(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.stop()
        self.query_one("#activity_left", Label).update("")

    def _tick(self) -> None:
        frame = _ANIMATION_FRAMES[self._frame_index % len(_ANIMATION_FRAMES)]
        self.query_one("#activity_left", Label).update(f"{frame}  {self._hint}")
        self._frame_index += 1

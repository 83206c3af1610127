"""Fixed-height view onto the engine's visible lines."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static


class TranscriptView(Static):
    """Display pre-wrapped lines; scrolling is owned by the engine, not the widget."""

    DEFAULT_CSS = """
    TranscriptView {
        height: 1fr;
        padding: 0 1;
    }
    """

    class Wheel(Message):
        """Posted when the mouse wheel turns over the transcript."""

        def __init__(self, direction: int) -> None:
            super().__init__()
            self.direction = direction

    class Sized(Message):
        """Posted with the content area size whenever the view is resized."""

        def __init__(self, width: int, height: int) -> None:
            super().__init__()
            self.width = width
            self.height = height

    def show(self, lines: Sequence[Text]) -> None:
        self.update(Text("\n").join(lines))

    def on_resize(self, event: events.Resize) -> None:
        size = self.content_size
        self.post_message(self.Sized(size.width, size.height))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        event.stop()
        self.post_message(self.Wheel(-1))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        event.stop()
        self.post_message(self.Wheel(1))

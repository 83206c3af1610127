"""Status bar widget for mode, conversation size and the latest notice."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.widgets import Label, Static


class StatusBar(Static):
    """Render compact runtime status information.

    Segments (left to right):
        NORMAL  |  Messages: 4  |  Copied to clipboard.
    Errors replace the notice segment and are styled with the ``error`` class.
    """

    DEFAULT_CSS = """
    StatusBar {
        layout: horizontal;
        height: 1;
        padding: 0 1;
    }
    StatusBar Label {
        margin-right: 1;
    }
    StatusBar #status_notice.error {
        color: $error;
    }
    """

    def compose(self) -> ComposeResult:
        yield Label("NORMAL", id="status_mode")
        yield Label("|", id="status_sep1")
        yield Label("Messages: 0", id="status_messages")
        yield Label("|", id="status_sep2")
        yield Label("", id="status_notice")

    def on_mount(self) -> None:
        self._lbl_mode = self.query_one("#status_mode", Label)
        self._lbl_messages = self.query_one("#status_messages", Label)
        self._lbl_notice = self.query_one("#status_notice", Label)
        self._sep_notice = self.query_one("#status_sep2", Label)

    def set_status(
        self,
        *,
        mode: str,
        message_count: int,
        notice: str | None = None,
        is_error: bool = False,
    ) -> None:
        """Update every segment; an empty notice hides its separator."""
        self._lbl_mode.update(mode.replace("_", " ").upper())
        self._lbl_messages.update(f"Messages: {message_count}")
        self._lbl_notice.update(notice or "")
        self._lbl_notice.set_class(is_error, "error")
        self._sep_notice.display = bool(notice)

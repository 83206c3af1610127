"""Widget exports for the gpt_term UI."""

from .activity_bar import ActivityBar
from .status_bar import StatusBar
from .transcript import TranscriptView

__all__ = ["ActivityBar", "StatusBar", "TranscriptView"]

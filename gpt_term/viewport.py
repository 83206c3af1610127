"""Bounded vertical offset into a rendered line buffer."""

from __future__ import annotations

from collections.abc import Sequence
import math
from typing import Generic, TypeVar

LineT = TypeVar("LineT")


class ScrollManager(Generic[LineT]):
    """Keep a viewport offset valid while its content is regenerated.

    The offset always lies in ``[0, max(0, total_lines - height)]``. While the
    viewport has no height (before the first resize) every scroll operation is
    a no-op and the offset stays at 0.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.offset = 0
        self._lines: list[LineT] = []

    @property
    def ready(self) -> bool:
        return self.height > 0

    @property
    def lines(self) -> list[LineT]:
        return self._lines

    @property
    def total_lines(self) -> int:
        return len(self._lines)

    @property
    def max_offset(self) -> int:
        return max(0, self.total_lines - self.height)

    @property
    def overflows(self) -> bool:
        return self.ready and self.total_lines > self.height

    @property
    def can_scroll_up(self) -> bool:
        return self.overflows and self.offset > 0

    @property
    def can_scroll_down(self) -> bool:
        return self.overflows and self.offset < self.max_offset

    def _clamp(self, value: int) -> int:
        if not self.ready:
            return 0
        return min(max(0, value), self.max_offset)

    def resize(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.offset = self._clamp(self.offset)

    def set_content(self, lines: Sequence[LineT]) -> None:
        """Replace the line buffer, keeping the reading position when reachable."""
        previous = self.offset
        self._lines = list(lines)
        self.preserve_across_regeneration(previous, len(self._lines))

    def preserve_across_regeneration(self, previous_offset: int, new_total_lines: int) -> None:
        if not self.ready:
            self.offset = 0
            return
        new_max = max(0, new_total_lines - self.height)
        self.offset = min(max(0, previous_offset), new_max)

    def scroll_by(self, delta: int) -> None:
        if self.ready:
            self.offset = self._clamp(self.offset + delta)

    def scroll_half_page(self, direction: int) -> None:
        self.scroll_by(direction * max(1, self.height // 2))

    def goto_top(self) -> None:
        if self.ready:
            self.offset = 0

    def goto_bottom(self) -> None:
        if self.ready:
            self.offset = self.max_offset

    def ensure_visible(
        self, target_line: int, bias_fraction: float, *, pin_bottom: bool = False
    ) -> None:
        """Place ``target_line`` a ``bias_fraction`` of the viewport below the top edge.

        ``pin_bottom`` forces the bottom edge, used when the target is the last item.
        """
        if not self.ready:
            return
        if pin_bottom:
            desired = self.max_offset
        else:
            desired = target_line - math.floor(self.height * bias_fraction)
        self.offset = self._clamp(desired)

    def visible_lines(self) -> list[LineT]:
        if not self.ready:
            return []
        return self._lines[self.offset : self.offset + self.height]

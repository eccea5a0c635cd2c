"""Bounded, ordered history of decoded RX/TX lines with scroll positioning."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import StrEnum


class Direction(StrEnum):
    """Which way a line travelled on the link."""
    RX = "rx"
    TX = "tx"


@dataclass(frozen=True, slots=True)
class ScrollbackLine:
    """One decoded line of traffic. Never modified after creation."""
    sequence: int
    direction: Direction
    text: str


class ScrollbackBuffer:
    """FIFO line history of fixed capacity.

    ``offset`` counts lines back from the live tail; 0 means the view follows
    new arrivals.
    """

    def __init__(self, capacity: int, viewport_height: int = 1) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._lines: deque[ScrollbackLine] = deque(maxlen=capacity)
        self._next_sequence = 0
        self._offset = 0
        self._viewport_height = max(1, viewport_height)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def viewport_height(self) -> int:
        return self._viewport_height

    @property
    def following(self) -> bool:
        return self._offset == 0

    @property
    def max_offset(self) -> int:
        return max(0, len(self._lines) - self._viewport_height)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(self._lines)

    def lines(self) -> list[ScrollbackLine]:
        return list(self._lines)

    @property
    def tail(self) -> ScrollbackLine | None:
        return self._lines[-1] if self._lines else None

    def append(self, direction: Direction, text: str) -> ScrollbackLine:
        """Add a line at the tail, evicting the oldest line when full."""
        line = ScrollbackLine(self._next_sequence, direction, text)
        self._next_sequence += 1
        self._lines.append(line)
        if self._offset:
            self._offset = self._clamp(self._offset)
        return line

    def replace_tail(self, text: str) -> ScrollbackLine:
        """Supersede the newest line with a copy holding *text*.

        The copy keeps the sequence number and direction, so order and
        length are unchanged. Used while an RX line is still being received.
        """
        if not self._lines:
            raise IndexError("replace_tail on an empty scrollback")
        old = self._lines[-1]
        line = ScrollbackLine(old.sequence, old.direction, text)
        self._lines[-1] = line
        return line

    def scroll(self, delta: int) -> int:
        """Move the view by *delta* lines (positive = older) and return the new offset."""
        self._offset = self._clamp(self._offset + delta)
        return self._offset

    def scroll_to_tail(self) -> None:
        self._offset = 0

    def set_viewport(self, height: int) -> None:
        self._viewport_height = max(1, height)
        self._offset = self._clamp(self._offset)

    def window(self) -> list[ScrollbackLine]:
        """Lines visible in the viewport, oldest first."""
        end = len(self._lines) - self._offset
        start = max(0, end - self._viewport_height)
        return [self._lines[i] for i in range(start, end)]

    def clear(self) -> None:
        self._lines.clear()
        self._offset = 0

    def _clamp(self, offset: int) -> int:
        return min(max(0, offset), self.max_offset)

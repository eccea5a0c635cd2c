"""Curses adapter: raw-mode setup and restore, key decoding, frame painting."""

from __future__ import annotations

import curses
import locale
from types import TracebackType

from nolp.exceptions import TerminalError
from nolp.ui.keys import KeyEvent, SpecialKey
from nolp.ui.renderer import Frame, Style
from nolp.utils.logging import get_logger

logger = get_logger(__name__)

_ESCAPE = 27
_TAB = 9
_ENTER_CODES = {10, 13}

# Style -> (color pair id, foreground, extra attribute)
_STYLE_COLORS: dict[Style, tuple[int, int, int]] = {
    Style.TITLE: (1, curses.COLOR_WHITE, curses.A_BOLD),
    Style.SELECTED: (2, curses.COLOR_CYAN, curses.A_BOLD),
    Style.PLACEHOLDER: (3, curses.COLOR_WHITE, curses.A_DIM),
    Style.INVALID: (4, curses.COLOR_RED, curses.A_BOLD),
    Style.RX: (5, curses.COLOR_GREEN, 0),
    Style.TX: (6, curses.COLOR_YELLOW, 0),
    Style.STATUS: (7, curses.COLOR_BLUE, curses.A_BOLD),
    Style.BORDER: (8, curses.COLOR_WHITE, 0),
}


def translate_key(key: int | str) -> KeyEvent | None:
    """Decode a ``get_wch()`` result into a ``KeyEvent``.

    Control characters 1-26 arrive as ctrl+letter. Tab and Enter share codes
    with ctrl+i/ctrl+j/ctrl+m and are kept as their own keys; 8 is reported
    as ctrl+h since most terminals send it for that chord.
    """
    if isinstance(key, int):
        if key == curses.KEY_RESIZE:
            return KeyEvent.key(SpecialKey.RESIZE)
        if key == curses.KEY_ENTER:
            return KeyEvent.key(SpecialKey.ENTER)
        if key == curses.KEY_BACKSPACE:
            return KeyEvent.key(SpecialKey.BACKSPACE)
        if 0 <= key < 256:
            return translate_key(chr(key))
        return None

    code = ord(key)
    if code in _ENTER_CODES:
        return KeyEvent.key(SpecialKey.ENTER)
    if code == 127:
        return KeyEvent.key(SpecialKey.BACKSPACE)
    if code == _ESCAPE:
        return KeyEvent.key(SpecialKey.ESCAPE)
    if code == _TAB:
        return KeyEvent.of("\t")
    if 1 <= code <= 26:
        return KeyEvent.control(chr(code + ord("a") - 1))
    if key.isprintable():
        return KeyEvent.of(key)
    return None


class CursesTerminal:
    """Owns the curses screen for the lifetime of a ``with`` block.

    The terminal is restored on every exit path, including exceptions raised
    inside the block.

    Usage:
        with CursesTerminal() as term:
            term.paint(frame)
            key = term.read_key(100)
    """

    def __init__(self) -> None:
        self._screen: curses.window | None = None
        self._attrs: dict[Style, int] = {}

    def __enter__(self) -> CursesTerminal:
        locale.setlocale(locale.LC_ALL, "")
        try:
            self._screen = curses.initscr()
            curses.noecho()
            curses.raw()
            self._screen.keypad(True)
            self._init_colors()
        except curses.error as exc:
            self._restore()
            raise TerminalError(f"Unable to initialise terminal: {exc}") from exc
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        logger.debug("terminal_opened", size=self.size())
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._restore()

    def size(self) -> tuple[int, int]:
        """Current (width, height)."""
        if self._screen is None:
            return (0, 0)
        height, width = self._screen.getmaxyx()
        return (width, height)

    def read_key(self, timeout_ms: int) -> KeyEvent | None:
        """Wait up to *timeout_ms* for a key; None when nothing usable arrived."""
        if self._screen is None:
            raise TerminalError("Terminal is not open")
        self._screen.timeout(timeout_ms)
        try:
            key = self._screen.get_wch()
        except curses.error:
            return None
        if key == curses.KEY_RESIZE:
            curses.update_lines_cols()
        return translate_key(key)

    def paint(self, frame: Frame) -> None:
        """Draw *frame* and refresh once."""
        if self._screen is None:
            raise TerminalError("Terminal is not open")
        self._screen.erase()
        for y in range(frame.height):
            for x, text, style in frame.runs(y):
                try:
                    self._screen.addstr(y, x, text, self._attrs.get(style, 0))
                except curses.error:
                    # Writing the bottom-right cell moves the cursor off screen.
                    pass
        self._screen.refresh()

    def _init_colors(self) -> None:
        self._attrs = {style: attr for style, (_, _, attr) in _STYLE_COLORS.items()}
        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()
        for style, (pair, color, attr) in _STYLE_COLORS.items():
            curses.init_pair(pair, color, -1)
            self._attrs[style] = curses.color_pair(pair) | attr

    def _restore(self) -> None:
        if self._screen is None:
            return
        try:
            self._screen.keypad(False)
            curses.noraw()
            curses.echo()
            curses.endwin()
        except curses.error as exc:
            logger.warning("terminal_restore_failed", error=str(exc))
        finally:
            self._screen = None

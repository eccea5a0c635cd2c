"""Key events and the fixed keymap."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# Ctrl-qualified bindings
MENU_CHAR = "n"
DEVICE_LIST_CHAR = "l"
HELP_CHAR = "h"
TERMINAL_CHAR = "t"
QUIT_CHAR = "q"
PAUSE_CHAR = "p"
RESUME_CHAR = "r"
DISCONNECT_CHAR = "d"
MODE_CHAR = "e"

# Unmodified bindings
PREVIOUS_ELEMENT_CHAR = "["
NEXT_ELEMENT_CHAR = "]"


class SpecialKey(StrEnum):
    """Non-character keys the UI reacts to."""
    ENTER = "enter"
    BACKSPACE = "backspace"
    ESCAPE = "escape"
    RESIZE = "resize"


@dataclass(frozen=True)
class KeyEvent:
    """A single key press, already decoded from the terminal."""
    char: str | None = None
    special: SpecialKey | None = None
    ctrl: bool = False

    @classmethod
    def of(cls, char: str) -> KeyEvent:
        return cls(char=char)

    @classmethod
    def control(cls, char: str) -> KeyEvent:
        return cls(char=char.lower(), ctrl=True)

    @classmethod
    def key(cls, special: SpecialKey) -> KeyEvent:
        return cls(special=special)

    @property
    def is_printable(self) -> bool:
        return self.char is not None and not self.ctrl and self.char.isprintable()

    def __str__(self) -> str:
        if self.special is not None:
            return self.special.value
        if self.ctrl:
            return f"ctrl+{self.char}"
        return self.char or ""


def control_byte(char: str) -> str:
    """The character a terminal sends for ctrl+*char* (e.g. ctrl+c -> '\\x03')."""
    return chr(ord(char.upper()) & 0x1F)

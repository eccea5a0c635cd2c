"""Maps key events to UI commands.

``dispatch`` is pure: it looks at the key, the active view and the session
state and returns at most one command. Applying the command is the
application's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from nolp.core.session import SessionState
from nolp.ui.keys import (
    DEVICE_LIST_CHAR,
    DISCONNECT_CHAR,
    HELP_CHAR,
    MENU_CHAR,
    MODE_CHAR,
    NEXT_ELEMENT_CHAR,
    PAUSE_CHAR,
    PREVIOUS_ELEMENT_CHAR,
    QUIT_CHAR,
    RESUME_CHAR,
    TERMINAL_CHAR,
    KeyEvent,
    SpecialKey,
    control_byte,
)
from nolp.ui.navigator import (
    DeviceListView,
    HelpView,
    MenuView,
    Screen,
    TerminalView,
    View,
)

# What Enter and Backspace put on the wire in the Terminal screen.
ENTER_CHAR = "\r"
BACKSPACE_CHAR = "\x7f"


class SessionAction(StrEnum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    PAUSE = "pause"
    RESUME = "resume"
    NEXT_MODE = "next_mode"


@dataclass(frozen=True)
class Navigate:
    screen: Screen


@dataclass(frozen=True)
class MoveSelection:
    delta: int


@dataclass(frozen=True)
class Scroll:
    # Positive scrolls toward older lines.
    delta: int


@dataclass(frozen=True)
class SessionCommand:
    action: SessionAction


@dataclass(frozen=True)
class TransmitCharacter:
    char: str


@dataclass(frozen=True)
class EditField:
    # None deletes the last character.
    char: str | None


@dataclass(frozen=True)
class Activate:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Command = (
    Navigate
    | MoveSelection
    | Scroll
    | SessionCommand
    | TransmitCharacter
    | EditField
    | Activate
    | Quit
)

_GLOBAL_BINDINGS: dict[str, Command] = {
    QUIT_CHAR: Quit(),
    MENU_CHAR: Navigate(Screen.MENU),
    DEVICE_LIST_CHAR: Navigate(Screen.DEVICE_LIST),
    HELP_CHAR: Navigate(Screen.HELP),
    TERMINAL_CHAR: Navigate(Screen.TERMINAL),
}

_TERMINAL_BINDINGS: dict[str, SessionAction] = {
    PAUSE_CHAR: SessionAction.PAUSE,
    RESUME_CHAR: SessionAction.RESUME,
    DISCONNECT_CHAR: SessionAction.DISCONNECT,
    MODE_CHAR: SessionAction.NEXT_MODE,
}

_MOVEMENT: dict[str, int] = {
    PREVIOUS_ELEMENT_CHAR: -1,
    NEXT_ELEMENT_CHAR: 1,
}

_ACTIVE = {SessionState.CONNECTED, SessionState.PAUSED}


def dispatch(event: KeyEvent, view: View, session_state: SessionState | None) -> Command | None:
    """Return the command for *event*, or None if the key means nothing here."""
    if event.special == SpecialKey.RESIZE:
        return None

    # Ctrl bindings win over everything else.
    if event.ctrl and event.char is not None:
        command = _dispatch_control(event.char, view, session_state)
        if command is not None:
            return command

    match view:
        case MenuView(form=form):
            if event.special == SpecialKey.ENTER and form.selected == form.start_index:
                return SessionCommand(SessionAction.CONNECT)
            return _dispatch_menu(event)
        case DeviceListView() | HelpView():
            return _dispatch_list(event)
        case TerminalView():
            return _dispatch_terminal(event, session_state)
    return None


def _dispatch_control(char: str, view: View, session_state: SessionState | None) -> Command | None:
    if char in _GLOBAL_BINDINGS:
        return _GLOBAL_BINDINGS[char]
    if char in _TERMINAL_BINDINGS:
        if isinstance(view, TerminalView) and session_state in _ACTIVE:
            return SessionCommand(_TERMINAL_BINDINGS[char])
    return None


def _dispatch_menu(event: KeyEvent) -> Command | None:
    if event.char in _MOVEMENT and not event.ctrl:
        return MoveSelection(_MOVEMENT[event.char])
    if event.special == SpecialKey.ENTER:
        return Activate()
    if event.special == SpecialKey.BACKSPACE:
        return EditField(None)
    if event.is_printable:
        return EditField(event.char)
    return None


def _dispatch_list(event: KeyEvent) -> Command | None:
    if event.char in _MOVEMENT and not event.ctrl:
        return MoveSelection(_MOVEMENT[event.char])
    if event.special == SpecialKey.ENTER:
        return Activate()
    return None


def _dispatch_terminal(event: KeyEvent, session_state: SessionState | None) -> Command | None:
    if event.char in _MOVEMENT and not event.ctrl:
        # '[' moves the view toward older lines.
        return Scroll(-_MOVEMENT[event.char])
    if session_state != SessionState.CONNECTED:
        return None
    if event.special == SpecialKey.ENTER:
        return TransmitCharacter(ENTER_CHAR)
    if event.special == SpecialKey.BACKSPACE:
        return TransmitCharacter(BACKSPACE_CHAR)
    if event.special == SpecialKey.ESCAPE:
        return TransmitCharacter("\x1b")
    if event.ctrl and event.char is not None:
        if event.char in _GLOBAL_BINDINGS or event.char in _TERMINAL_BINDINGS or not event.char.isalpha():
            return None
        return TransmitCharacter(control_byte(event.char))
    if event.char is not None and not event.ctrl:
        return TransmitCharacter(event.char)
    return None


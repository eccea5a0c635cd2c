"""Application state and the single-threaded main loop.

Each iteration paints a frame, waits up to one tick for a key, applies the
resulting command and pumps the session hand-off into the scrollback.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from nolp.core.discovery import list_devices
from nolp.core.session import PortSession
from nolp.exceptions import (
    ConnectionError,
    EncodingError,
    SessionError,
    WriteError,
)
from nolp.models.device import DeviceDescriptor
from nolp.models.port import EncodingMode
from nolp.settings import Settings
from nolp.transport.base import LinkFactory
from nolp.ui.dispatcher import (
    BACKSPACE_CHAR,
    ENTER_CHAR,
    Activate,
    Command,
    EditField,
    MoveSelection,
    Navigate,
    Quit,
    Scroll,
    SessionAction,
    SessionCommand,
    TransmitCharacter,
    dispatch,
)
from nolp.ui.keys import HELP_CHAR, KeyEvent
from nolp.ui.menu import MenuAction, MenuForm
from nolp.ui.navigator import (
    DeviceListView,
    HelpView,
    MenuView,
    Screen,
    TerminalView,
    ViewNavigator,
)
from nolp.ui.renderer import Banner, Frame, render, terminal_viewport_height
from nolp.utils.logging import get_logger

logger = get_logger(__name__)

INVALID_INPUT_MESSAGE = f"Invalid input (ctrl+{HELP_CHAR}) for help"
_CLEAR_LINE_CHAR = "\x1b"


class Terminal(Protocol):
    """What the main loop needs from a terminal; ``CursesTerminal`` provides it."""

    def size(self) -> tuple[int, int]: ...

    def read_key(self, timeout_ms: int) -> KeyEvent | None: ...

    def paint(self, frame: Frame) -> None: ...


@dataclass
class AppState:
    """Everything the loop mutates, in one place."""
    settings: Settings
    navigator: ViewNavigator
    session: PortSession | None = None
    banner: Banner | None = None
    banner_expires: int = 0
    tick: int = 0
    running: bool = True
    # Dropped-byte count already reported for the current session.
    reported_drops: int = 0


class Application:
    """Applies commands to ``AppState`` and runs the main loop.

    Usage:
        app = Application(Settings(), PySerialLinkFactory())
        with CursesTerminal() as term:
            app.run(term)
    """

    def __init__(
        self,
        settings: Settings,
        link_factory: LinkFactory,
        device_source: Callable[[], list[DeviceDescriptor]] = list_devices,
        form: MenuForm | None = None,
    ) -> None:
        self._link_factory = link_factory
        self.state = AppState(
            settings=settings,
            navigator=ViewNavigator(device_source=device_source, form=form),
        )

    @property
    def navigator(self) -> ViewNavigator:
        return self.state.navigator

    @property
    def session(self) -> PortSession | None:
        return self.state.session

    @property
    def running(self) -> bool:
        return self.state.running

    # --- Loop ---

    def run(self, terminal: Terminal) -> None:
        """Drive the UI until Quit. The session is always disconnected on exit."""
        logger.info("app_started", tick_ms=self.state.settings.tick_ms)
        try:
            while self.state.running:
                width, height = terminal.size()
                terminal.paint(self.frame(width, height))
                event = terminal.read_key(self.state.settings.tick_ms)
                if event is not None:
                    self.handle_key(event)
                self.tick()
        finally:
            self.shutdown()
            logger.info("app_stopped")

    def frame(self, width: int, height: int) -> Frame:
        session = self.state.session
        if session is not None:
            session.scrollback.set_viewport(terminal_viewport_height(height))
        return render(self.navigator.view, session, self.state.banner, width, height)

    def tick(self) -> None:
        """Pump session events and expire the banner."""
        state = self.state
        state.tick += 1
        session = state.session
        if session is not None:
            session.pump()
            error = session.take_error()
            if error is not None:
                self._show(str(error), is_error=True)
            if session.dropped_bytes > state.reported_drops:
                state.reported_drops = session.dropped_bytes
                self._show(f"Paused buffer full, {session.dropped_bytes} bytes dropped", is_error=True)
        if state.banner is not None and state.tick >= state.banner_expires:
            state.banner = None

    def shutdown(self) -> None:
        if self.state.session is not None:
            self.state.session.disconnect()

    # --- Commands ---

    def handle_key(self, event: KeyEvent) -> None:
        session = self.state.session
        command = dispatch(event, self.navigator.view, session.state if session else None)
        if command is not None:
            logger.debug("command", key=str(event), command=type(command).__name__)
            self.apply(command)

    def apply(self, command: Command) -> None:
        match command:
            case Quit():
                self.state.running = False
            case Navigate(screen=screen):
                self.navigator.navigate(screen)
            case MoveSelection(delta=delta):
                self.navigator.move(delta)
            case Scroll(delta=delta):
                if self.state.session is not None:
                    self.state.session.scrollback.scroll(delta)
            case EditField(char=None):
                self.navigator.form.backspace()
            case EditField(char=char):
                self.navigator.form.input_char(char)
            case Activate():
                self._activate()
            case SessionCommand(action=action):
                self._session_command(action)
            case TransmitCharacter(char=char):
                self._transmit(char)

    def _activate(self) -> None:
        match self.navigator.view:
            case MenuView(form=form):
                action = form.activate()
                if action == MenuAction.CANCEL:
                    form.reset()
                elif action == MenuAction.START:
                    self._connect()
            case DeviceListView():
                self.navigator.choose_device()
            case HelpView():
                self.navigator.close_help()
            case TerminalView():
                pass

    def _session_command(self, action: SessionAction) -> None:
        if action == SessionAction.CONNECT:
            self._connect()
            return
        session = self.state.session
        if session is None:
            return
        try:
            match action:
                case SessionAction.PAUSE:
                    session.pause()
                case SessionAction.RESUME:
                    session.resume()
                case SessionAction.DISCONNECT:
                    session.disconnect()
                    self._show(f"Disconnected from {session.port}")
                case SessionAction.NEXT_MODE:
                    session.set_mode(session.mode.next())
                    view = self.navigator.view
                    if isinstance(view, TerminalView):
                        # A composed line belongs to the old mode.
                        view.input_line = ""
                        view.input_error = None
                    self._show(f"{session.mode.label} mode")
        except SessionError as exc:
            self._show(str(exc), is_error=True)

    def _connect(self) -> None:
        parameters = self.navigator.form.parameters()
        if parameters is None:
            self._show(INVALID_INPUT_MESSAGE, is_error=True)
            return

        if self.state.session is not None:
            self.state.session.disconnect()
        session = PortSession(parameters, self._link_factory, self.state.settings)
        self.state.session = session
        self.state.reported_drops = 0
        self.navigator.navigate(Screen.TERMINAL)
        if isinstance(self.navigator.view, TerminalView):
            self.navigator.view.input_line = ""
            self.navigator.view.input_error = None
        try:
            session.connect()
        except ConnectionError as exc:
            session.take_error()
            self._show(f"There was an error connecting to {session.port}: {exc}", is_error=True)
            return
        self._show(f"Connected to {parameters.summary}")

    def _transmit(self, char: str) -> None:
        session = self.state.session
        view = self.navigator.view
        if session is None or not isinstance(view, TerminalView):
            return

        if session.mode == EncodingMode.ASCII:
            self._write(view, session, char)
            return

        # Numeric modes compose a line of tokens sent on Enter.
        if char == ENTER_CHAR:
            if self._write(view, session, view.input_line):
                view.input_line = ""
        elif char == BACKSPACE_CHAR:
            view.input_line = view.input_line[:-1]
            view.input_error = None
        elif char == _CLEAR_LINE_CHAR:
            view.input_line = ""
            view.input_error = None
        elif char.isprintable():
            view.input_line += char
            view.input_error = None

    def _write(self, view: TerminalView, session: PortSession, text: str) -> bool:
        try:
            session.write(text)
        except (EncodingError, WriteError) as exc:
            view.input_error = str(exc)
            logger.info("input_rejected", error=str(exc), reason=str(exc.reason))
            return False
        view.input_error = None
        return True

    def _show(self, text: str, is_error: bool = False) -> None:
        self.state.banner = Banner(text, is_error)
        self.state.banner_expires = self.state.tick + self.state.settings.banner_ticks
        if is_error:
            logger.warning("banner", message=text)


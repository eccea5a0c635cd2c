"""Unit tests for the application loop and command handling."""

from __future__ import annotations

import pytest

from nolp.app import INVALID_INPUT_MESSAGE, Application
from nolp.core.scrollback import Direction
from nolp.core.session import SessionState
from nolp.exceptions import ConnectionError, ConnectionReason, ReadError
from nolp.models.device import DeviceDescriptor
from nolp.models.port import EncodingMode
from nolp.ui.keys import KeyEvent, SpecialKey
from nolp.ui.menu import FieldIndex, MenuForm
from nolp.ui.navigator import DeviceListView, Screen, TerminalView

ENTER = KeyEvent.key(SpecialKey.ENTER)


def _form(mode: str = "", port: str = "/dev/ttyTEST0") -> MenuForm:
    form = MenuForm()
    form.set_port(port)
    form.fields[FieldIndex.MODE].value = mode
    return form


def _press(app: Application, *keys: KeyEvent | str) -> None:
    for key in keys:
        app.handle_key(KeyEvent.of(key) if isinstance(key, str) else key)


def _start(app: Application) -> None:
    app.navigator.form.selected = app.navigator.form.start_index
    _press(app, ENTER)


@pytest.fixture
def devices():
    return [DeviceDescriptor(device="/dev/ttyUSB0")]


@pytest.fixture
def make_app(settings, link_factory, devices):
    apps = []

    def _make(form: MenuForm | None = None) -> Application:
        app = Application(settings, link_factory, device_source=lambda: list(devices), form=form or _form())
        apps.append(app)
        return app

    yield _make
    for app in apps:
        app.shutdown()


class TestConnect:
    """Test starting sessions from the menu."""

    def test_start_connects_and_shows_terminal(self, make_app, link_factory):
        app = make_app()
        _start(app)
        assert app.session.state == SessionState.CONNECTED
        assert app.navigator.screen == Screen.TERMINAL
        assert link_factory.opened[0].name == "/dev/ttyTEST0"
        assert "Connected to /dev/ttyTEST0" in app.state.banner.text

    def test_invalid_form_shows_banner(self, make_app):
        app = make_app(_form(mode="binary"))
        _start(app)
        assert app.session is None
        assert app.navigator.screen == Screen.MENU
        assert app.state.banner.text == INVALID_INPUT_MESSAGE
        assert app.state.banner.is_error

    def test_connection_failure(self, make_app, link_factory):
        link_factory.open_error = ConnectionError("Failed to open /dev/ttyTEST0: busy", ConnectionReason.BUSY)
        app = make_app()
        _start(app)
        assert app.navigator.screen == Screen.TERMINAL
        assert app.session.status == SessionState.ERROR
        assert app.state.banner.is_error
        assert "There was an error connecting to /dev/ttyTEST0" in app.state.banner.text

    def test_reconnect_uses_fresh_session(self, make_app, link_factory):
        app = make_app()
        _start(app)
        first = app.session
        first.scrollback.append(Direction.RX, "old")
        _press(app, KeyEvent.control("n"))
        _start(app)
        assert app.session is not first
        assert first.state == SessionState.DISCONNECTED
        assert len(app.session.scrollback) == 0
        assert len(link_factory.links) == 2


class TestMenuKeys:
    """Test form editing through the key handler."""

    def test_typing_into_field(self, make_app):
        app = make_app(MenuForm())
        _press(app, "C", "O", "M", "5")
        assert app.navigator.form.fields[FieldIndex.PORT].value == "COM5"
        _press(app, KeyEvent.key(SpecialKey.BACKSPACE))
        assert app.navigator.form.fields[FieldIndex.PORT].value == "COM"

    def test_cancel_resets_form(self, make_app):
        app = make_app()
        app.navigator.form.selected = app.navigator.form.cancel_index
        _press(app, ENTER)
        assert app.navigator.form.fields[FieldIndex.PORT].value == ""

    def test_device_list_refresh_and_choose(self, make_app, devices):
        app = make_app(MenuForm())
        _press(app, KeyEvent.control("l"))
        assert isinstance(app.navigator.view, DeviceListView)
        assert len(app.navigator.view.devices) == 1

        devices.append(DeviceDescriptor(device="/dev/ttyUSB1"))
        _press(app, KeyEvent.control("n"), KeyEvent.control("l"))
        assert len(app.navigator.view.devices) == 2

        _press(app, "]", ENTER)
        assert app.navigator.screen == Screen.MENU
        assert app.navigator.form.fields[FieldIndex.PORT].value == "/dev/ttyUSB1"

    def test_help_returns_to_caller(self, make_app):
        app = make_app()
        _press(app, KeyEvent.control("l"), KeyEvent.control("h"))
        assert app.navigator.screen == Screen.HELP
        _press(app, ENTER)
        assert app.navigator.screen == Screen.DEVICE_LIST

    def test_quit(self, make_app):
        app = make_app()
        _press(app, KeyEvent.control("q"))
        assert not app.running


class TestTerminalKeys:
    """Test transmission and session control from the Terminal screen."""

    def test_ascii_keys_sent_immediately(self, make_app, link_factory, wait):
        app = make_app()
        _start(app)

        def texts(direction):
            return [line.text for line in app.session.scrollback if line.direction == direction]

        _press(app, "A", ENTER)
        assert wait(lambda: texts(Direction.TX) == ["A", "."] and link_factory.link.unread == 0, pump=app.tick)
        assert b"".join(link_factory.link.written) == b"A\r"
        # The echoed carriage return is a line break, not text.
        assert wait(lambda: "".join(texts(Direction.RX)) == "A", pump=app.tick)

    def test_hex_line_sent_on_enter(self, make_app, link_factory, wait):
        app = make_app(_form(mode="Hex"))
        _start(app)
        _press(app, "4", "1")
        assert app.navigator.view.input_line == "41"
        assert link_factory.link.written == []
        _press(app, ENTER)
        assert app.navigator.view.input_line == ""
        assert wait(lambda: len(app.session.scrollback) == 2, pump=app.tick)
        assert link_factory.link.written == [b"\x41"]
        assert [line.text for line in app.session.scrollback] == ["41", "41"]

    def test_decimal_error_kept_inline(self, make_app, link_factory):
        app = make_app(_form(mode="Decimal"))
        _start(app)
        _press(app, "1", ",", "0", "0", "0", ENTER)
        view = app.navigator.view
        assert isinstance(view, TerminalView)
        assert view.input_line == "1,000"
        assert "1,000" in view.input_error
        assert app.session.state == SessionState.CONNECTED
        assert link_factory.link.written == []

        _press(app, KeyEvent.key(SpecialKey.BACKSPACE))
        assert view.input_line == "1,00"
        assert view.input_error is None

    def test_pause_resume_disconnect(self, make_app):
        app = make_app()
        _start(app)
        _press(app, KeyEvent.control("p"))
        assert app.session.state == SessionState.PAUSED
        _press(app, KeyEvent.control("r"))
        assert app.session.state == SessionState.CONNECTED
        _press(app, KeyEvent.control("d"))
        assert app.session.state == SessionState.DISCONNECTED
        assert "Disconnected" in app.state.banner.text

    def test_mode_key_cycles_encoding(self, make_app, link_factory, wait):
        app = make_app(_form(mode="Octal"))
        _start(app)
        _press(app, "1", "0", "1")
        _press(app, KeyEvent.control("e"))
        assert app.session.mode == EncodingMode.ASCII
        assert app.navigator.view.input_line == ""
        assert app.state.banner.text == "Ascii mode"
        assert "/dev/ttyTEST0 Ascii" in app.frame(80, 24).text()

        _press(app, "A")
        assert wait(lambda: len(app.session.scrollback) == 2, pump=app.tick)
        assert link_factory.link.written == [b"A"]
        assert [line.text for line in app.session.scrollback] == ["A", "A"]

    def test_scroll_keys(self, make_app):
        app = make_app()
        _start(app)
        app.session.scrollback.set_viewport(2)
        for i in range(5):
            app.session.scrollback.append(Direction.RX, str(i))
        _press(app, "[", "[")
        assert app.session.scrollback.offset == 2
        _press(app, "]")
        assert app.session.scrollback.offset == 1

    def test_link_fault_reported(self, make_app, link_factory, wait):
        app = make_app()
        _start(app)
        link_factory.link.read_fault = ReadError("device vanished")
        assert wait(lambda: app.session.state == SessionState.DISCONNECTED, pump=app.tick)
        assert app.state.banner.is_error
        assert "device vanished" in app.state.banner.text


class TestLoop:
    """Test the main loop with a scripted terminal."""

    def test_run_until_quit(self, make_app, make_terminal):
        app = make_app()
        terminal = make_terminal([None, KeyEvent.control("h"), None])
        app.run(terminal)
        assert not app.running
        assert len(terminal.frames) == 4
        assert "Keymap (Views)" in terminal.frames[-1].text()

    def test_run_disconnects_on_exit(self, make_app, make_terminal):
        app = make_app()
        _start(app)
        app.run(make_terminal([]))
        assert app.session.state == SessionState.DISCONNECTED

    def test_banner_expires(self, make_app, settings):
        app = make_app(_form(mode="binary"))
        _start(app)
        for _ in range(settings.banner_ticks):
            app.tick()
        assert app.state.banner is None

    def test_frame_sets_viewport(self, make_app):
        app = make_app()
        _start(app)
        app.frame(80, 30)
        assert app.session.scrollback.viewport_height == 23

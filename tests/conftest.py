"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import pytest

from nolp.exceptions import ConnectionError, LinkClosedError, ReadError, WriteError
from nolp.models.port import EncodingMode, PortParameters
from nolp.settings import Settings
from nolp.transport.base import LinkFactory, SerialLink
from nolp.ui.keys import KeyEvent


class EchoLink(SerialLink):
    """In-memory serial link. Written bytes are looped back when ``echo`` is set."""

    def __init__(self, echo: bool = True, read_timeout_s: float = 0.01):
        self.echo = echo
        self.read_timeout_s = read_timeout_s
        self.written: list[bytes] = []
        self.closed = False
        self.unplugged = False
        self.read_fault: ReadError | None = None
        self.write_fault: WriteError | None = None
        self._rx = bytearray()
        self._cond = threading.Condition()

    @property
    def is_open(self) -> bool:
        return not self.closed and not self.unplugged

    def feed(self, data: bytes) -> None:
        """Bytes the device sends to us."""
        with self._cond:
            self._rx.extend(data)
            self._cond.notify_all()

    @property
    def unread(self) -> int:
        """Fed bytes the worker has not read yet."""
        with self._cond:
            return len(self._rx)

    def unplug(self) -> None:
        with self._cond:
            self.unplugged = True
            self._cond.notify_all()

    def read(self, max_bytes: int) -> bytes:
        with self._cond:
            self._cond.wait_for(
                lambda: self._rx or self.unplugged or self.read_fault is not None,
                timeout=self.read_timeout_s,
            )
            if self.read_fault is not None:
                raise self.read_fault
            if self.unplugged:
                raise LinkClosedError("device unplugged")
            data = bytes(self._rx[:max_bytes])
            del self._rx[:max_bytes]
            return data

    def write(self, data: bytes) -> int:
        if self.unplugged:
            raise LinkClosedError("device unplugged")
        if self.write_fault is not None:
            raise self.write_fault
        self.written.append(data)
        if self.echo:
            self.feed(data)
        return len(data)

    def cancel_read(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def close(self) -> None:
        self.closed = True


class FakeLinkFactory(LinkFactory):
    """Hands out ``EchoLink`` instances, or raises ``open_error`` when set."""

    def __init__(self, echo: bool = True):
        self.echo = echo
        self.links: list[EchoLink] = []
        self.open_error: ConnectionError | None = None
        self.opened: list[PortParameters] = []

    @property
    def link(self) -> EchoLink:
        return self.links[-1]

    def open(self, parameters: PortParameters, read_timeout_s: float) -> SerialLink:
        self.opened.append(parameters)
        if self.open_error is not None:
            raise self.open_error
        link = EchoLink(echo=self.echo)
        self.links.append(link)
        return link


class BlockingLink(SerialLink):
    """Link whose read only returns once ``cancel_read`` is called."""

    def __init__(self):
        self.closed = False
        self.reading = threading.Event()
        self._cancelled = threading.Event()

    @property
    def is_open(self) -> bool:
        return not self.closed

    def read(self, max_bytes: int) -> bytes:
        self.reading.set()
        self._cancelled.wait()
        return b""

    def write(self, data: bytes) -> int:
        return len(data)

    def cancel_read(self) -> None:
        self._cancelled.set()

    def close(self) -> None:
        self.closed = True


class BlockingLinkFactory(LinkFactory):
    def __init__(self):
        self.links: list[BlockingLink] = []

    @property
    def link(self) -> BlockingLink:
        return self.links[-1]

    def open(self, parameters: PortParameters, read_timeout_s: float) -> SerialLink:
        link = BlockingLink()
        self.links.append(link)
        return link


class FakeTerminal:
    """Scripted terminal: returns queued keys, records painted frames."""

    def __init__(self, keys: list[KeyEvent | None], width: int = 80, height: int = 24):
        self.keys = list(keys)
        self.width = width
        self.height = height
        self.frames = []

    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def read_key(self, timeout_ms: int) -> KeyEvent | None:
        if not self.keys:
            # Nothing left to press; quit rather than spin forever.
            return KeyEvent.control("q")
        return self.keys.pop(0)

    def paint(self, frame) -> None:
        self.frames.append(frame)


def wait_until(condition: Callable[[], bool], pump: Callable[[], object] | None = None, timeout: float = 2.0) -> bool:
    """Poll *condition*, calling *pump* between checks, until true or timed out."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pump is not None:
            pump()
        if condition():
            return True
        time.sleep(0.005)
    return condition()


@pytest.fixture
def settings():
    """Fast settings for threaded session tests."""
    return Settings(read_timeout_s=0.01, join_timeout_s=1.0, banner_ticks=5)


@pytest.fixture
def link_factory():
    return FakeLinkFactory()


@pytest.fixture
def quiet_link_factory():
    """Links that do not echo writes back."""
    return FakeLinkFactory(echo=False)


@pytest.fixture
def blocking_link_factory():
    return BlockingLinkFactory()


@pytest.fixture
def ascii_params():
    return PortParameters(name="/dev/ttyTEST0", baud_rate=115200)


@pytest.fixture
def hex_params():
    return PortParameters(name="/dev/ttyTEST0", baud_rate=115200, mode=EncodingMode.HEX)


@pytest.fixture
def wait():
    return wait_until


@pytest.fixture
def make_terminal():
    return FakeTerminal

"""Serial session: connection state machine, worker thread and RX/TX hand-off.

A ``PortWorker`` thread exclusively owns the open link. It performs every
read and write and posts the results into a bounded queue. The UI loop calls
``PortSession.pump()`` to move those results into the scrollback, so session
state and scrollback are only ever mutated on the UI thread.

Received bytes are gathered into lines: an RX line stays open until a newline
(ASCII) or a byte limit (numeric modes) ends it, or a TX line is recorded.
"""

from __future__ import annotations

import queue
import threading
from collections import deque
from dataclasses import dataclass
from enum import StrEnum

from nolp.core.encoding import decode, encode
from nolp.core.scrollback import Direction, ScrollbackBuffer
from nolp.exceptions import (
    ConnectionError,
    NolpError,
    ReadError,
    SessionError,
    WriteError,
    WriteReason,
)
from nolp.models.port import EncodingMode, PortParameters
from nolp.settings import Settings
from nolp.transport.base import LinkFactory, SerialLink
from nolp.utils.logging import get_logger

logger = get_logger(__name__)

_POST_RETRY_S = 0.05
_NEWLINE = 0x0A
_LINE_BREAK_BYTES = b"\r\n"


class SessionState(StrEnum):
    """Connection lifecycle states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PAUSED = "paused"
    ERROR = "error"


_ACTIVE_STATES = {SessionState.CONNECTING, SessionState.CONNECTED, SessionState.PAUSED}


@dataclass(frozen=True)
class RxChunk:
    data: bytes


@dataclass(frozen=True)
class TxRecord:
    data: bytes


@dataclass(frozen=True)
class WriteFailed:
    error: WriteError


@dataclass(frozen=True)
class LinkFault:
    error: ReadError


HandoffEvent = RxChunk | TxRecord | WriteFailed | LinkFault


class PortWorker:
    """Background thread that owns a ``SerialLink``.

    The worker never touches session or scrollback state; it only posts
    events to *handoff*. It closes the link itself when it exits.
    """

    def __init__(
        self,
        link: SerialLink,
        handoff: queue.Queue[HandoffEvent],
        read_chunk_size: int = 4096,
        name: str = "nolp-port",
    ) -> None:
        self._link = link
        self._handoff = handoff
        self._read_chunk_size = read_chunk_size
        self._outbound: queue.SimpleQueue[bytes] = queue.SimpleQueue()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def submit(self, data: bytes) -> None:
        """Queue *data* for transmission by the worker thread."""
        self._outbound.put(data)

    def stop(self, timeout: float) -> bool:
        """Signal the worker to exit and wait up to *timeout* seconds.

        Returns True if the thread has finished.
        """
        self._stop_event.set()
        self._link.cancel_read()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                self._flush_outbound()
                data = self._link.read(self._read_chunk_size)
                if data and not self._stop_event.is_set():
                    self._post(RxChunk(data))
        except ReadError as exc:
            self._post(LinkFault(exc))
        except Exception as exc:
            logger.exception("port_worker_crashed")
            self._post(LinkFault(ReadError(f"Unexpected I/O failure: {exc}")))
        finally:
            try:
                self._link.close()
            except (OSError, NolpError) as exc:
                logger.warning("port_close_failed", error=str(exc))

    def _flush_outbound(self) -> None:
        while not self._stop_event.is_set():
            try:
                data = self._outbound.get_nowait()
            except queue.Empty:
                return
            try:
                self._link.write(data)
            except ReadError:
                # Link reported closed; handled as a read fault by _run.
                raise
            except WriteError as exc:
                self._post(WriteFailed(exc))
                continue
            self._post(TxRecord(data))

    def _post(self, event: HandoffEvent) -> None:
        # Bounded wait so a stalled UI never wedges shutdown.
        while not self._stop_event.is_set():
            try:
                self._handoff.put(event, timeout=_POST_RETRY_S)
                return
            except queue.Full:
                continue


class PortSession:
    """One serial connection and its scrollback.

    A session is connected at most once; build a new one to reconnect.

    Usage:
        session = PortSession(params, PySerialLinkFactory())
        session.connect()
        session.write("AT")
        session.pump()          # from the UI loop, every tick
        session.disconnect()
    """

    def __init__(
        self,
        parameters: PortParameters,
        link_factory: LinkFactory,
        settings: Settings | None = None,
        scrollback: ScrollbackBuffer | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._parameters = parameters
        self._link_factory = link_factory
        self._mode = parameters.mode
        self._state = SessionState.DISCONNECTED
        self._used = False
        self._scrollback = scrollback or ScrollbackBuffer(self._settings.scrollback_capacity)
        self._handoff: queue.Queue[HandoffEvent] = queue.Queue(
            maxsize=self._settings.handoff_queue_size
        )
        self._worker: PortWorker | None = None
        # Traffic held while paused, in arrival order; only RX counts toward the limit.
        self._held: deque[tuple[Direction, bytes]] = deque()
        self._held_rx = 0
        # Bytes of the RX line still being received, and its scrollback sequence.
        self._rx_line = bytearray()
        self._rx_sequence: int | None = None
        self._dropped_bytes = 0
        self._last_error: NolpError | None = None
        self._pending_error: NolpError | None = None

    # --- Properties ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionState:
        """State for display: ERROR once a failure has ended the session."""
        if self._state == SessionState.DISCONNECTED and isinstance(
            self._last_error, (ConnectionError, ReadError)
        ):
            return SessionState.ERROR
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in _ACTIVE_STATES

    @property
    def parameters(self) -> PortParameters:
        return self._parameters

    @property
    def port(self) -> str:
        return self._parameters.name

    @property
    def mode(self) -> EncodingMode:
        return self._mode

    @property
    def scrollback(self) -> ScrollbackBuffer:
        return self._scrollback

    @property
    def buffered_bytes(self) -> int:
        return self._held_rx

    @property
    def dropped_bytes(self) -> int:
        return self._dropped_bytes

    @property
    def last_error(self) -> NolpError | None:
        return self._last_error

    def take_error(self) -> NolpError | None:
        """Return the newest error not yet reported, once.

        ``last_error`` keeps its value.
        """
        error, self._pending_error = self._pending_error, None
        return error

    def set_mode(self, mode: EncodingMode) -> None:
        """Switch the encoding for future traffic; existing lines stay as they are."""
        if mode != self._mode:
            logger.info("session_mode_changed", port=self.port, mode=str(mode))
            self._close_rx_line()
            self._mode = mode

    # --- Lifecycle ---

    def connect(self) -> None:
        """Open the link and start the worker thread.

        Raises:
            SessionError: The session was already used.
            ConnectionError: The port could not be opened; the session is
                left DISCONNECTED.
        """
        if self._used:
            raise SessionError("Session already used; create a new session to reconnect")
        self._used = True
        self._state = SessionState.CONNECTING
        logger.info("session_connecting", port=self.port)
        try:
            link = self._link_factory.open(self._parameters, self._settings.read_timeout_s)
        except ConnectionError as exc:
            self._state = SessionState.DISCONNECTED
            self._record_error(exc)
            logger.warning("session_connect_failed", port=self.port, reason=str(exc.reason))
            raise

        self._worker = PortWorker(
            link,
            self._handoff,
            read_chunk_size=self._settings.read_chunk_size,
            name=f"nolp-port-{self.port}",
        )
        self._worker.start()
        self._state = SessionState.CONNECTED
        logger.info("session_connected", port=self.port, params=self._parameters.summary)

    def disconnect(self) -> None:
        """Stop the worker and release the port. A second call does nothing."""
        if self._state == SessionState.DISCONNECTED:
            return
        logger.info("session_disconnecting", port=self.port)
        self._stop_worker()
        # Keep what the worker already delivered; faults no longer matter.
        self._drain(apply=True, allow_faults=False)
        self._release_held()
        self._state = SessionState.DISCONNECTED
        logger.info("session_disconnected", port=self.port)

    def pause(self) -> None:
        """Stop forwarding RX to the scrollback; the port stays open."""
        if self._state == SessionState.PAUSED:
            return
        if self._state != SessionState.CONNECTED:
            raise SessionError("Cannot pause: session is not connected")
        self._state = SessionState.PAUSED
        logger.info("session_paused", port=self.port)

    def resume(self) -> None:
        """Replay traffic held while paused in arrival order, then forward RX again."""
        if self._state == SessionState.CONNECTED:
            return
        if self._state != SessionState.PAUSED:
            raise SessionError("Cannot resume: session is not paused")
        held = self._held
        self._release_held()
        for direction, data in held:
            if direction == Direction.RX:
                self._append_rx(data)
            else:
                self._append_tx(data)
        self._state = SessionState.CONNECTED
        logger.info("session_resumed", port=self.port, dropped=self._dropped_bytes)

    def write(self, text: str) -> int:
        """Encode *text* and queue it for transmission.

        The TX line is recorded when the worker actually writes the bytes.

        Returns:
            Number of bytes queued.

        Raises:
            WriteError: The session is not CONNECTED.
            EncodingError: *text* is not valid in the current mode; nothing is sent.
        """
        if self._state != SessionState.CONNECTED or self._worker is None:
            raise WriteError("Not connected", WriteReason.NOT_CONNECTED)
        data = encode(text, self._mode)
        if not data:
            return 0
        self._worker.submit(data)
        logger.debug("session_write_queued", port=self.port, size=len(data))
        return len(data)

    def pump(self) -> int:
        """Apply pending worker events. Call from the UI thread only.

        Returns:
            Number of events processed.
        """
        if self._state == SessionState.DISCONNECTED:
            return 0
        return self._drain(apply=True, allow_faults=True)

    def __enter__(self) -> PortSession:
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.disconnect()

    # --- internal ---

    def _stop_worker(self) -> None:
        if self._worker is None:
            return
        if not self._worker.stop(self._settings.join_timeout_s):
            logger.warning("port_worker_join_timeout", port=self.port)

    def _drain(self, apply: bool, allow_faults: bool) -> int:
        processed = 0
        while True:
            try:
                event = self._handoff.get_nowait()
            except queue.Empty:
                return processed
            processed += 1
            if not apply:
                continue
            match event:
                case RxChunk(data=data):
                    self._receive(data)
                case TxRecord(data=data):
                    if self._state == SessionState.PAUSED:
                        self._held.append((Direction.TX, data))
                    else:
                        self._append_tx(data)
                case WriteFailed(error=error):
                    logger.warning("session_write_failed", port=self.port, error=str(error))
                    self._record_error(error)
                case LinkFault(error=error):
                    if allow_faults:
                        self._fault(error)
                        apply = False

    def _receive(self, data: bytes) -> None:
        if self._state != SessionState.PAUSED:
            self._append_rx(data)
            return
        self._held.append((Direction.RX, data))
        self._held_rx += len(data)
        overflow = self._held_rx - self._settings.pause_buffer_limit
        if overflow > 0:
            self._dropped_bytes += overflow
            logger.warning(
                "pause_buffer_overflow",
                port=self.port,
                dropped=overflow,
                total_dropped=self._dropped_bytes,
            )
            self._drop_oldest_rx(overflow)

    def _drop_oldest_rx(self, count: int) -> None:
        # Held TX records stay in place; only received bytes are discarded.
        skipped: list[tuple[Direction, bytes]] = []
        while count and self._held:
            direction, data = self._held.popleft()
            if direction == Direction.TX:
                skipped.append((direction, data))
                continue
            cut = min(count, len(data))
            count -= cut
            self._held_rx -= cut
            if cut < len(data):
                self._held.appendleft((direction, data[cut:]))
        self._held.extendleft(reversed(skipped))

    def _release_held(self) -> None:
        self._held = deque()
        self._held_rx = 0

    def _append_rx(self, data: bytes) -> None:
        """Grow the open RX line with *data*, starting a new line at each line end.

        ASCII lines end after a newline byte; numeric lines hold a fixed
        number of bytes.
        """
        ascii_mode = self._mode == EncodingMode.ASCII
        limit = self._settings.rx_line_chars if ascii_mode else self._settings.rx_line_bytes
        for value in data:
            self._rx_line.append(value)
            if len(self._rx_line) >= limit or (ascii_mode and value == _NEWLINE):
                self._publish_rx_line()
                self._close_rx_line()
        if self._rx_line:
            self._publish_rx_line()

    def _publish_rx_line(self) -> None:
        data = bytes(self._rx_line)
        if self._mode == EncodingMode.ASCII:
            data = data.rstrip(_LINE_BREAK_BYTES)
        text = decode(data, self._mode)
        tail = self._scrollback.tail
        if self._rx_sequence is not None and tail is not None and tail.sequence == self._rx_sequence:
            self._scrollback.replace_tail(text)
        else:
            self._rx_sequence = self._scrollback.append(Direction.RX, text).sequence

    def _close_rx_line(self) -> None:
        self._rx_line = bytearray()
        self._rx_sequence = None

    def _append_tx(self, data: bytes) -> None:
        self._close_rx_line()
        self._scrollback.append(Direction.TX, decode(data, self._mode))

    def _fault(self, error: ReadError) -> None:
        logger.error("session_link_fault", port=self.port, error=str(error), reason=str(error.reason))
        self._stop_worker()
        self._release_held()
        self._state = SessionState.DISCONNECTED
        self._record_error(error)

    def _record_error(self, error: NolpError) -> None:
        self._last_error = error
        self._pending_error = error

"""pyserial-backed serial link."""

from __future__ import annotations

import errno
import os

import serial

from nolp.exceptions import (
    ConnectionError,
    ConnectionReason,
    LinkClosedError,
    ReadError,
    WriteError,
    WriteReason,
)
from nolp.models.port import Parity, PortParameters
from nolp.transport.base import LinkFactory, SerialLink
from nolp.utils.logging import get_logger

logger = get_logger(__name__)

_PARITY_MAP: dict[Parity, str] = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.ODD: serial.PARITY_ODD,
}

_ERRNO_REASONS: dict[int, ConnectionReason] = {
    errno.ENOENT: ConnectionReason.NOT_FOUND,
    errno.ENODEV: ConnectionReason.NOT_FOUND,
    errno.ENXIO: ConnectionReason.NOT_FOUND,
    errno.EACCES: ConnectionReason.PERMISSION_DENIED,
    errno.EPERM: ConnectionReason.PERMISSION_DENIED,
    errno.EBUSY: ConnectionReason.BUSY,
    errno.EAGAIN: ConnectionReason.BUSY,
}

# Markers found in pyserial messages on platforms that do not set errno.
_MESSAGE_REASONS: tuple[tuple[str, ConnectionReason], ...] = (
    ("FileNotFoundError", ConnectionReason.NOT_FOUND),
    ("could not find", ConnectionReason.NOT_FOUND),
    ("PermissionError", ConnectionReason.PERMISSION_DENIED),
    ("Access is denied", ConnectionReason.PERMISSION_DENIED),
    ("Permission denied", ConnectionReason.PERMISSION_DENIED),
    ("busy", ConnectionReason.BUSY),
)


def classify_open_error(exc: BaseException) -> ConnectionReason:
    """Map a pyserial/OS open failure onto a connection reason."""
    code = getattr(exc, "errno", None)
    if code in _ERRNO_REASONS:
        return _ERRNO_REASONS[code]
    message = str(exc)
    for marker, reason in _MESSAGE_REASONS:
        if marker.lower() in message.lower():
            return reason
    return ConnectionReason.NOT_FOUND


class PySerialLink(SerialLink):
    """Wraps an open ``serial.Serial``."""

    def __init__(self, handle: serial.Serial) -> None:
        self._handle = handle

    @property
    def is_open(self) -> bool:
        return bool(self._handle.is_open)

    def read(self, max_bytes: int) -> bytes:
        try:
            # Block for the first byte (bounded by the read timeout), then
            # take whatever else is already waiting.
            first = self._handle.read(1)
            if not first:
                return b""
            waiting = self._handle.in_waiting
            if waiting:
                return first + self._handle.read(min(waiting, max_bytes - 1))
            return first
        except serial.PortNotOpenError as exc:
            raise LinkClosedError(str(exc)) from exc
        except (serial.SerialException, OSError) as exc:
            if not self.is_open or "disconnected" in str(exc):
                raise LinkClosedError(str(exc)) from exc
            raise ReadError(str(exc)) from exc

    def write(self, data: bytes) -> int:
        try:
            written = self._handle.write(data)
            self._handle.flush()
        except serial.SerialTimeoutException as exc:
            raise WriteError(f"Write timed out: {exc}", WriteReason.IO_FAULT) from exc
        except serial.PortNotOpenError as exc:
            raise LinkClosedError(str(exc)) from exc
        except (serial.SerialException, OSError) as exc:
            if not self.is_open:
                raise LinkClosedError(str(exc)) from exc
            raise WriteError(str(exc), WriteReason.IO_FAULT) from exc
        return written if written is not None else len(data)

    def cancel_read(self) -> None:
        cancel = getattr(self._handle, "cancel_read", None)
        if cancel is None:
            return
        try:
            cancel()
        except (serial.SerialException, OSError):
            logger.debug("serial_cancel_read_failed")

    def close(self) -> None:
        if self._handle.is_open:
            self._handle.close()
            logger.info("serial_closed", port=self._handle.port)


class PySerialLinkFactory(LinkFactory):
    """Opens real serial ports through pyserial."""

    def open(self, parameters: PortParameters, read_timeout_s: float) -> SerialLink:
        logger.info("serial_opening", port=parameters.name, baud=parameters.baud_rate)
        try:
            handle = serial.Serial(
                port=parameters.name,
                baudrate=parameters.baud_rate,
                bytesize=parameters.data_bits,
                stopbits=parameters.stop_bits,
                parity=_PARITY_MAP[parameters.parity],
                timeout=read_timeout_s,
                write_timeout=1.0,
                exclusive=True if os.name == "posix" else None,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            reason = classify_open_error(exc)
            logger.warning("serial_open_failed", port=parameters.name, reason=str(reason), error=str(exc))
            raise ConnectionError(f"Failed to open {parameters.name}: {reason.value}", reason) from exc
        logger.info("serial_opened", port=parameters.name)
        return PySerialLink(handle)

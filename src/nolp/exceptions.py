"""Exception hierarchy for serial sessions, encoding and the terminal UI."""

from __future__ import annotations

from enum import StrEnum


class NolpError(Exception):
    """Base exception for all NOLP errors."""

    def __init__(self, message: str, reason: StrEnum | None = None) -> None:
        self.reason = reason
        super().__init__(message)


class ConnectionReason(StrEnum):
    """Why a serial link could not be opened or was lost."""
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    BUSY = "busy"
    CLOSED = "closed"


class ReadReason(StrEnum):
    CLOSED = "closed"
    IO_FAULT = "io_fault"


class WriteReason(StrEnum):
    NOT_CONNECTED = "not_connected"
    IO_FAULT = "io_fault"


class EncodingReason(StrEnum):
    MALFORMED_TOKEN = "malformed_token"
    OUT_OF_RANGE = "out_of_range"
    UNENCODABLE = "unencodable"


class ConnectionError(NolpError):
    """Failed to establish or maintain a serial connection."""

    def __init__(self, message: str, reason: ConnectionReason = ConnectionReason.CLOSED) -> None:
        super().__init__(message, reason)


class ReadError(NolpError):
    """Reading from the serial link failed."""

    def __init__(self, message: str, reason: ReadReason = ReadReason.IO_FAULT) -> None:
        super().__init__(message, reason)


class LinkClosedError(ReadError):
    """The serial link reports itself closed (device unplugged, handle gone)."""

    def __init__(self, message: str = "Serial link closed") -> None:
        super().__init__(message, ReadReason.CLOSED)


class WriteError(NolpError):
    """Writing to the serial link was rejected or failed."""

    def __init__(self, message: str, reason: WriteReason = WriteReason.IO_FAULT) -> None:
        super().__init__(message, reason)


class EncodingError(NolpError):
    """Text could not be converted to bytes in the current encoding mode.

    ``token`` holds the offending input token when there is one.
    """

    def __init__(
        self,
        message: str,
        reason: EncodingReason = EncodingReason.MALFORMED_TOKEN,
        token: str | None = None,
    ) -> None:
        self.token = token
        super().__init__(message, reason)


class SessionError(NolpError):
    """A session was used outside its lifecycle (e.g. connected twice)."""


class TerminalError(NolpError):
    """The terminal could not be put into raw mode."""

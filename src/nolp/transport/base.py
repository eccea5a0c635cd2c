"""Abstract serial link used by the session worker."""

from __future__ import annotations

from abc import ABC, abstractmethod

from nolp.models.port import PortParameters


class SerialLink(ABC):
    """An open serial handle.

    Only the session worker thread calls ``read``, ``write`` and ``close``.
    ``cancel_read`` may be called from any thread to unblock a pending read.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the underlying handle is still usable."""

    @abstractmethod
    def read(self, max_bytes: int) -> bytes:
        """Read up to *max_bytes*, waiting at most the link's read timeout.

        Returns b"" on timeout.

        Raises:
            LinkClosedError: The device went away.
            ReadError: Any other I/O fault.
        """

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write *data* and return the number of bytes written.

        Raises:
            LinkClosedError: The device went away.
            WriteError: Any other I/O fault.
        """

    @abstractmethod
    def cancel_read(self) -> None:
        """Interrupt a blocking read, if the platform supports it."""

    @abstractmethod
    def close(self) -> None:
        """Release the handle. Safe to call more than once."""


class LinkFactory(ABC):
    """Opens serial links; injected into sessions so tests can use fakes."""

    @abstractmethod
    def open(self, parameters: PortParameters, read_timeout_s: float) -> SerialLink:
        """Open the port described by *parameters*.

        Raises:
            ConnectionError: With reason NOT_FOUND, PERMISSION_DENIED or BUSY.
        """

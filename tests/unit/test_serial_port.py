"""Unit tests for the pyserial link adapter."""

from __future__ import annotations

import errno
from unittest.mock import MagicMock, patch

import pytest
import serial

from nolp.exceptions import (
    ConnectionError,
    ConnectionReason,
    LinkClosedError,
    ReadError,
    WriteError,
)
from nolp.models.port import Parity, PortParameters
from nolp.transport.serial_port import PySerialLink, PySerialLinkFactory, classify_open_error


def _handle(is_open=True):
    handle = MagicMock(spec=serial.Serial)
    handle.is_open = is_open
    handle.port = "/dev/ttyTEST0"
    return handle


class TestClassifyOpenError:
    """Test mapping of open failures onto connection reasons."""

    @pytest.mark.parametrize("code, reason", [
        (errno.ENOENT, ConnectionReason.NOT_FOUND),
        (errno.EACCES, ConnectionReason.PERMISSION_DENIED),
        (errno.EBUSY, ConnectionReason.BUSY),
    ])
    def test_errno(self, code, reason):
        exc = serial.SerialException(code, "could not open port")
        assert classify_open_error(exc) == reason

    def test_windows_message(self):
        exc = serial.SerialException("could not open port 'COM9': PermissionError(13, 'Access is denied.')")
        assert classify_open_error(exc) == ConnectionReason.PERMISSION_DENIED

    def test_unknown_defaults_to_not_found(self):
        assert classify_open_error(serial.SerialException("weird")) == ConnectionReason.NOT_FOUND


class TestPySerialLinkFactory:
    """Test opening ports through pyserial."""

    def test_open_passes_parameters(self):
        params = PortParameters(name="/dev/ttyUSB0", baud_rate=115200, data_bits=7, stop_bits=2, parity=Parity.EVEN)
        with patch("nolp.transport.serial_port.serial.Serial") as serial_cls:
            link = PySerialLinkFactory().open(params, read_timeout_s=0.05)
        kwargs = serial_cls.call_args.kwargs
        assert kwargs["port"] == "/dev/ttyUSB0"
        assert kwargs["baudrate"] == 115200
        assert kwargs["bytesize"] == 7
        assert kwargs["stopbits"] == 2
        assert kwargs["parity"] == serial.PARITY_EVEN
        assert kwargs["timeout"] == 0.05
        assert isinstance(link, PySerialLink)

    def test_open_failure_raises_connection_error(self):
        params = PortParameters(name="/dev/ttyMISSING")
        error = serial.SerialException(errno.ENOENT, "could not open port")
        with patch("nolp.transport.serial_port.serial.Serial", side_effect=error):
            with pytest.raises(ConnectionError) as exc_info:
                PySerialLinkFactory().open(params, read_timeout_s=0.05)
        assert exc_info.value.reason == ConnectionReason.NOT_FOUND


class TestPySerialLink:
    """Test read/write error translation."""

    def test_read_timeout_returns_empty(self):
        handle = _handle()
        handle.read.return_value = b""
        assert PySerialLink(handle).read(64) == b""

    def test_read_drains_waiting_bytes(self):
        handle = _handle()
        handle.read.side_effect = [b"a", b"bcd"]
        handle.in_waiting = 3
        assert PySerialLink(handle).read(64) == b"abcd"
        handle.read.assert_called_with(3)

    def test_read_respects_max_bytes(self):
        handle = _handle()
        handle.read.side_effect = [b"a", b"b"]
        handle.in_waiting = 10
        PySerialLink(handle).read(2)
        handle.read.assert_called_with(1)

    def test_read_on_closed_port(self):
        handle = _handle()
        handle.read.side_effect = serial.PortNotOpenError()
        with pytest.raises(LinkClosedError):
            PySerialLink(handle).read(64)

    def test_read_device_disconnected(self):
        handle = _handle()
        handle.read.side_effect = serial.SerialException("device reports readiness to read but returned no data (device disconnected?)")
        with pytest.raises(LinkClosedError):
            PySerialLink(handle).read(64)

    def test_read_other_fault(self):
        handle = _handle()
        handle.read.side_effect = serial.SerialException("framing error")
        with pytest.raises(ReadError) as exc_info:
            PySerialLink(handle).read(64)
        assert not isinstance(exc_info.value, LinkClosedError)

    def test_write_flushes(self):
        handle = _handle()
        handle.write.return_value = 2
        assert PySerialLink(handle).write(b"AT") == 2
        handle.flush.assert_called_once()

    def test_write_timeout(self):
        handle = _handle()
        handle.write.side_effect = serial.SerialTimeoutException("Write timeout")
        with pytest.raises(WriteError):
            PySerialLink(handle).write(b"AT")

    def test_write_on_closed_port(self):
        handle = _handle(is_open=False)
        handle.write.side_effect = serial.SerialException("Attempting to use a port that is not open")
        with pytest.raises(LinkClosedError):
            PySerialLink(handle).write(b"AT")

    def test_close_only_when_open(self):
        handle = _handle(is_open=False)
        PySerialLink(handle).close()
        handle.close.assert_not_called()

    def test_cancel_read(self):
        handle = _handle()
        PySerialLink(handle).cancel_read()
        handle.cancel_read.assert_called_once()

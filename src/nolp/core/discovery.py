"""Serial port discovery."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from nolp.models.device import DeviceDescriptor
from nolp.utils.logging import get_logger

logger = get_logger(__name__)

# Returns pyserial ListPortInfo-like objects (``device``, ``description``, ...).
PortEnumerator = Callable[[], Iterable[Any]]


def _default_enumerator() -> Iterable[Any]:
    from serial.tools.list_ports import comports

    return comports()


def _descriptor_from_port(port: Any) -> DeviceDescriptor:
    """Convert a pyserial ListPortInfo into our model."""
    return DeviceDescriptor(
        device=str(getattr(port, "device", "")),
        description=getattr(port, "description", "") or "",
        hwid=getattr(port, "hwid", "") or "",
        manufacturer=getattr(port, "manufacturer", None),
        serial_number=getattr(port, "serial_number", None),
    )


def list_devices(enumerator: PortEnumerator | None = None) -> list[DeviceDescriptor]:
    """Enumerate serial ports currently known to the OS, sorted by device name.

    Enumeration failures are logged and reported as an empty list so the
    device list screen can still be shown.
    """
    enumerate_ports = enumerator or _default_enumerator
    try:
        ports = list(enumerate_ports())
    except OSError as exc:
        logger.warning("port_enumeration_failed", error=str(exc))
        return []

    devices = [_descriptor_from_port(p) for p in ports if getattr(p, "device", None)]
    devices.sort(key=lambda d: d.device)
    logger.debug("ports_enumerated", count=len(devices))
    return devices

"""Serial link layer."""

from nolp.transport.base import LinkFactory, SerialLink
from nolp.transport.serial_port import PySerialLink, PySerialLinkFactory

__all__ = [
    "LinkFactory",
    "PySerialLink",
    "PySerialLinkFactory",
    "SerialLink",
]

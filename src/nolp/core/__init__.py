"""Session engine: encoding, scrollback, discovery and the port session."""

from nolp.core.discovery import list_devices
from nolp.core.encoding import decode, encode
from nolp.core.scrollback import Direction, ScrollbackBuffer, ScrollbackLine
from nolp.core.session import PortSession, SessionState

__all__ = [
    "Direction",
    "PortSession",
    "ScrollbackBuffer",
    "ScrollbackLine",
    "SessionState",
    "decode",
    "encode",
    "list_devices",
]

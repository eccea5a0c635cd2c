"""Pydantic data models for NOLP."""

from nolp.models.device import DeviceDescriptor
from nolp.models.port import (
    VALID_DATA_BITS,
    VALID_STOP_BITS,
    EncodingMode,
    Parity,
    PortParameters,
)

__all__ = [
    "DeviceDescriptor",
    "EncodingMode",
    "Parity",
    "PortParameters",
    "VALID_DATA_BITS",
    "VALID_STOP_BITS",
]

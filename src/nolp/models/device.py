"""Discovered serial device models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DeviceDescriptor(BaseModel):
    """Metadata for one serial port reported by the OS."""
    model_config = {"frozen": True}

    device: str = Field(description="Device path or port name, e.g. /dev/ttyUSB0 or COM3")
    description: str = Field(default="", description="Human readable description")
    hwid: str = Field(default="", description="Hardware id string")
    manufacturer: str | None = Field(default=None)
    serial_number: str | None = Field(default=None)

    @property
    def label(self) -> str:
        if self.description and self.description not in ("n/a", self.device):
            return f"{self.device} ({self.description})"
        return self.device

"""Serial link configuration models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class Parity(StrEnum):
    """Serial parity setting."""
    NONE = "none"
    EVEN = "even"
    ODD = "odd"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class EncodingMode(StrEnum):
    """Textual representation of byte values for display and keyboard entry."""
    ASCII = "ascii"
    DECIMAL = "decimal"
    HEX = "hex"
    OCTAL = "octal"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def next(self) -> EncodingMode:
        """The mode after this one, wrapping around."""
        members = list(EncodingMode)
        return members[(members.index(self) + 1) % len(members)]


VALID_DATA_BITS = (5, 6, 7, 8)
VALID_STOP_BITS = (1, 2)


class PortParameters(BaseModel):
    """Everything needed to open a serial link and interpret its traffic."""
    model_config = {"frozen": True}

    name: str = Field(description="Serial port name or device path")
    baud_rate: int = Field(default=9600, gt=0, description="Line speed in bits per second")
    data_bits: int = Field(default=8, description="Data bits per character (5-8)")
    stop_bits: int = Field(default=1, description="Stop bits (1 or 2)")
    parity: Parity = Field(default=Parity.NONE)
    mode: EncodingMode = Field(default=EncodingMode.ASCII)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("port name must not be empty")
        return v.strip()

    @field_validator("data_bits")
    @classmethod
    def _valid_data_bits(cls, v: int) -> int:
        if v not in VALID_DATA_BITS:
            raise ValueError(f"data bits must be one of {VALID_DATA_BITS}")
        return v

    @field_validator("stop_bits")
    @classmethod
    def _valid_stop_bits(cls, v: int) -> int:
        if v not in VALID_STOP_BITS:
            raise ValueError(f"stop bits must be one of {VALID_STOP_BITS}")
        return v

    @property
    def summary(self) -> str:
        """Compact form like ``/dev/ttyUSB0 9600 8E1 Hex``."""
        return (
            f"{self.name} {self.baud_rate} "
            f"{self.data_bits}{self.parity.value[0].upper()}{self.stop_bits} "
            f"{self.mode.label}"
        )

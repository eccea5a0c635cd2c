"""Menu form for entering serial port parameters."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, StrEnum

from pydantic import ValidationError

from nolp.models.port import (
    VALID_DATA_BITS,
    VALID_STOP_BITS,
    EncodingMode,
    Parity,
    PortParameters,
)

DEFAULT_PORT_PLACEHOLDER = "COM4" if sys.platform == "win32" else "/dev/ttyUSB0"


class FieldIndex(IntEnum):
    PORT = 0
    BAUD_RATE = 1
    DATA_BITS = 2
    STOP_BITS = 3
    PARITY = 4
    MODE = 5


class MenuAction(StrEnum):
    """Result of pressing Enter on the form."""
    NONE = "none"
    CANCEL = "cancel"
    START = "start"


def _any(ch: str) -> bool:
    return ch.isprintable()


def _digit(ch: str) -> bool:
    return ch.isdigit() and ch.isascii()


def _digit_in(allowed: tuple[int, ...]) -> Callable[[str], bool]:
    def _check(ch: str) -> bool:
        return _digit(ch) and int(ch) in allowed
    return _check


@dataclass
class MenuField:
    """One labelled text input."""
    title: str
    placeholder: str
    limit: int = 100
    accepts: Callable[[str], bool] = _any
    value: str = ""
    invalid: bool = False

    @property
    def effective(self) -> str:
        """The typed value, or the placeholder when nothing was typed."""
        return self.value.strip() or self.placeholder


def _default_fields(port_placeholder: str) -> list[MenuField]:
    return [
        MenuField("Port", port_placeholder),
        MenuField("Baudrate", "9600", limit=10, accepts=_digit),
        MenuField("Data bits", "8", limit=1, accepts=_digit_in(VALID_DATA_BITS)),
        MenuField("Stop bits", "1", limit=1, accepts=_digit_in(VALID_STOP_BITS)),
        MenuField("Parity", "Even", limit=4),
        MenuField("Mode", "Ascii", limit=7),
    ]


class MenuForm:
    """Six parameter fields followed by Cancel and Start buttons.

    ``selected`` ranges over the fields and then the two buttons.
    """

    def __init__(self, port_placeholder: str = DEFAULT_PORT_PLACEHOLDER) -> None:
        self._port_placeholder = port_placeholder
        self.fields = _default_fields(port_placeholder)
        self.selected = 0

    @classmethod
    def from_parameters(cls, parameters: PortParameters) -> MenuForm:
        form = cls()
        form.fields[FieldIndex.PORT].value = parameters.name
        form.fields[FieldIndex.BAUD_RATE].value = str(parameters.baud_rate)
        form.fields[FieldIndex.DATA_BITS].value = str(parameters.data_bits)
        form.fields[FieldIndex.STOP_BITS].value = str(parameters.stop_bits)
        form.fields[FieldIndex.PARITY].value = parameters.parity.label
        form.fields[FieldIndex.MODE].value = parameters.mode.label
        return form

    @property
    def cancel_index(self) -> int:
        return len(self.fields)

    @property
    def start_index(self) -> int:
        return len(self.fields) + 1

    @property
    def element_count(self) -> int:
        return len(self.fields) + 2

    @property
    def current_field(self) -> MenuField | None:
        if self.selected < len(self.fields):
            return self.fields[self.selected]
        return None

    def select(self, delta: int) -> int:
        """Move the selection, clamped to the first field and the Start button."""
        self.selected = min(max(0, self.selected + delta), self.element_count - 1)
        return self.selected

    def input_char(self, ch: str) -> bool:
        """Append *ch* to the selected field if its filter and limit allow it."""
        field = self.current_field
        if field is None or len(field.value) >= field.limit or not field.accepts(ch):
            return False
        field.value += ch
        field.invalid = False
        return True

    def backspace(self) -> None:
        field = self.current_field
        if field is not None and field.value:
            field.value = field.value[:-1]
            field.invalid = False

    def set_port(self, name: str) -> None:
        self.fields[FieldIndex.PORT].value = name
        self.fields[FieldIndex.PORT].invalid = False

    def reset(self) -> None:
        self.fields = _default_fields(self._port_placeholder)
        self.selected = 0

    def activate(self) -> MenuAction:
        """Handle Enter: buttons report an action, fields advance the selection."""
        if self.selected == self.cancel_index:
            return MenuAction.CANCEL
        if self.selected == self.start_index:
            return MenuAction.START
        self.select(1)
        return MenuAction.NONE

    def parameters(self) -> PortParameters | None:
        """Validate every field and build the port parameters.

        Invalid fields are flagged; returns None if any field is invalid.
        """
        for field in self.fields:
            field.invalid = False

        values = [f.effective for f in self.fields]
        parity = _lookup(Parity, values[FieldIndex.PARITY])
        mode = _lookup(EncodingMode, values[FieldIndex.MODE])
        if parity is None:
            self.fields[FieldIndex.PARITY].invalid = True
        if mode is None:
            self.fields[FieldIndex.MODE].invalid = True

        numbers: dict[FieldIndex, int] = {}
        for index in (FieldIndex.BAUD_RATE, FieldIndex.DATA_BITS, FieldIndex.STOP_BITS):
            try:
                numbers[index] = int(values[index])
            except ValueError:
                self.fields[index].invalid = True

        if any(f.invalid for f in self.fields):
            return None

        try:
            return PortParameters(
                name=values[FieldIndex.PORT],
                baud_rate=numbers[FieldIndex.BAUD_RATE],
                data_bits=numbers[FieldIndex.DATA_BITS],
                stop_bits=numbers[FieldIndex.STOP_BITS],
                parity=parity,
                mode=mode,
            )
        except ValidationError as exc:
            for error in exc.errors():
                name = error["loc"][0] if error["loc"] else None
                if name in _MODEL_FIELDS:
                    self.fields[_MODEL_FIELDS[name]].invalid = True
            return None


_MODEL_FIELDS: dict[str, FieldIndex] = {
    "name": FieldIndex.PORT,
    "baud_rate": FieldIndex.BAUD_RATE,
    "data_bits": FieldIndex.DATA_BITS,
    "stop_bits": FieldIndex.STOP_BITS,
    "parity": FieldIndex.PARITY,
    "mode": FieldIndex.MODE,
}


def _lookup(enum_cls, text: str):
    try:
        return enum_cls(text.strip().lower())
    except ValueError:
        return None

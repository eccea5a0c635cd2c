"""Byte <-> text conversion for the ASCII, decimal, hex and octal modes.

Decoding never fails. Encoding validates the whole input before producing
any bytes, so a rejected write transmits nothing.
"""

from __future__ import annotations

import re

from nolp.exceptions import EncodingError, EncodingReason
from nolp.models.port import EncodingMode

# Shown in place of every non-printable byte in ASCII mode.
PLACEHOLDER = "."

_PRINTABLE_LOW = 0x20
_PRINTABLE_HIGH = 0x7E

_TOKEN_PATTERNS: dict[EncodingMode, re.Pattern[str]] = {
    EncodingMode.DECIMAL: re.compile(r"[0-9]+"),
    EncodingMode.HEX: re.compile(r"(?:0[xX])?[0-9a-fA-F]+"),
    EncodingMode.OCTAL: re.compile(r"(?:0[oO])?[0-7]+"),
}

_BASES: dict[EncodingMode, int] = {
    EncodingMode.DECIMAL: 10,
    EncodingMode.HEX: 16,
    EncodingMode.OCTAL: 8,
}


def _is_printable(value: int) -> bool:
    return _PRINTABLE_LOW <= value <= _PRINTABLE_HIGH


def format_byte(value: int, mode: EncodingMode) -> str:
    """Format a single byte as its token in *mode*."""
    if mode == EncodingMode.HEX:
        return f"{value:02X}"
    if mode == EncodingMode.OCTAL:
        return f"{value:03o}"
    if mode == EncodingMode.DECIMAL:
        return str(value)
    return chr(value) if _is_printable(value) else PLACEHOLDER


def decode(data: bytes, mode: EncodingMode) -> str:
    """Render *data* as text.

    ASCII yields exactly one character per byte. The numeric modes yield one
    space-separated token per byte, in order.
    """
    if mode == EncodingMode.ASCII:
        return "".join(format_byte(b, mode) for b in data)
    return " ".join(format_byte(b, mode) for b in data)


def encode(text: str, mode: EncodingMode) -> bytes:
    """Convert user *text* into the bytes to transmit.

    Raises:
        EncodingError: If any character or token cannot be represented. The
            whole input is rejected; no partial result is returned.
    """
    if mode == EncodingMode.ASCII:
        try:
            return text.encode("ascii")
        except UnicodeEncodeError as exc:
            bad = text[exc.start:exc.end]
            raise EncodingError(
                f"Cannot send {bad!r} in Ascii mode",
                EncodingReason.UNENCODABLE,
                token=bad,
            ) from exc

    pattern = _TOKEN_PATTERNS[mode]
    base = _BASES[mode]
    values: list[int] = []
    for token in text.split():
        if not pattern.fullmatch(token):
            raise EncodingError(
                f"Malformed {mode.label} token {token!r}",
                EncodingReason.MALFORMED_TOKEN,
                token=token,
            )
        value = int(token, base)
        if value > 0xFF:
            raise EncodingError(
                f"{mode.label} token {token!r} is outside 0-255",
                EncodingReason.OUT_OF_RANGE,
                token=token,
            )
        values.append(value)
    return bytes(values)

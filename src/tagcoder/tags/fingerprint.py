"""Stable change-detection digest for tag content."""

from __future__ import annotations

SEPARATOR = "|"

_MASK = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def _utf16_units(text: str):
    """Yield the UTF-16 code units of ``text``."""
    data = text.encode("utf-16-le")
    for offset in range(0, len(data), 2):
        yield data[offset] | (data[offset + 1] << 8)


def fingerprint(name: str, description: str) -> str:
    """Return the decimal string of a 32-bit rolling hash of a tag's content.

    Both fields are trimmed and joined with ``|``; the hash is
    ``h = h * 31 + unit`` over UTF-16 code units, wrapped to a signed 32-bit
    integer at every step. Not a security primitive.
    """
    content = f"{name.strip()}{SEPARATOR}{description.strip()}"
    value = 0
    for unit in _utf16_units(content):
        value = (value * 31 + unit) & _MASK
    if value & _SIGN_BIT:
        value -= _MASK + 1
    return str(value)

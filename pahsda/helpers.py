"""Small byte-formatting helpers shared across the package."""

from __future__ import annotations

__all__ = ["bytes_to_hex_string", "bytes_to_value"]


def bytes_to_hex_string(data: bytes) -> str:
    """Return the bytes as lower-case hex pairs separated by single spaces."""
    return bytes(data).hex(" ")


def bytes_to_value(data: bytes) -> int:
    """Interpret up to the first four bytes as an unsigned little-endian integer."""
    return int.from_bytes(bytes(data[:4]), "little")
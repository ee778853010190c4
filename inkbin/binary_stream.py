"""Growable in-memory byte buffer with back-patching."""

from __future__ import annotations

import struct
from typing import BinaryIO

_UINT32 = struct.Struct("<I")


class BinaryStream:
    """Append-only byte buffer whose earlier bytes may be overwritten."""

    def __init__(self) -> None:
        self._data = bytearray()

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Append ``data`` and return the number of bytes written."""
        chunk = bytes(data)
        self._data += chunk
        return len(chunk)

    def write_string(self, value: str) -> int:
        """Append ``value`` null-terminated; an empty string is stored as a space."""
        encoded = value.encode("utf-8") or b" "
        return self.write(encoded + b"\0")

    def write_uint32(self, value: int) -> int:
        """Append an unsigned 32-bit little-endian integer."""
        return self.write(_UINT32.pack(value & 0xFFFFFFFF))

    def tell(self) -> int:
        """Return the current write position."""
        return len(self._data)

    def set(self, offset: int, data: bytes | bytearray | memoryview) -> None:
        """Overwrite already written bytes starting at ``offset``."""
        chunk = bytes(data)
        if offset < 0 or offset + len(chunk) > len(self._data):
            raise IndexError(
                f"cannot set {len(chunk)} bytes at offset {offset} "
                f"in a stream of {len(self._data)} bytes"
            )
        self._data[offset : offset + len(chunk)] = chunk

    def set_uint32(self, offset: int, value: int) -> None:
        """Overwrite an unsigned 32-bit little-endian integer at ``offset``."""
        self.set(offset, _UINT32.pack(value & 0xFFFFFFFF))

    def write_to(self, out: BinaryIO) -> None:
        """Write the whole buffer to the binary stream ``out``."""
        out.write(bytes(self._data))

    def getvalue(self) -> bytes:
        """Return a copy of the buffer contents."""
        return bytes(self._data)

    def reset(self) -> None:
        """Discard all written data."""
        self._data.clear()
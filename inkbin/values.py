"""Typed values handled by the runtime's evaluation stack and output."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, TextIO

_FLOAT32 = struct.Struct("<f")
_UINT32_MASK = 0xFFFFFFFF


class ValueType(IntEnum):
    """Kinds of value; the order groups operable and printable types."""

    NONE = 0
    DIVERT = 1
    BOOLEAN = 2
    UINT32 = 3
    INT32 = 4
    FLOAT32 = 5
    LIST = 6
    LIST_FLAG = 7
    STRING = 8
    NEWLINE = 9
    VALUE_POINTER = 10
    MARKER = 11
    GLUE = 12
    FUNC_START = 13
    FUNC_END = 14
    NULL = 15
    TUNNEL_FRAME = 16
    FUNCTION_FRAME = 17
    THREAD_FRAME = 18
    THREAD_START = 19
    THREAD_END = 20
    JUMP_MARKER = 21


# First type operations apply to, and the first one past them.
OP_BEGIN = ValueType.DIVERT
OP_END = ValueType.NEWLINE
# First printable type, and the first one past them.
PRINT_BEGIN = ValueType.BOOLEAN
PRINT_END = ValueType.VALUE_POINTER

_UNSIGNED_TYPES = frozenset({ValueType.UINT32, ValueType.DIVERT, ValueType.THREAD_END})
_LIST_TYPES = frozenset({ValueType.LIST, ValueType.LIST_FLAG})


def _to_float32(number: float) -> float:
    return _FLOAT32.unpack(_FLOAT32.pack(float(number)))[0]


def _to_int32(number: int) -> int:
    number = int(number) & _UINT32_MASK
    return number - (1 << 32) if number >= (1 << 31) else number


def format_float(number: float) -> str:
    """Render a 32-bit float with up to seven significant digits, no trailing zeros."""
    number = _to_float32(number)
    if math.isnan(number):
        return "nan"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    if number == 0:
        return "0"
    digits = math.floor(math.log10(abs(number))) + 1
    decimals = max(0, 7 - digits)
    text = f"{number:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


@dataclass(frozen=True)
class Value:
    """A value tagged with its type.

    ``data`` holds the payload: a number, bool or string for the basic
    types, a ``(name_hash, ci)`` pair for pointers, a ``(jump, thread_id)``
    pair for jump markers and thread starts, and an ``(address, eval)``
    pair for frames. Marker-like types carry no payload.
    """

    type: ValueType = ValueType.NONE
    data: Any = None

    def __post_init__(self) -> None:
        kind = ValueType(self.type)
        object.__setattr__(self, "type", kind)
        data = self.data
        if kind is ValueType.INT32:
            data = _to_int32(data)
        elif kind in _UNSIGNED_TYPES:
            data = int(data) & _UINT32_MASK
        elif kind is ValueType.FLOAT32:
            data = _to_float32(data)
        elif kind is ValueType.BOOLEAN:
            data = bool(data)
        elif kind is ValueType.STRING:
            if not isinstance(data, str):
                raise TypeError(f"string value needs a str, got {type(data).__name__}")
        elif kind is ValueType.NEWLINE:
            data = "\n"
        object.__setattr__(self, "data", data)

    def printable(self) -> bool:
        """Whether this value can be written to text output."""
        return PRINT_BEGIN <= self.type < PRINT_END

    def redefine(self, other: Value) -> Value:
        """Return a new value of this type holding ``other``'s payload."""
        if self.type is not other.type:
            raise ValueError(
                f"cannot redefine a {self.type.name} value with a {other.type.name} value"
            )
        if not OP_BEGIN <= self.type < OP_END:
            raise TypeError(
                "Can't redefine value with this type! (It is not an variable type!)"
            )
        return Value(self.type, other.data)

    def write(self, out: TextIO) -> TextIO:
        """Write the text form of this value to ``out`` and return ``out``."""
        if not self.printable():
            raise TypeError("printing this type is not supported")
        if self.type in _LIST_TYPES:
            raise ValueError("to stringify lists, we need a list_table")
        if self.type is ValueType.BOOLEAN:
            out.write("true" if self.data else "false")
        elif self.type is ValueType.FLOAT32:
            out.write(format_float(self.data))
        else:
            out.write(str(self.data))
        return out

    def __str__(self) -> str:
        parts: list[str] = []

        class _Collector:
            def write(self, text: str) -> None:
                parts.append(text)

        self.write(_Collector())  # type: ignore[arg-type]
        return "".join(parts)


MARKER = Value(ValueType.MARKER)
GLUE = Value(ValueType.GLUE)
NEWLINE = Value(ValueType.NEWLINE)
FUNC_START = Value(ValueType.FUNC_START)
FUNC_END = Value(ValueType.FUNC_END)
NULL = Value(ValueType.NULL)
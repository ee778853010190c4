"""Operations on string values: concatenation, comparison and containment."""

from __future__ import annotations

import io

from inkbin.string_table import StringTable
from inkbin.values import Value, ValueType

_C_SPACE = frozenset(" \t\n\v\f\r")


def to_text(value: Value) -> str:
    """Return ``value`` as text; string values are returned unchanged."""
    if value.type is ValueType.STRING:
        return value.data
    return value.write(io.StringIO()).getvalue()


def has_text(lhs: str, rhs: str) -> bool:
    """Whether ``rhs`` occurs in ``lhs``.

    Leading whitespace of both is ignored, and whitespace in ``rhs`` that
    does not match ``lhs`` is skipped.
    """
    lhs = lhs.lstrip("".join(_C_SPACE))
    rhs = rhs.lstrip("".join(_C_SPACE))
    if not lhs and not rhs:
        return True
    for start in range(len(lhs)):
        offset = 0
        matched = True
        for i, wanted in enumerate(rhs):
            position = start + i + offset
            found = lhs[position] if position < len(lhs) else ""
            if found != wanted:
                if wanted in _C_SPACE:
                    offset -= 1
                    continue
                matched = False
                break
        if matched:
            return True
    return False


def _boolean(flag: bool) -> Value:
    return Value(ValueType.BOOLEAN, flag)


def add(lhs: Value, rhs: Value, strings: StringTable) -> Value:
    """Concatenate the text of both values into a new dynamic string."""
    text = strings.create(to_text(lhs) + to_text(rhs))
    return Value(ValueType.STRING, text)


def is_equal(lhs: Value, rhs: Value) -> Value:
    """Whether both values have the same text."""
    return _boolean(to_text(lhs) == to_text(rhs))


def not_equal(lhs: Value, rhs: Value) -> Value:
    """Whether the values' texts differ."""
    return _boolean(to_text(lhs) != to_text(rhs))


def has(lhs: Value, rhs: Value) -> Value:
    """Whether the text of ``rhs`` is contained in that of ``lhs``."""
    return _boolean(has_text(to_text(lhs), to_text(rhs)))


def hasnt(lhs: Value, rhs: Value) -> Value:
    """Whether the text of ``rhs`` is not contained in that of ``lhs``."""
    return _boolean(not has_text(to_text(lhs), to_text(rhs)))
"""List definitions gathered while compiling a story."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class ListFlag:
    """A single flag of a list: the list's id and the flag's index in it."""

    list_id: int
    flag: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<hh")
    SIZE: ClassVar[int] = 4

    def pack(self) -> bytes:
        """Return the binary form of this flag."""
        return self._STRUCT.pack(self.list_id, self.flag)

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview, offset: int = 0) -> ListFlag:
        """Read a flag from ``data`` at ``offset``."""
        list_id, flag = cls._STRUCT.unpack_from(data, offset)
        return cls(list_id, flag)


NULL_FLAG = ListFlag(-1, -1)
EMPTY_FLAG = ListFlag(-1, 0)


@dataclass(frozen=True)
class NamedListFlag:
    """A list flag together with its name."""

    name: str
    flag: ListFlag


class ListData:
    """Builds the table of list definitions, one list at a time."""

    def __init__(self) -> None:
        self._lists: dict[str, int] = {}
        self._list_end: list[int] = []
        self._list_names: list[str] = []
        self._current_list_start = 0
        self._flag_names: list[str] = []

    def new_list(self, list_name: str) -> None:
        """Start a new list; following flags belong to it."""
        self._lists.setdefault(list_name, len(self._list_end))
        self._list_names.append(list_name)
        current_back = self._list_end[-1] if self._list_end else 0
        self._current_list_start = current_back
        self._list_end.append(current_back)

    def new_flag(self, flag_name: str, value: int) -> None:
        """Add a flag with the 1-based ``value`` to the current list."""
        if not self._list_end:
            raise ValueError("a list must be started before adding flags")
        if value < 1:
            raise ValueError(f"list flag values start at 1, got {value}")
        position = self._current_list_start + value
        if len(self._flag_names) < position:
            self._flag_names.extend([""] * (position - len(self._flag_names)))
        if position > self._list_end[-1]:
            self._list_end[-1] = position
        self._flag_names[position - 1] = flag_name

    def get_lid(self, list_name: str) -> int:
        """Return the id of the list named ``list_name``."""
        try:
            return self._lists[list_name]
        except KeyError:
            raise KeyError(f"unknown list {list_name!r}") from None

    def is_empty(self) -> bool:
        """Whether no list has been defined."""
        return not self._lists

    def get_flags(self) -> list[NamedListFlag]:
        """Return every named flag, ordered by list and by value."""
        result: list[NamedListFlag] = []
        begin = 0
        for list_id, end in enumerate(self._list_end):
            for index, name in enumerate(self._flag_names[begin:end]):
                if name:
                    result.append(NamedListFlag(name, ListFlag(list_id, index)))
            begin = end
        return result

    def list_names(self) -> list[str]:
        """Return the list names in definition order."""
        return list(self._list_names)
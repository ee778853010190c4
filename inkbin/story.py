"""Loading compiled binary stories and shared reference tracking."""

from __future__ import annotations

import os
import struct
from collections.abc import Iterator
from dataclasses import dataclass

from inkbin.emitter import END_MARKER, ENDIAN_SAME, HEADER, HEADER_SIZE, INK_BIN_VERSION
from inkbin.hashing import hash_string
from inkbin.list_data import NULL_FLAG, ListFlag

_UINT32 = struct.Struct("<I")


@dataclass(eq=False)
class RefBlock:
    """Reference count shared by a story and the objects created from it."""

    references: int = 0
    valid: bool = True

    def remove_reference(self) -> bool:
        """Drop one reference; return True when the block is released."""
        if self.references <= 1:
            self.references = 0
            self.valid = False
            return True
        self.references -= 1
        return False


class StoryPtr:
    """Handle tracking references to a story and to one instance made from it."""

    def __init__(self, story_block: RefBlock | None, instance_block: RefBlock | None = None) -> None:
        self.story_block = story_block
        self.instance_block = instance_block if instance_block is not None else RefBlock()

    def add_reference(self) -> None:
        """Count one more holder; drop both blocks if either is gone."""
        story, instance = self.story_block, self.instance_block
        if story is None or instance is None or not story.valid or not instance.valid:
            self.story_block = None
            self.instance_block = None
            return
        instance.references += 1
        story.references += 1

    def remove_reference(self) -> bool:
        """Release this holder; return True if the instance is now destroyed."""
        if self.story_block is not None:
            self.story_block.remove_reference()
        destroyed = True
        if self.instance_block is not None:
            destroyed = self.instance_block.remove_reference()
        self.story_block = None
        self.instance_block = None
        return destroyed

    def __bool__(self) -> bool:
        return (
            self.story_block is not None
            and self.instance_block is not None
            and self.story_block.valid
            and self.instance_block.valid
        )


class Story:
    """A compiled story, read-only once loaded.

    Instruction offsets are relative to the start of the instruction data.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._block = RefBlock(references=1)
        self._parse()

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> Story:
        """Load a story from a binary file."""
        with open(path, "rb") as handle:
            return cls(handle.read())

    @classmethod
    def from_binary(cls, data: bytes | bytearray | memoryview) -> Story:
        """Load a story from binary data in memory."""
        return cls(data)

    # -- parsing ---------------------------------------------------------

    def _byte(self, pos: int) -> int:
        if pos >= len(self._data):
            raise ValueError("story data ends unexpectedly")
        return self._data[pos]

    def _skip_cstr(self, pos: int) -> int:
        end = self._data.find(b"\0", pos)
        if end < 0:
            raise ValueError("unterminated string in story data")
        return end + 1

    def _read_uint32(self, pos: int) -> int:
        if pos + _UINT32.size > len(self._data):
            raise ValueError("story data ends unexpectedly")
        return _UINT32.unpack_from(self._data, pos)[0]

    def _read_flag(self, pos: int) -> tuple[ListFlag, int]:
        if pos + ListFlag.SIZE > len(self._data):
            raise ValueError("story data ends unexpectedly")
        return ListFlag.unpack(self._data, pos), pos + ListFlag.SIZE

    def _parse(self) -> None:
        data = self._data
        if len(data) < HEADER_SIZE:
            raise ValueError("story data too short for header")
        endian, ink_version, bin_version = HEADER.unpack_from(data, 0)
        if endian != ENDIAN_SAME:
            raise ValueError(f"unsupported byte order marker {endian:#06x}")
        if bin_version != INK_BIN_VERSION:
            raise ValueError(
                f"unsupported story format version {bin_version}, expected {INK_BIN_VERSION}"
            )
        self._ink_version = ink_version

        pos = HEADER_SIZE
        self._string_table = pos
        if self._byte(pos) == 0:
            pos += 1
        else:
            while True:
                pos = self._skip_cstr(pos)
                if self._byte(pos) == 0:
                    pos += 1
                    break

        list_meta = pos
        flag, pos = self._read_flag(pos)
        if flag != NULL_FLAG:
            list_id = flag.list_id
            pos = self._skip_cstr(pos)
            while True:
                if flag.list_id != list_id:
                    list_id = flag.list_id
                    pos = self._skip_cstr(pos)
                pos = self._skip_cstr(pos)
                flag, pos = self._read_flag(pos)
                if flag == NULL_FLAG:
                    break
            lists = pos
            while True:
                flag, pos = self._read_flag(pos)
                if flag == NULL_FLAG:
                    break
                while True:
                    flag, pos = self._read_flag(pos)
                    if flag == NULL_FLAG:
                        break
            self._list_meta: int | None = list_meta
            self._lists: int | None = lists
        else:
            self._list_meta = None
            self._lists = None

        self._num_containers = self._read_uint32(pos)
        pos += _UINT32.size

        containers: list[tuple[int, int]] = []
        while True:
            value = self._read_uint32(pos)
            if value == END_MARKER:
                pos += _UINT32.size
                break
            containers.append((value, self._read_uint32(pos + _UINT32.size)))
            pos += 2 * _UINT32.size
        self._container_list = containers

        hashes: list[tuple[int, int]] = []
        while True:
            value = self._read_uint32(pos)
            if value == END_MARKER:
                pos += _UINT32.size
                break
            hashes.append((value, self._read_uint32(pos + _UINT32.size)))
            pos += 2 * _UINT32.size
        self._container_hashes = hashes

        self._instruction_start = pos

    # -- access ----------------------------------------------------------

    @property
    def ink_version(self) -> int:
        """Ink version recorded by the compiler."""
        return self._ink_version

    @property
    def instructions(self) -> bytes:
        """The instruction data."""
        return self._data[self._instruction_start :]

    @property
    def end(self) -> int:
        """Offset one past the last instruction byte."""
        return len(self._data) - self._instruction_start

    @property
    def num_containers(self) -> int:
        """Number of containers that track visits or turns."""
        return self._num_containers

    @property
    def lists(self) -> int | None:
        """File offset of the predefined lists, or None if the story has no lists."""
        return self._lists

    @property
    def list_meta(self) -> int | None:
        """File offset of the list definitions, or None if the story has none."""
        return self._list_meta

    @property
    def block(self) -> RefBlock:
        """Reference block shared with objects created from this story."""
        return self._block

    def string(self, index: int) -> str:
        """Return the string stored at ``index`` in the string table."""
        start = self._string_table + index
        if index < 0 or start >= self._instruction_start:
            raise IndexError(f"string index {index} out of range")
        end = self._data.find(b"\0", start)
        if end < 0:
            raise IndexError(f"string index {index} out of range")
        return self._data[start:end].decode("utf-8")

    def iterate_containers(self, reverse: bool = False) -> Iterator[tuple[int, int]]:
        """Yield ``(index, offset)`` for every container map entry."""
        entries = reversed(self._container_list) if reverse else iter(self._container_list)
        for offset, index in entries:
            yield index, offset

    def get_container_id(self, offset: int) -> int | None:
        """Return the index of the container map entry at ``offset``, if any."""
        for index, entry_offset in self.iterate_containers():
            if entry_offset == offset:
                return index
        return None

    def find_offset_for(self, path: int | str) -> int | None:
        """Return the instruction offset of the named container, or None."""
        key = hash_string(path) if isinstance(path, str) else path
        for name_hash, offset in self._container_hashes:
            if name_hash == key:
                return offset
        return None

    def __enter__(self) -> Story:
        return self

    def __exit__(self, *exc: object) -> None:
        self._block.valid = False
        self._block.remove_reference()
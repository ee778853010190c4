"""Emitters that turn compiled ink containers into the binary story format."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import BinaryIO

from inkbin.binary_stream import BinaryStream
from inkbin.commands import Command, CommandFlag
from inkbin.hashing import hash_string
from inkbin.list_data import NULL_FLAG, ListData, ListFlag
from inkbin.reporter import CompilationResults, Reporter

ENDIAN_SAME = 0x0001
INK_BIN_VERSION = 1
HEADER = struct.Struct("<HII")
HEADER_SIZE = HEADER.size
END_MARKER = 0xFFFFFFFF
NO_INDEX = 0xFFFFFFFF

_UINT32 = struct.Struct("<I")
_FLOAT32 = struct.Struct("<f")
_MASK = 0xFFFFFFFF


def _pack_param(param: int | float | bool | bytes) -> bytes:
    if isinstance(param, (bytes, bytearray)):
        if len(param) != 4:
            raise ValueError("parameters must be 4 bytes long")
        return bytes(param)
    if isinstance(param, bool):
        return _UINT32.pack(int(param))
    if isinstance(param, float):
        return _FLOAT32.pack(param)
    if isinstance(param, int):
        if not -(1 << 31) <= param <= _MASK:
            raise ValueError(f"parameter {param} does not fit in 4 bytes")
        return _UINT32.pack(param & _MASK)
    raise TypeError(f"unsupported parameter type {type(param).__name__}")


@dataclass(eq=False)
class _ContainerData:
    parent: _ContainerData | None = None
    offset: int = 0
    counter_index: int = NO_INDEX
    children: list[_ContainerData] = field(default_factory=list)
    named_children: dict[str, _ContainerData] = field(default_factory=dict)
    indexed_children: dict[int, _ContainerData] = field(default_factory=dict)
    noop_offsets: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class _PathEntry:
    position: int
    path: str
    context: _ContainerData | None
    use_count_index: bool


class Emitter(Reporter, ABC):
    """Base for emitters that write ink commands to some output."""

    def __init__(self) -> None:
        super().__init__()
        self._container_map: list[tuple[int, int]] = []
        self._max_container_index = 0
        self._ink_version = 0

    def start(self, ink_version: int, results: CompilationResults | None = None) -> None:
        """Reset the emitter for a new story."""
        self._ink_version = ink_version
        self.set_results(results)
        self._container_map.clear()
        self._max_container_index = 0
        self._initialize()

    def finish(self, max_container_index: int) -> None:
        """Signal the end of compilation and run post-processing."""
        self._max_container_index = max_container_index
        self._finalize()

    def _check_order(self, offset: int) -> None:
        if self._container_map and self._container_map[-1][0] > offset:
            self.warn(
                "Container map written out of order. Wrote container at offset "
                f"{offset} after container with offset {self._container_map[-1][0]}"
            )

    def add_start_to_container_map(self, offset: int, index: int) -> None:
        """Record where the container with visit ``index`` starts."""
        self._check_order(offset)
        self._container_map.append((offset, index))
        self._set_container_index(index)

    def add_end_to_container_map(self, offset: int, index: int) -> None:
        """Record where the container with visit ``index`` ends."""
        self._check_order(offset)
        self._container_map.append((offset, index))

    def write(
        self,
        command: Command,
        param: int | float | bool | bytes,
        flag: CommandFlag | int = CommandFlag.NO_FLAGS,
    ) -> None:
        """Write a command with a 4-byte parameter."""
        self.write_raw(command, flag, _pack_param(param))

    @abstractmethod
    def start_container(self, index_in_parent: int, name: str) -> int:
        """Begin a container and return its offset."""

    @abstractmethod
    def end_container(self) -> int:
        """End the current container and return the current offset."""

    @abstractmethod
    def write_raw(
        self, command: Command, flag: CommandFlag | int = CommandFlag.NO_FLAGS, payload: bytes = b""
    ) -> None:
        """Write a command with an optional raw payload."""

    @abstractmethod
    def write_path(
        self, command: Command, flag: CommandFlag | int, path: str, use_count_index: bool = False
    ) -> None:
        """Write a command whose payload is a container path."""

    @abstractmethod
    def write_variable(self, command: Command, flag: CommandFlag | int, name: str) -> None:
        """Write a command whose payload is a variable name."""

    @abstractmethod
    def write_string(self, command: Command, flag: CommandFlag | int, string: str) -> None:
        """Write a command whose payload is a string."""

    @abstractmethod
    def write_list(
        self, command: Command, flag: CommandFlag | int, entries: Iterable[ListFlag]
    ) -> None:
        """Write a command whose payload is a list."""

    @abstractmethod
    def handle_nop(self, index_in_parent: int) -> None:
        """Record a no-op at the current position."""

    @abstractmethod
    def fallthrough_divert(self) -> int:
        """Write a fallthrough divert and return the position of its target."""

    @abstractmethod
    def patch_fallthroughs(self, position: int) -> None:
        """Point the fallthrough divert at ``position`` to the current position."""

    @abstractmethod
    def set_list_meta(self, list_defs: ListData) -> None:
        """Record the story's list definitions."""

    @abstractmethod
    def _initialize(self) -> None:
        """Clear state for a new story."""

    @abstractmethod
    def _finalize(self) -> None:
        """Post-process after compilation."""

    @abstractmethod
    def _set_container_index(self, index: int) -> None:
        """Set the visit index of the current container."""


class BinaryEmitter(Emitter):
    """Emitter that produces the binary story format."""

    def __init__(self) -> None:
        super().__init__()
        self._root: _ContainerData | None = None
        self._current: _ContainerData | None = None
        self._strings = BinaryStream()
        self._list_count = 0
        self._lists = BinaryStream()
        self._containers = BinaryStream()
        self._paths: list[_PathEntry] = []

    def start_container(self, index_in_parent: int, name: str) -> int:
        container = _ContainerData(parent=self._current, offset=self._containers.tell())
        if self._root is None:
            self._root = container
        if self._current is not None:
            self._current.children.append(container)
            self._current.indexed_children.setdefault(index_in_parent, container)
            if name:
                self._current.named_children.setdefault(name, container)
        self._current = container
        return self._containers.tell()

    def end_container(self) -> int:
        if self._current is None:
            raise RuntimeError("no container is open")
        self._current = self._current.parent
        return self._containers.tell()

    def write_raw(
        self, command: Command, flag: CommandFlag | int = CommandFlag.NO_FLAGS, payload: bytes = b""
    ) -> None:
        flag_value = int(flag)
        if not 0 <= flag_value <= 0xFF:
            raise ValueError(f"command flag {flag_value} does not fit in one byte")
        self._containers.write(bytes((int(Command(command)), flag_value)))
        if payload:
            self._containers.write(payload)

    def write_path(
        self, command: Command, flag: CommandFlag | int, path: str, use_count_index: bool = False
    ) -> None:
        self.write(command, 0, flag)
        position = self._containers.tell() - _UINT32.size
        self._paths.append(_PathEntry(position, path, self._current, use_count_index))

    def write_variable(self, command: Command, flag: CommandFlag | int, name: str) -> None:
        self.write(command, hash_string(name), flag)

    def write_string(self, command: Command, flag: CommandFlag | int, string: str) -> None:
        position = self._strings.tell()
        self._strings.write_string(string[1:] if string.startswith("^") else string)
        self.write(command, position, flag)

    def write_list(
        self, command: Command, flag: CommandFlag | int, entries: Iterable[ListFlag]
    ) -> None:
        list_id = self._list_count
        self._list_count += 1
        for entry in entries:
            self._lists.write(entry.pack())
        self._lists.write(NULL_FLAG.pack())
        self.write(command, list_id, flag)

    def handle_nop(self, index_in_parent: int) -> None:
        if self._current is None:
            raise RuntimeError("no container is open")
        self._current.noop_offsets.setdefault(index_in_parent, self._containers.tell())

    def fallthrough_divert(self) -> int:
        self.write(Command.DIVERT, 0, CommandFlag.DIVERT_IS_FALLTHROUGH)
        return self._containers.tell() - _UINT32.size

    def patch_fallthroughs(self, position: int) -> None:
        self._containers.set_uint32(position, self._containers.tell())

    def set_list_meta(self, list_defs: ListData) -> None:
        if list_defs.is_empty():
            return
        names = iter(list_defs.list_names())
        list_id = -1
        for named in list_defs.get_flags():
            self._lists.write(named.flag.pack())
            if named.flag.list_id != list_id:
                list_id = named.flag.list_id
                self._lists.write(next(names).encode("utf-8") + b"\0")
            self._lists.write(named.name.encode("utf-8") + b"\0")
        self._lists.write(NULL_FLAG.pack())

    def output(self, out: BinaryIO) -> None:
        """Write the complete binary story to ``out``."""
        out.write(HEADER.pack(ENDIAN_SAME, self._ink_version & _MASK, INK_BIN_VERSION))
        self._strings.write_to(out)
        out.write(b"\0")
        self._lists.write_to(out)
        out.write(NULL_FLAG.pack())

        out.write(_UINT32.pack(self._max_container_index & _MASK))
        for offset, index in self._container_map:
            out.write(_UINT32.pack(offset & _MASK))
            out.write(_UINT32.pack(index & _MASK))
        out.write(_UINT32.pack(END_MARKER))

        if self._root is not None:
            for name, container in self._named_containers("", self._root):
                out.write(_UINT32.pack(hash_string(name)))
                out.write(_UINT32.pack(container.offset))
        out.write(_UINT32.pack(END_MARKER))

        self._containers.write_to(out)
        flush = getattr(out, "flush", None)
        if flush is not None:
            flush()

    def _named_containers(
        self, name: str, context: _ContainerData
    ) -> Iterator[tuple[str, _ContainerData]]:
        for child_name in sorted(context.named_children):
            child = context.named_children[child_name]
            full_name = f"{name}.{child_name}" if name else child_name
            yield full_name, child
            yield from self._named_containers(full_name, child)
        for index in sorted(context.indexed_children):
            yield from self._named_containers(name, context.indexed_children[index])

    def _initialize(self) -> None:
        self._strings.reset()
        self._list_count = 0
        self._lists.reset()
        self._containers.reset()
        self._paths.clear()
        self._current = None
        self._root = None

    def _finalize(self) -> None:
        self._process_paths()

    def _set_container_index(self, index: int) -> None:
        if self._current is None:
            raise RuntimeError("no container is open")
        self._current.counter_index = index

    def _resolve(self, entry: _PathEntry) -> int:
        path = entry.path
        container = self._root
        if path.startswith("."):
            container = entry.context
            path = path[1:]
        if container is None:
            raise ValueError(f"cannot resolve path {entry.path!r}: no container")

        first_parent = True
        noop_offset: int | None = None
        for token in (part for part in path.split(".") if part):
            if token.isdigit() and token.isascii():
                index = int(token)
                if index in container.noop_offsets:
                    noop_offset = container.noop_offsets[index]
                    break
                child = container.indexed_children.get(index)
                if child is None:
                    raise ValueError(f"cannot resolve path {entry.path!r}: no child {index}")
                container = child
            elif token.startswith("^"):
                if not first_parent:
                    if container.parent is None:
                        raise ValueError(f"cannot resolve path {entry.path!r}: no parent")
                    container = container.parent
            else:
                child = container.named_children.get(token)
                if child is None:
                    raise ValueError(f"cannot resolve path {entry.path!r}: no child {token!r}")
                container = child
            first_parent = False

        if noop_offset is not None:
            if entry.use_count_index:
                raise ValueError("Can't count visits to a noop!")
            return noop_offset
        if entry.use_count_index:
            if container.counter_index == NO_INDEX:
                raise ValueError("No count index available for this container!")
            return container.counter_index
        return container.offset

    def _process_paths(self) -> None:
        for entry in self._paths:
            self._containers.set_uint32(entry.position, self._resolve(entry))
"""Compiler from ink JSON into emitter calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from inkbin.commands import Command, CommandFlag, command_from_string
from inkbin.emitter import NO_INDEX, Emitter
from inkbin.hashing import hash_string
from inkbin.list_data import EMPTY_FLAG, ListData, ListFlag
from inkbin.reporter import CompilationResults, Reporter

_TRACK_VISITS = 0x1
_TRACK_TURNS = 0x2


@dataclass
class _ContainerMeta:
    name: str = ""
    index_to_return: int = NO_INDEX
    record_in_container_map: bool = False
    deferred: list[tuple[Any, str]] = field(default_factory=list)


def _sorted_items(mapping: dict[str, Any]) -> list[tuple[str, Any]]:
    # Objects are visited in key order, independent of the order in the file.
    return sorted(mapping.items(), key=lambda item: item[0])


class JsonCompiler(Reporter):
    """Walks ink JSON and writes it out through an emitter."""

    def __init__(self) -> None:
        super().__init__()
        self._emitter: Emitter | None = None
        self._next_container_index = 0
        self._list_meta = ListData()

    def compile(
        self,
        data: dict[str, Any],
        emitter: Emitter,
        results: CompilationResults | None = None,
    ) -> None:
        """Compile the parsed ink JSON ``data`` into ``emitter``."""
        ink_version = int(data["inkVersion"])

        self.set_results(results)
        self._emitter = emitter
        self._next_container_index = 0
        self._list_meta = ListData()
        try:
            emitter.start(ink_version, results)

            list_defs = data.get("listDefs")
            if list_defs is not None:
                self._compile_lists_definition(list_defs)
                emitter.set_list_meta(self._list_meta)

            self._compile_container(data["root"], 0)
            emitter.finish(self._next_container_index)
        finally:
            self._emitter = None
            self._next_container_index = 0
            self.clear_results()

    @property
    def _out(self) -> Emitter:
        if self._emitter is None:
            raise RuntimeError("no compilation in progress")
        return self._emitter

    def _handle_container_metadata(self, meta: Any) -> _ContainerMeta:
        data = _ContainerMeta()
        if not isinstance(meta, dict):
            return data
        for key, value in _sorted_items(meta):
            if key == "#n":
                data.name = str(value)
            elif key == "#f":
                flags = int(value)
                visits = bool(flags & _TRACK_VISITS)
                turns = bool(flags & _TRACK_TURNS)
                if visits or turns:
                    index = self._next_container_index
                    self._next_container_index += 1
                    marker_flags = CommandFlag.NO_FLAGS
                    if visits:
                        marker_flags |= CommandFlag.CONTAINER_MARKER_TRACK_VISITS
                    if turns:
                        marker_flags |= CommandFlag.CONTAINER_MARKER_TRACK_TURNS
                    self._out.write(Command.START_CONTAINER_MARKER, index, marker_flags)
                    data.index_to_return = index
                    data.record_in_container_map = True
            else:
                data.deferred.append((value, key))
        return data

    def _compile_container(
        self, container: list[Any], index_in_parent: int, name_override: str = ""
    ) -> None:
        if not isinstance(container, list) or not container:
            raise ValueError("a container must be a non-empty array")
        out = self._out
        meta = self._handle_container_metadata(container[-1])

        position = out.start_container(index_in_parent, name_override or meta.name)
        if meta.record_in_container_map:
            out.add_start_to_container_map(position, meta.index_to_return)

        for index, item in enumerate(container[:-1]):
            self._compile_member(item, index)

        if meta.deferred:
            divert_positions = [out.fallthrough_divert()]
            for child, name in meta.deferred:
                self._compile_container(child, -1, name)
                divert_positions.append(out.fallthrough_divert())
            for offset in divert_positions:
                out.patch_fallthroughs(offset)

        if meta.index_to_return != NO_INDEX:
            out.write(Command.END_CONTAINER_MARKER, meta.index_to_return)

        end_position = out.end_container()
        if meta.record_in_container_map:
            out.add_end_to_container_map(end_position, meta.index_to_return)

    def _compile_member(self, item: Any, index: int) -> None:
        out = self._out
        if isinstance(item, list):
            self._compile_container(item, index)
        elif isinstance(item, str):
            if item.startswith("^"):
                out.write_string(Command.STR, CommandFlag.NO_FLAGS, item)
            elif item == "nop":
                out.handle_nop(index)
            else:
                self._compile_command(item)
        elif isinstance(item, bool):
            out.write(Command.BOOL, 1 if item else 0)
        elif isinstance(item, float):
            out.write(Command.FLOAT, item)
        elif isinstance(item, int):
            out.write(Command.INT, item)
        elif isinstance(item, dict):
            self._compile_complex_command(item)
        else:
            raise ValueError("Failed to container member!")

    def _compile_command(self, text: str) -> None:
        try:
            command = command_from_string(text)
        except KeyError:
            self.err(f"Unknown command '{text}'. Skipping.")
            return
        self._out.write_raw(command, CommandFlag.NO_FLAGS, b"")

    def _compile_complex_command(self, command: dict[str, Any]) -> None:
        out = self._out

        if "->" in command:
            target = command["->"]
            flag = (
                CommandFlag.DIVERT_HAS_CONDITION
                if command.get("c", False)
                else CommandFlag.NO_FLAGS
            )
            if command.get("var", False):
                out.write_variable(Command.DIVERT_TO_VARIABLE, flag, target)
            else:
                out.write_path(Command.DIVERT, flag, target)

        elif "^->" in command:
            out.write_path(Command.DIVERT_VAL, CommandFlag.NO_FLAGS, command["^->"])

        elif "->t->" in command:
            target = command["->t->"]
            if command.get("var", False):
                out.write_variable(Command.TUNNEL, CommandFlag.TUNNEL_TO_VARIABLE, target)
            else:
                out.write_path(Command.TUNNEL, CommandFlag.NO_FLAGS, target)

        elif "temp=" in command:
            flag = (
                CommandFlag.ASSIGNMENT_IS_REDEFINE
                if command.get("re", False)
                else CommandFlag.NO_FLAGS
            )
            out.write_variable(Command.DEFINE_TEMP, flag, command["temp="])

        elif "VAR=" in command:
            flag = (
                CommandFlag.ASSIGNMENT_IS_REDEFINE
                if command.get("re", False)
                else CommandFlag.NO_FLAGS
            )
            out.write_variable(Command.SET_VARIABLE, flag, command["VAR="])

        elif "^var" in command:
            if "ci" not in command:
                raise ValueError("failed to parse ci for pointer!")
            ci = int(command["ci"])
            if ci >= 255:
                raise ValueError("only support until 255 stack hight for refernces")
            out.write_variable(Command.VALUE_POINTER, ci + 1, command["^var"])

        elif "VAR?" in command:
            out.write_variable(Command.PUSH_VARIABLE_VALUE, CommandFlag.NO_FLAGS, command["VAR?"])

        elif "*" in command:
            flags = int(command.get("flg", 0))
            out.write_path(Command.CHOICE, flags, command["*"])

        elif "CNT?" in command:
            out.write_path(Command.READ_COUNT, CommandFlag.NO_FLAGS, command["CNT?"], True)

        elif "f()" in command:
            target = command["f()"]
            if command.get("var", False):
                out.write_variable(Command.FUNCTION, CommandFlag.FUNCTION_TO_VARIABLE, target)
            else:
                out.write_path(Command.FUNCTION, CommandFlag.NO_FLAGS, target)

        elif "x()" in command:
            num_args = int(command.get("exArgs", 0))
            out.write(Command.CALL_EXTERNAL, hash_string(command["x()"]), num_args)

        elif "list" in command:
            out.write_list(Command.LIST, CommandFlag.NO_FLAGS, self._list_entries(command))

        elif "#" in command:
            out.write_string(Command.TAG, CommandFlag.NO_FLAGS, command["#"])

        else:
            raise ValueError("failed to parse complex command!")

    def _list_entries(self, command: dict[str, Any]) -> list[ListFlag]:
        content = command["list"]
        if content:
            return [
                ListFlag(self._list_meta.get_lid(key.split(".", 1)[0]), int(value) - 1)
                for key, value in _sorted_items(content)
            ]
        if "origins" in command:
            return [
                ListFlag(self._list_meta.get_lid(str(origin)), -1)
                for origin in command["origins"]
            ]
        return [EMPTY_FLAG]

    def _compile_lists_definition(self, list_defs: dict[str, Any]) -> None:
        for list_name, flags in _sorted_items(list_defs):
            self._list_meta.new_list(list_name)
            for flag_name, value in _sorted_items(flags):
                self._list_meta.new_flag(flag_name, int(value))
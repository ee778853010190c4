import io
import struct
from dataclasses import dataclass

import pytest

from inkbin.commands import Command, CommandFlag
from inkbin.emitter import (
    ENDIAN_SAME,
    HEADER,
    HEADER_SIZE,
    INK_BIN_VERSION,
    BinaryEmitter,
)
from inkbin.hashing import hash_string
from inkbin.list_data import NULL_FLAG, ListData, ListFlag
from inkbin.reporter import CompilationResults

END = 0xFFFFFFFF


@dataclass
class Parts:
    header: bytes
    strings: bytes
    count: int
    container_map: list
    hashes: list
    code: bytes


def _u32(data, offset=0):
    return struct.unpack_from("<I", data, offset)[0]


def _split(data: bytes) -> Parts:
    header = data[:HEADER_SIZE]
    rest = data[HEADER_SIZE:]
    if rest[0] == 0:
        strings, rest = b"", rest[1:]
    else:
        end = rest.index(b"\0\0")
        strings, rest = rest[: end + 1], rest[end + 2 :]
    assert rest[:4] == NULL_FLAG.pack()
    rest = rest[4:]
    count = _u32(rest)
    rest = rest[4:]
    cmap = []
    while _u32(rest) != END:
        cmap.append((_u32(rest), _u32(rest, 4)))
        rest = rest[8:]
    rest = rest[4:]
    hashes = []
    while _u32(rest) != END:
        hashes.append((_u32(rest), _u32(rest, 4)))
        rest = rest[8:]
    rest = rest[4:]
    return Parts(header, strings, count, cmap, hashes, rest)


def _output(em: BinaryEmitter) -> bytes:
    buf = io.BytesIO()
    em.output(buf)
    return buf.getvalue()


def test_header_fields():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.end_container()
    em.finish(0)
    data = _output(em)
    assert data[:2] == b"\x01\x00"
    assert HEADER.unpack_from(data) == (ENDIAN_SAME, 21, INK_BIN_VERSION)


def test_empty_story_layout():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.end_container()
    em.finish(0)
    parts = _split(_output(em))
    assert parts.strings == b""
    assert parts.count == 0
    assert parts.container_map == []
    assert parts.hashes == []
    assert parts.code == b""


def test_write_string_strips_caret_and_records_position():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_string(Command.STR, CommandFlag.NO_FLAGS, "^Hello")
    em.write_string(Command.STR, CommandFlag.NO_FLAGS, "^World")
    em.end_container()
    em.finish(0)
    parts = _split(_output(em))
    assert parts.strings == b"Hello\0World\0"
    assert parts.code[:2] == bytes((Command.STR, 0))
    assert _u32(parts.code, 2) == 0
    assert _u32(parts.code, 8) == len(b"Hello\0")


def test_empty_string_stored_as_space():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_string(Command.TAG, CommandFlag.NO_FLAGS, "")
    em.end_container()
    em.finish(0)
    assert _split(_output(em)).strings == b" \0"


def test_write_variable_uses_hash():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_variable(Command.SET_VARIABLE, CommandFlag.ASSIGNMENT_IS_REDEFINE, "age")
    em.end_container()
    em.finish(0)
    code = _split(_output(em)).code
    assert code[0] == Command.SET_VARIABLE
    assert code[1] == CommandFlag.ASSIGNMENT_IS_REDEFINE
    assert _u32(code, 2) == hash_string("age")


def test_write_parameters_pack_floats_and_negative_ints():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write(Command.FLOAT, 1.5)
    em.write(Command.INT, -3)
    em.end_container()
    em.finish(0)
    code = _split(_output(em)).code
    assert code[2:6] == struct.pack("<f", 1.5)
    assert code[8:12] == struct.pack("<i", -3)


def test_write_rejects_bad_parameter():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    with pytest.raises(TypeError):
        em.write(Command.INT, "3")
    with pytest.raises(ValueError):
        em.write_raw(Command.DONE, 256)


def test_unnamed_children_keep_parent_name_in_hash_map():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.start_container(0, "")
    inner = em.start_container(-1, "inner")
    em.end_container()
    em.end_container()
    em.end_container()
    em.finish(0)
    assert _split(_output(em)).hashes == [(hash_string("inner"), inner)]


def test_relative_path_with_parent_token():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.start_container(2, "")
    em.write_path(Command.DIVERT, CommandFlag.NO_FLAGS, ".^.0")
    nested = em.start_container(0, "")
    em.write_raw(Command.DONE)
    em.end_container()
    em.end_container()
    em.end_container()
    em.finish(0)
    assert _u32(_split(_output(em)).code, 2) == nested


def test_path_to_nop():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_raw(Command.DONE)
    em.write_raw(Command.DONE)
    em.handle_nop(3)
    buf_pos = len(bytes((Command.DONE, 0))) * 2
    em.write_path(Command.DIVERT, CommandFlag.NO_FLAGS, "3")
    em.end_container()
    em.finish(0)
    code = _split(_output(em)).code
    assert _u32(code, buf_pos + 2) == buf_pos


def test_count_index_of_nop_raises():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.handle_nop(1)
    em.write_path(Command.READ_COUNT, CommandFlag.NO_FLAGS, "1", True)
    em.end_container()
    with pytest.raises(ValueError, match="noop"):
        em.finish(0)


def test_count_index_written_for_tracked_container():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_path(Command.READ_COUNT, CommandFlag.NO_FLAGS, "x", True)
    pos = em.start_container(-1, "x")
    em.add_start_to_container_map(pos, 5)
    end = em.end_container()
    em.add_end_to_container_map(end, 5)
    em.end_container()
    em.finish(6)
    parts = _split(_output(em))
    assert _u32(parts.code, 2) == 5
    assert parts.count == 6
    assert parts.container_map == [(pos, 5), (end, 5)]


def test_missing_count_index_raises():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_path(Command.READ_COUNT, CommandFlag.NO_FLAGS, "x", True)
    em.start_container(-1, "x")
    em.end_container()
    em.end_container()
    with pytest.raises(ValueError, match="count index"):
        em.finish(0)


def test_unknown_path_raises():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_path(Command.DIVERT, CommandFlag.NO_FLAGS, "nowhere")
    em.end_container()
    with pytest.raises(ValueError):
        em.finish(0)


def test_fallthrough_divert_is_patched():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    position = em.fallthrough_divert()
    em.write_raw(Command.DONE)
    em.write_raw(Command.END)
    em.patch_fallthroughs(position)
    em.end_container()
    em.finish(0)
    code = _split(_output(em)).code
    assert code[0] == Command.DIVERT
    assert code[1] == CommandFlag.DIVERT_IS_FALLTHROUGH
    assert _u32(code, position) == len(code)


def test_out_of_order_container_map_warns():
    results = CompilationResults()
    em = BinaryEmitter()
    em.start(21, results)
    em.start_container(0, "")
    em.add_start_to_container_map(10, 0)
    em.add_end_to_container_map(5, 0)
    assert len(results.warnings) == 1
    assert "out of order" in results.warnings[0]


def test_write_list_entries_and_ids():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_list(Command.LIST, CommandFlag.NO_FLAGS, [ListFlag(0, 1)])
    em.write_list(Command.LIST, CommandFlag.NO_FLAGS, [])
    em.end_container()
    em.finish(0)
    data = _output(em)
    expected_lists = ListFlag(0, 1).pack() + NULL_FLAG.pack() + NULL_FLAG.pack()
    assert data[HEADER_SIZE + 1 : HEADER_SIZE + 1 + len(expected_lists)] == expected_lists
    code_start = len(data) - 12
    assert _u32(data, code_start + 2) == 0
    assert _u32(data, code_start + 8) == 1


def test_set_list_meta_layout():
    lists = ListData()
    lists.new_list("colors")
    lists.new_flag("red", 1)
    lists.new_flag("blue", 2)
    em = BinaryEmitter()
    em.start(21)
    em.set_list_meta(lists)
    em.start_container(0, "")
    em.end_container()
    em.finish(0)
    data = _output(em)
    expected = (
        ListFlag(0, 0).pack()
        + b"colors\0"
        + b"red\0"
        + ListFlag(0, 1).pack()
        + b"blue\0"
        + NULL_FLAG.pack()
        + NULL_FLAG.pack()
    )
    assert data[HEADER_SIZE + 1 : HEADER_SIZE + 1 + len(expected)] == expected


def test_empty_list_meta_writes_nothing():
    em = BinaryEmitter()
    em.start(21)
    em.set_list_meta(ListData())
    em.start_container(0, "")
    em.end_container()
    em.finish(0)
    assert _split(_output(em)).code == b""


def test_start_resets_previous_state():
    em = BinaryEmitter()
    em.start(21)
    em.start_container(0, "")
    em.write_string(Command.STR, CommandFlag.NO_FLAGS, "^old")
    em.add_start_to_container_map(0, 0)
    em.end_container()
    em.finish(1)
    em.start(21)
    em.start_container(0, "")
    em.end_container()
    em.finish(0)
    parts = _split(_output(em))
    assert parts.strings == b""
    assert parts.container_map == []
    assert parts.code == b""
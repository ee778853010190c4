import io

import pytest

from inkbin.binary_stream import BinaryStream


def test_new_stream_is_empty():
    stream = BinaryStream()
    assert stream.tell() == 0
    assert stream.getvalue() == b""


def test_write_returns_length_and_advances():
    stream = BinaryStream()
    assert stream.write(b"hello") == 5
    assert stream.write(bytearray(b"!")) == 1
    assert stream.tell() == 6
    assert stream.getvalue() == b"hello!"


def test_write_string_is_null_terminated():
    stream = BinaryStream()
    assert stream.write_string("abc") == 4
    assert stream.getvalue() == b"abc\0"


def test_empty_string_is_written_as_space():
    stream = BinaryStream()
    assert stream.write_string("") == 2
    assert stream.getvalue() == b" \0"


def test_write_uint32_is_little_endian():
    stream = BinaryStream()
    assert stream.write_uint32(1) == 4
    assert stream.getvalue() == b"\x01\x00\x00\x00"


def test_write_uint32_all_ones():
    stream = BinaryStream()
    stream.write_uint32(0xFFFFFFFF)
    assert stream.getvalue() == b"\xff\xff\xff\xff"


def test_set_uint32_patches_placeholder():
    stream = BinaryStream()
    stream.write(b"ab")
    stream.write_uint32(0)
    stream.write(b"cd")
    stream.set_uint32(2, 0xFFFFFFFF)
    assert stream.getvalue() == b"ab\xff\xff\xff\xffcd"
    assert stream.tell() == 8


def test_large_writes_and_patches_across_boundaries():
    stream = BinaryStream()
    payload = bytes(range(256)) * 3
    assert stream.write(payload) == len(payload)
    stream.set(250, b"Z" * 20)
    expected = payload[:250] + b"Z" * 20 + payload[270:]
    assert stream.getvalue() == expected


def test_set_out_of_range_raises():
    stream = BinaryStream()
    stream.write(b"abc")
    with pytest.raises(IndexError):
        stream.set(2, b"xy")
    with pytest.raises(IndexError):
        stream.set(-1, b"x")


def test_write_to_copies_contents():
    stream = BinaryStream()
    stream.write_string("line")
    out = io.BytesIO()
    stream.write_to(out)
    assert out.getvalue() == stream.getvalue()


def test_reset_clears_data():
    stream = BinaryStream()
    stream.write(b"data")
    stream.reset()
    assert stream.tell() == 0
    assert stream.getvalue() == b""
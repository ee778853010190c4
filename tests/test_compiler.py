import io
import json

from inkbin.commands import Command
from inkbin.compiler import compile_json, run
from inkbin.emitter import ENDIAN_SAME, HEADER, HEADER_SIZE, INK_BIN_VERSION
from inkbin.reporter import CompilationResults

STORY = {"inkVersion": 21, "root": [["^Hello", "\n", "done", None], "done", None]}


def test_header_and_string_table():
    binary = compile_json(STORY)
    assert binary[:HEADER_SIZE] == HEADER.pack(ENDIAN_SAME, 21, INK_BIN_VERSION)
    assert binary[HEADER_SIZE : HEADER_SIZE + 6] == b"Hello\0"


def test_instructions_are_last():
    binary = compile_json(STORY)
    assert binary.endswith(bytes((Command.DONE, 0)))


def test_compile_is_deterministic():
    assert compile_json(STORY) == compile_json(json.loads(json.dumps(STORY)))


def test_run_dict_to_stream():
    out = io.BytesIO()
    run(STORY, out)
    assert out.getvalue() == compile_json(STORY)


def test_run_file_to_file(tmp_path):
    source = tmp_path / "story.json"
    source.write_text(json.dumps(STORY), encoding="utf-8")
    destination = tmp_path / "story.bin"
    run(str(source), destination)
    assert destination.read_bytes() == compile_json(STORY)


def test_run_text_stream_source():
    out = io.BytesIO()
    run(io.StringIO(json.dumps(STORY)), out)
    assert out.getvalue() == compile_json(STORY)


def test_run_binary_stream_source_with_bom():
    out = io.BytesIO()
    run(io.BytesIO(b"\xef\xbb\xbf" + json.dumps(STORY).encode("utf-8")), out)
    assert out.getvalue() == compile_json(STORY)


def test_results_collect_errors():
    results = CompilationResults()
    compile_json({"inkVersion": 21, "root": ["nonsense", None]}, results)
    assert results.errors == ["Unknown command 'nonsense'. Skipping."]
    assert results.warnings == []
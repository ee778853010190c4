"""Entry points that compile ink JSON into the binary story format."""

from __future__ import annotations

import io
import json
import os
from typing import IO, Any, BinaryIO, Union

from inkbin.emitter import BinaryEmitter
from inkbin.json_compiler import JsonCompiler
from inkbin.reporter import CompilationResults

Source = Union[dict, str, "os.PathLike[str]", IO[Any]]
Destination = Union[str, "os.PathLike[str]", BinaryIO]


def compile_json(data: dict[str, Any], results: CompilationResults | None = None) -> bytes:
    """Compile parsed ink JSON and return the binary story."""
    emitter = BinaryEmitter()
    JsonCompiler().compile(data, emitter, results)
    buffer = io.BytesIO()
    emitter.output(buffer)
    return buffer.getvalue()


def _load(source: Source) -> dict[str, Any]:
    if isinstance(source, dict):
        return source
    if isinstance(source, (str, os.PathLike)):
        with open(source, encoding="utf-8-sig") as handle:
            return json.load(handle)
    text = source.read()
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8-sig")
    return json.loads(text)


def run(
    source: Source,
    destination: Destination,
    results: CompilationResults | None = None,
) -> None:
    """Compile ink JSON from ``source`` into ``destination``.

    ``source`` is parsed JSON, a file path or a readable stream;
    ``destination`` is a file path or a writable binary stream.
    """
    binary = compile_json(_load(source), results)
    if isinstance(destination, (str, os.PathLike)):
        with open(destination, "wb") as handle:
            handle.write(binary)
    else:
        destination.write(binary)
        flush = getattr(destination, "flush", None)
        if flush is not None:
            flush()
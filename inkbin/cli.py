"""Command line front end: compile ink stories into the binary format."""

from __future__ import annotations

import os
import re
import shlex
import subprocess
import sys
from dataclasses import dataclass

from inkbin import compiler
from inkbin.reporter import CompilationResults

_EXTENSION = re.compile(r"\.[^.]+\Z")
_EXPECTATION = re.compile(
    r"/\*\*[ \t]*(\d+(:[^\n\r\u2028\u2029]+)?)?[ \t]*\n([^\r\u2028\u2029]*?)\*\*/"
)

USAGE = (
    "Usage: inkcpp_cl <options> <json file>\n"
    "\t-o <filename>:\tOutput file name\n"
    "\t-p:\tPlay mode\n"
)


@dataclass(frozen=True)
class Expectation:
    """One expected block of story output, optionally followed by a choice."""

    output: str
    choice: int | None = None
    choice_text: str = ""


def inklecate(ink_filename: str, json_filename: str) -> None:
    """Compile an ``.ink`` file to ink JSON with the external inklecate tool.

    The command is taken from the ``INKLECATE`` environment variable and
    defaults to ``inklecate``.
    """
    command = os.environ.get("INKLECATE") or "inklecate"
    args = shlex.split(command) + ["-o", str(json_filename), str(ink_filename)]
    try:
        completed = subprocess.run(args, check=False)
    except OSError as exc:
        raise RuntimeError(f"Inklecate could not be started: {exc}") from exc
    if completed.returncode != 0:
        raise RuntimeError(f"Inklecate failed with exit code {completed.returncode}")


def parse_expectations(text: str) -> list[Expectation]:
    """Extract the expected-output blocks embedded in an ink test file.

    A block reads ``/** [index[:choice text]]`` on its first line, then the
    expected output, closed by ``**/``.
    """
    result: list[Expectation] = []
    for match in _EXPECTATION.finditer(text):
        head, choice_part, output = match.group(1), match.group(2), match.group(3)
        if head is None:
            result.append(Expectation(output))
            continue
        digits = re.match(r"\d+", head)
        choice = int(digits.group(0)) if digits else 0
        choice_text = choice_part[1:] if choice_part else ""
        result.append(Expectation(output, choice, choice_text))
    return result


def _replace_extension(filename: str, extension: str) -> str:
    return _EXTENSION.sub(extension, filename)


def default_output_name(input_filename: str) -> str:
    """Return the binary file name derived from ``input_filename``."""
    return _replace_extension(input_filename, ".bin")


def _is_ink_file(filename: str) -> bool:
    position = filename.find(".ink")
    return position >= 0 and position == len(filename) - 4


def main(argv: list[str] | None = None) -> int:
    """Run the command line tool and return its exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(USAGE)
        return 1

    output_filename = ""
    play_mode = False
    test_mode = False
    options = args[:-1]
    position = 0
    while position < len(options):
        option = options[position]
        if option == "-o":
            output_filename = args[position + 1]
            position += 1
        elif option == "-p":
            play_mode = True
        elif option in ("-t", "-td"):
            test_mode = True
        else:
            print(f"Unrecognized option: '{option}'", file=sys.stderr)
        position += 1

    input_filename = args[-1]

    if test_mode:
        print("Test mode is not supported: no story runtime is available", file=sys.stderr)
        return 1

    if not output_filename:
        output_filename = default_output_name(input_filename)

    if _is_ink_file(input_filename):
        json_filename = _replace_extension(input_filename, ".tmp")
        try:
            inklecate(input_filename, json_filename)
        except Exception as exc:  # noqa: BLE001 - reported to the user
            print(f"Inklecate Error: {exc}", file=sys.stderr)
            return 1
        input_filename = json_filename

    results = CompilationResults()
    try:
        compiler.run(input_filename, output_filename, results)
    except Exception as exc:  # noqa: BLE001 - reported to the user
        print(f"Unhandled InkBin compiler exception: {exc}", file=sys.stderr)
        return 1

    for warning in results.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    for error in results.errors:
        print(f"ERROR: {error}", file=sys.stderr)

    if results.errors and play_mode:
        print("Cancelling play mode. Errors detected in compilation", file=sys.stderr)
        return -1

    if not play_mode:
        return 0

    print("Play mode is not supported: no story runtime is available", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
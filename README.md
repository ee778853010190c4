# inkbin

`inkbin` turns ink stories, in the JSON form that the `inklecate` compiler
produces, into a compact binary file. It can also load such a binary and walk
its string table, its container map and its container hash table.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

```
inkbin [options] <file>
```

The last argument is always the input file. Run without arguments, the
command prints a usage summary and exits with status 1.

Options:

- `-o <filename>`: name of the output file. If it is left out, the input's
  extension is replaced by `.bin`.
- `-p`: play mode. The story is compiled first; if compilation reported
  errors, play mode is cancelled and the exit status is -1.
- `-t`, `-td`: test mode. Accepted, but reported as unsupported (exit
  status 1).

Unrecognised options are reported on standard error and otherwise ignored.

If the input ends in `.ink`, it is first compiled to JSON with `inklecate`,
written next to the input with the extension `.tmp`. The command that is run
is taken from the `INKLECATE` environment variable, or is `inklecate` if that
variable is not set.

Example:

```
inkbin -o story.bin story.json
```

Warnings and errors from the compiler go to standard error, each starting with
`WARNING:` or `ERROR:`. Errors such as unknown commands are recorded but do
not stop the output file from being written; the exit status is then still 0
unless play mode was asked for. Exceptions during compilation are reported
and give exit status 1.

## Library use

Compile a parsed JSON document in memory:

```python
import json
from inkbin.compiler import compile_json
from inkbin.reporter import CompilationResults

with open("story.json", encoding="utf-8") as handle:
    data = json.load(handle)

results = CompilationResults()
binary = compile_json(data, results)
for warning in results.warnings:
    print("warning:", warning)
```

`inkbin.compiler.run(source, destination, results=None)` compiles from parsed
JSON, a file path or a readable stream into a file path or a writable binary
stream:

```python
from inkbin.compiler import run

run("story.json", "story.bin")
```

Load a compiled story and inspect it:

```python
from inkbin.story import Story

story = Story.from_file("story.bin")
print(story.ink_version, story.num_containers)
for index, offset in story.iterate_containers():
    print(index, offset)
print(story.find_offset_for("knot"))   # offset of a named container, or None
print(story.string(0))                  # first entry of the string table
```

`Story.from_binary(data)` loads from bytes in memory; a malformed file raises
`ValueError`. `Story` can be used as a context manager, which invalidates its
`RefBlock` on exit.

Other building blocks:

- `inkbin.hashing.hash_string` is the 32-bit name hash used for variables and
  container paths.
- `inkbin.commands` holds `Command`, `CommandFlag` and `command_from_string`.
- `inkbin.emitter.BinaryEmitter` writes containers, paths, strings and lists
  and produces the binary with `output(stream)`.
- `inkbin.json_compiler.JsonCompiler` walks ink JSON and drives an emitter.
- `inkbin.list_data.ListData` collects list definitions; `ListFlag` packs a
  single list flag.
- `inkbin.values` and `inkbin.string_operations` model runtime values and the
  string operators (`add`, `is_equal`, `not_equal`, `has`, `hasnt`).
- `inkbin.string_table.StringTable` tracks dynamic strings with mark-and-sweep
  collection.
- `inkbin.story.RefBlock` and `StoryPtr` count references to a story and the
  objects made from it.

## What it does not do

`inkbin` has no story runtime. It cannot play a story: there is no runner
that produces text, tags or choices, and no global variable store. For the
same reason the command line's play and test modes stop after compilation
and report that they are not supported.
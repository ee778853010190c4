"""Instruction set of compiled ink stories."""

from __future__ import annotations

from enum import IntEnum, IntFlag


class Command(IntEnum):
    """Instructions understood by the runtime, in wire order."""

    STR = 0
    INT = 1
    BOOL = 2
    FLOAT = 3
    VALUE_POINTER = 4
    DIVERT_VAL = 5
    LIST = 6
    NEWLINE = 7
    GLUE = 8
    VOID = 9
    TAG = 10
    DIVERT = 11
    DIVERT_TO_VARIABLE = 12
    TUNNEL = 13
    FUNCTION = 14
    DONE = 15
    END = 16
    TUNNEL_RETURN = 17
    FUNCTION_RETURN = 18
    DEFINE_TEMP = 19
    SET_VARIABLE = 20
    START_EVAL = 21
    END_EVAL = 22
    OUTPUT = 23
    POP = 24
    DUPLICATE = 25
    PUSH_VARIABLE_VALUE = 26
    VISIT = 27
    READ_COUNT = 28
    SEQUENCE = 29
    SEED = 30
    START_STR = 31
    END_STR = 32
    CHOICE = 33
    THREAD = 34
    LIST_RANGE = 35
    ADD = 36
    SUBTRACT = 37
    DIVIDE = 38
    MULTIPLY = 39
    MOD = 40
    RANDOM = 41
    IS_EQUAL = 42
    GREATER_THAN = 43
    LESS_THAN = 44
    GREATER_THAN_EQUALS = 45
    LESS_THAN_EQUALS = 46
    NOT_EQUAL = 47
    AND = 48
    OR = 49
    MIN = 50
    MAX = 51
    HAS = 52
    HASNT = 53
    INTERSECTION = 54
    LIST_INT = 55
    NOT = 56
    NEGATE = 57
    LIST_COUNT = 58
    LIST_MIN = 59
    LIST_MAX = 60
    READ_COUNT_VAR = 61
    TURNS = 62
    LIST_RANDOM = 63
    FLOOR = 64
    CEILING = 65
    INT_CAST = 66
    LIST_ALL = 67
    LIST_INVERT = 68
    LIST_VALUE = 69
    CHOICE_COUNT = 70
    START_CONTAINER_MARKER = 71
    END_CONTAINER_MARKER = 72
    CALL_EXTERNAL = 73

    @property
    def text(self) -> str:
        """The string that names this command in ink JSON."""
        return _TEXTS[self.value]


class CommandFlag(IntFlag):
    """Per-instruction flags; their meaning depends on the command."""

    NO_FLAGS = 0

    CHOICE_HAS_CONDITION = 1 << 0
    CHOICE_HAS_START_CONTENT = 1 << 1
    CHOICE_HAS_CHOICE_ONLY_CONTENT = 1 << 2
    CHOICE_IS_INVISIBLE_DEFAULT = 1 << 3
    CHOICE_IS_ONCE_ONLY = 1 << 4

    DIVERT_HAS_CONDITION = 1 << 0
    DIVERT_IS_FALLTHROUGH = 1 << 1

    CONTAINER_MARKER_TRACK_VISITS = 1 << 0
    CONTAINER_MARKER_TRACK_TURNS = 1 << 1
    CONTAINER_MARKER_ONLY_FIRST = 1 << 2

    ASSIGNMENT_IS_REDEFINE = 1 << 0

    FUNCTION_TO_VARIABLE = 1 << 0
    TUNNEL_TO_VARIABLE = 1 << 0


_TEXTS: tuple[str, ...] = (
    "inkcpp_STR",
    "inkcpp_INT",
    "inkcpp_BOOL",
    "inkcpp_FLOAT",
    "inkcpp_VALUE_POINTER",
    "inkcpp_DIVERT_VAL",
    "inkcpp_LIST",
    "\n",
    "<>",
    "void",
    "#",
    "inkcpp_DIVERT",
    "inkcpp_DIVERT_TO_VARIABLE",
    "inkcpp_TUNNEL",
    "inkcpp_FUNCTION",
    "done",
    "end",
    "->->",
    "~ret",
    "inkcpp_DEFINE_TEMP",
    "inkcpp_SET_VARIABLE",
    "ev",
    "/ev",
    "out",
    "pop",
    "du",
    "inkcpp_PUSH_VARIABLE_VALUE",
    "visit",
    "inkcpp_READ_COUNT",
    "seq",
    "srnd",
    "str",
    "/str",
    "inkcpp_CHOICE",
    "thread",
    "range",
    "+",
    "-",
    "/",
    "*",
    "%",
    "rnd",
    "==",
    ">",
    "<",
    ">=",
    "<=",
    "!=",
    "&&",
    "||",
    "MIN",
    "MAX",
    "?",
    "!?",
    "L^",
    "listInt",
    "!",
    "~",
    "LIST_COUNT",
    "LIST_MIN",
    "LIST_MAX",
    "readc",
    "turns",
    "lrnd",
    "FLOOR",
    "CEILING",
    "INT",
    "LIST_ALL",
    "LIST_INVERT",
    "LIST_VALUE",
    "choiceCnt",
    "START_CONTAINER",
    "END_CONTAINER",
    "CALL_EXTERNAL",
)

if len(_TEXTS) != len(Command):
    raise RuntimeError("command strings must match the Command enumeration")

_BY_TEXT: dict[str, Command] = {text: Command(index) for index, text in enumerate(_TEXTS)}


def command_from_string(text: str) -> Command:
    """Return the command named ``text``; raise KeyError if there is none."""
    try:
        return _BY_TEXT[text]
    except KeyError:
        raise KeyError(f"unknown command {text!r}") from None
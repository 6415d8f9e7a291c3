"""String enums shared across uservars.

Every enum here carries a docstring per member; the values are the exact
strings used in the JSON declarations.
"""

from enum import StrEnum
from typing import Self


class StrEnumWithDoc(StrEnum):
    """Base class for string enums with docstrings.

    Implementation based on this article: https://guicommits.com/add-docstrings-python-enum-members/
    """

    def __new__(cls, value: str, doc: str = "") -> Self:
        """Create a new enum member with a docstring."""
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.__doc__ = doc
        return obj


class VarType(StrEnumWithDoc):
    """Discriminant of a variable declaration."""

    BASIC = "basic", "A single value: literal, reference or inline expression."
    LIST = "list", "An ordered sequence of values, list references are flattened."
    TABLE = "table", "A decision table picking one output by ordered conditions."
    EXPRESSION = "expression", "An arithmetic expression over other variables."


class BasicType(StrEnumWithDoc):
    """How the bare string value of a basic variable is read."""

    VAR = "var", "The string is a reference to another variable."
    LITERAL = "literal", "The string is used verbatim."


class Comparison(StrEnumWithDoc):
    """Operator of a table condition."""

    EQ = "eq", "Equal; lists compare as multisets."
    LT = "lt", "Numerically less than; lists count their elements."
    GT = "gt", "Numerically greater than; lists count their elements."
    IN = "in", "Contained in the right-hand list."


class Priority(StrEnumWithDoc):
    """Which passing table row wins."""

    FIRST = "first", "The lowest-index passing row."
    LAST = "last", "The highest-index passing row."


class ResultForm(StrEnumWithDoc):
    """Shape of a cached evaluation result."""

    PLAIN = "plain", "The value itself."
    TRACE = "trace", "The fully annotated table trace."


class Sentinel(StrEnumWithDoc):
    """Marker strings embedded in evaluation results.

    Members are ``str`` instances, so they compare equal to their text, but
    ``isinstance(value, Sentinel)`` tells them apart from a literal that happens
    to contain the same text.
    """

    MISSING_REFERENCE = "[MISSING REFERENCE]", "The reference points at a path with nothing stored."
    POINTS_TO_SCOPE = "[VARIABLE POINTS TO SCOPE]", "The reference points at a scope, not a variable."
    CIRCULAR_DEPENDENCY = "[CIRCULAR DEPENDENCY]", "Following the reference leads back to a variable being evaluated."
    NOT_IMPLEMENTED = "[NOT IMPLEMENTED]", "The variable kind is not known to this version."
    MAX_DEPTH_EXCEEDED = "[MAX DEPTH EXCEEDED]", "The reference chain is deeper than the configured limit."
    EXPRESSION_ERROR = "[EXPRESSION ERROR]", "The expression text could not be parsed or evaluated."


class TaggedSentinel(str):
    """Sentinel text that names the offending path, e.g. ``[MISSING scope.name]``."""

    __slots__ = ()


def missing_path(path: str) -> TaggedSentinel:
    """Sentinel for a missing reference inside a list or an expression."""
    return TaggedSentinel(f"[MISSING {path}]")


def list_path(path: str) -> TaggedSentinel:
    """Sentinel for a reference that yields a list where a single value is needed."""
    return TaggedSentinel(f"[LIST {path}]")


def is_sentinel(value: object) -> bool:
    """Check whether an evaluated value signals a resolution anomaly."""
    return isinstance(value, Sentinel | TaggedSentinel)

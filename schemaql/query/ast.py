# Copyright 2019-present Kensho Technologies, LLC.
"""Immutable call tree produced by the query parser."""
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


# Lexical kinds of argument values.
NAME_ARGUMENT = "NAME"
NUMBER_ARGUMENT = "NUMBER"
STRING_ARGUMENT = "STRING"
LITERAL_ARGUMENT = "LITERAL"

ArgumentValue = Union[str, int, float]


@dataclass(frozen=True)
class SourceLocation:
    """A 1-based position within the query text."""

    line: int
    column: int

    def __str__(self) -> str:
        """Return a human-readable representation of the location."""
        return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class Argument:
    """A literal argument of a call, optionally given by name as in "first: 10"."""

    value: ArgumentValue

    # One of NAME_ARGUMENT, NUMBER_ARGUMENT, STRING_ARGUMENT or LITERAL_ARGUMENT.
    kind: str

    # None for positional arguments.
    name: Optional[str] = None

    location: Optional[SourceLocation] = field(default=None, compare=False)

    @property
    def is_positional(self) -> bool:
        """Return True if the argument was given without a name."""
        return self.name is None


@dataclass(frozen=True)
class Call:
    """A named call with arguments and nested selections.

    Top-level calls of a query and the field selections nested within them share this shape:
    a selection is a call made in the context of the enclosing call's result.
    """

    name: str
    arguments: Tuple[Argument, ...] = ()
    selections: Tuple["Call", ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False)

    @property
    def positional_arguments(self) -> Tuple[Argument, ...]:
        """Return the arguments given without a name, in order."""
        return tuple(argument for argument in self.arguments if argument.is_positional)

    @property
    def named_arguments(self) -> Tuple[Argument, ...]:
        """Return the arguments given with a name, in order."""
        return tuple(argument for argument in self.arguments if not argument.is_positional)

    def describe_location(self) -> str:
        """Return a suffix for error messages pointing at the call, if its location is known."""
        if self.location is None:
            return ""
        return f" ({self.location})"


@dataclass(frozen=True)
class Query:
    """A parsed query: an ordered, non-empty sequence of top-level calls."""

    calls: Tuple[Call, ...]

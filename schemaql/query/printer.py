# Copyright 2017-present Kensho Technologies, LLC.
"""Canonical text representation of parsed queries."""
from decimal import Decimal
import json
from typing import List, Union

from .ast import NUMBER_ARGUMENT, STRING_ARGUMENT, Argument, Call, Query
from .parser import parse_query


INDENTATION = "    "


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    # Exponent notation is not part of the query language, so floats are written out in full.
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


def _format_argument(argument: Argument) -> str:
    if argument.kind == STRING_ARGUMENT:
        value = json.dumps(argument.value)
    elif argument.kind == NUMBER_ARGUMENT:
        value = _format_number(argument.value)
    else:
        value = str(argument.value)

    if argument.is_positional:
        return value
    return f"{argument.name}: {value}"


def _print_call(call: Call, depth: int, lines: List[str]) -> None:
    line = INDENTATION * depth + call.name
    if call.arguments:
        line += "({})".format(", ".join(_format_argument(argument) for argument in call.arguments))

    if not call.selections:
        lines.append(line)
        return

    lines.append(line + " {")
    for selection in call.selections:
        _print_call(selection, depth + 1, lines)
    lines.append(INDENTATION * depth + "}")


def print_query(query: Query) -> str:
    """Return the canonical text of the query: one selection per line, indented by four spaces.

    Parsing the returned text produces a call tree equal to the given one.
    """
    lines: List[str] = []
    for call in query.calls:
        _print_call(call, 0, lines)
    return "\n".join(lines) + "\n"


def pretty_print_query(query_text: str) -> str:
    """Parse the query text, and return it in canonical form."""
    return print_query(parse_query(query_text))

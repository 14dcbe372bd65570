# Copyright 2017-present Kensho Technologies, LLC.
"""Common helpers for reading call arguments during compilation."""
from typing import Collection, Dict, Mapping, Tuple

from ..exceptions import QueryCompilationError
from ..query.ast import NAME_ARGUMENT, NUMBER_ARGUMENT, STRING_ARGUMENT, Argument, Call
from ..schema.scalars import BOOLEAN_SCALAR_NAME, ID_SCALAR_NAME, coerce_scalar_value
from .plan import Pagination


FIRST_ARGUMENT_NAME = "first"
AFTER_ARGUMENT_NAME = "after"
PAGINATION_ARGUMENT_NAMES = frozenset({FIRST_ARGUMENT_NAME, AFTER_ARGUMENT_NAME})


def get_positional_arguments(call: Call, expected_count: int) -> Tuple[Argument, ...]:
    """Return the positional arguments of the call, asserting that there are exactly so many."""
    positional_arguments = call.positional_arguments
    if len(positional_arguments) != expected_count:
        raise QueryCompilationError(
            f'"{call.name}" expects {expected_count} positional argument(s), but got '
            f"{len(positional_arguments)}{call.describe_location()}."
        )
    return positional_arguments


def get_named_arguments(call: Call, allowed_names: Collection[str]) -> Dict[str, Argument]:
    """Return a dict of name -> argument for the named arguments of the call.

    Raises:
        QueryCompilationError: if the call has a named argument that is not allowed
    """
    named_arguments: Dict[str, Argument] = {}
    for argument in call.named_arguments:
        if argument.name not in allowed_names:
            raise QueryCompilationError(
                f'"{call.name}" does not accept an argument named "{argument.name}"'
                f"{call.describe_location()}. Allowed names: {sorted(allowed_names)}"
            )
        named_arguments[argument.name] = argument
    return named_arguments


def get_name_argument(call: Call, argument: Argument, description: str) -> str:
    """Return the value of an argument that must be written as a bare name, e.g. a type name."""
    if argument.kind != NAME_ARGUMENT:
        raise QueryCompilationError(
            f'Expected {description} argument of "{call.name}" to be a name, '
            f"but got {repr(argument.value)}{call.describe_location()}."
        )
    return str(argument.value)


def get_text_argument(call: Call, argument: Argument, description: str) -> str:
    """Return the value of an argument that may be written as a bare name or a quoted string."""
    if argument.kind not in (NAME_ARGUMENT, STRING_ARGUMENT):
        raise QueryCompilationError(
            f'Expected {description} argument of "{call.name}" to be a name or a string, '
            f"but got {repr(argument.value)}{call.describe_location()}."
        )
    return str(argument.value)


def get_id_argument(argument: Argument) -> str:
    """Return the value of an argument holding a Node id, as a string."""
    return coerce_scalar_value(ID_SCALAR_NAME, argument.value)


def get_boolean_argument(argument: Argument) -> bool:
    """Return the value of an argument holding "true" or "false"."""
    return coerce_scalar_value(BOOLEAN_SCALAR_NAME, argument.value)


def get_pagination(call: Call, named_arguments: Mapping[str, Argument]) -> Pagination:
    """Return the pagination described by the "first" and "after" arguments, if given."""
    first = None
    first_argument = named_arguments.get(FIRST_ARGUMENT_NAME)
    if first_argument is not None:
        first = first_argument.value
        if first_argument.kind != NUMBER_ARGUMENT or not isinstance(first, int) or first < 0:
            raise QueryCompilationError(
                f'Expected "{FIRST_ARGUMENT_NAME}" argument of "{call.name}" to be a '
                f"non-negative integer, but got {repr(first)}{call.describe_location()}."
            )

    after = None
    after_argument = named_arguments.get(AFTER_ARGUMENT_NAME)
    if after_argument is not None:
        after = get_id_argument(after_argument)

    return Pagination(first=first, after=after)

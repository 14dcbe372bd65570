# Copyright 2017-present Kensho Technologies, LLC.
"""Registry of the built-in scalar types that schema fields may be declared with."""
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Mapping

# C-based module confuses pylint, which is why we disable the check below.
from ciso8601 import parse_datetime  # pylint: disable=no-name-in-module
from graphql import (
    GraphQLBoolean,
    GraphQLError,
    GraphQLFloat,
    GraphQLID,
    GraphQLInt,
    GraphQLScalarType,
    GraphQLString,
)

from ..exceptions import QueryCompilationError


def _unused_function(*args: Any, **kwargs: Any) -> None:
    """Must not be called. Placeholder for functions that are required but aren't used."""
    raise NotImplementedError(
        "The function you tried to call is not implemented, args / kwargs: "
        "{} {}".format(args, kwargs)
    )


def _serialize_datetime(value: Any) -> str:
    """Serialize a DateTime object to its proper ISO-8601 representation."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.isoformat()
    else:
        raise ValueError(
            f"Expected a timezone-naive datetime object. Got {value} of type {type(value)} instead."
        )


def _parse_datetime_value(value: Any) -> datetime:
    """Deserialize a DateTime object from a date/datetime or a ISO-8601 string representation."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value
    elif isinstance(value, str):
        dt = parse_datetime(value)  # This will raise ValueError in case of bad ISO 8601 formatting.
        if dt.tzinfo is not None:
            raise ValueError(
                f"Expected a timezone-naive datetime value, but got a timezone-aware datetime "
                f"string. This is not supported, since discarding the timezone component would "
                f"result in an implicit loss of precision. Received value {repr(value)}, "
                f"parsed as {dt}."
            )

        return dt
    elif type(value) == date:
        # The date type is a supertype of datetime. We check for exact type equality
        # rather than using isinstance(), to avoid having this branch get hit
        # by timezone-aware datetimes (i.e. ones that fail the value.tzinfo is None check above).
        return datetime(value.year, value.month, value.day)
    else:
        raise ValueError(
            f"Expected a timezone-naive datetime or an ISO-8601 string representation parseable "
            f"by the ciso8601 library. Got {value} of type {type(value)} instead."
        )


GraphQLDateTime = GraphQLScalarType(
    name="DateTime",
    description=(
        "The `DateTime` scalar type represents timezone-naive timestamps with up to microsecond "
        "accuracy. Values are serialized following the ISO-8601 datetime format specification, "
        'for example "2017-03-21T12:34:56.012345" or "2017-03-21T12:34:56".'
    ),
    serialize=_serialize_datetime,
    parse_value=_parse_datetime_value,
    parse_literal=_unused_function,  # Query arguments are coerced via parse_value() instead.
)


ID_SCALAR_NAME = "id"
STRING_SCALAR_NAME = "string"
INT_SCALAR_NAME = "int"
FLOAT_SCALAR_NAME = "float"
BOOLEAN_SCALAR_NAME = "boolean"
DATETIME_SCALAR_NAME = "datetime"

# Scalar names as they appear in field definitions -> the GraphQL scalar implementing them.
SCALAR_TYPES: Mapping[str, GraphQLScalarType] = MappingProxyType(
    {
        ID_SCALAR_NAME: GraphQLID,
        STRING_SCALAR_NAME: GraphQLString,
        INT_SCALAR_NAME: GraphQLInt,
        FLOAT_SCALAR_NAME: GraphQLFloat,
        BOOLEAN_SCALAR_NAME: GraphQLBoolean,
        DATETIME_SCALAR_NAME: GraphQLDateTime,
    }
)

_BOOLEAN_LITERALS = MappingProxyType({"true": True, "false": False})


def is_scalar_type_name(type_name: Any) -> bool:
    """Return True if the given name is the name of a built-in scalar type."""
    return isinstance(type_name, str) and type_name in SCALAR_TYPES


def coerce_scalar_value(scalar_name: str, value: Any) -> Any:
    """Coerce a query argument value into the Python value of the given scalar type.

    Args:
        scalar_name: name of the scalar type, a key of SCALAR_TYPES
        value: the argument value as produced by the query parser: a str, int or float

    Returns:
        the coerced value, e.g. a datetime object for a "datetime" scalar

    Raises:
        QueryCompilationError: if the value cannot represent a value of the given scalar type
    """
    scalar_type = SCALAR_TYPES.get(scalar_name)
    if scalar_type is None:
        raise AssertionError(f"Attempting to coerce a value to unknown scalar {scalar_name}.")

    if scalar_name == BOOLEAN_SCALAR_NAME and isinstance(value, str):
        value = _BOOLEAN_LITERALS.get(value, value)

    try:
        return scalar_type.parse_value(value)
    except (GraphQLError, TypeError, ValueError) as e:
        raise QueryCompilationError(
            f"Value {repr(value)} is not a valid {scalar_name} value: {e}"
        ) from e

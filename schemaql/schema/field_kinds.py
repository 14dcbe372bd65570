# Copyright 2019-present Kensho Technologies, LLC.
"""Closed set of field kinds, resolved once from a validated schema's declared field types."""
from dataclasses import dataclass
from typing import Union

from .model import CONNECTION_TYPE_MARKER, LIST_TYPE_MARKER, Field, Schema
from .scalars import is_scalar_type_name


@dataclass(frozen=True)
class ScalarKind:
    """A field holding a single value of a built-in scalar type."""

    scalar_name: str


@dataclass(frozen=True)
class ReferenceKind:
    """A field holding a single object: a to-one relation if the target is a Node type,
    or an embedded object otherwise."""

    type_name: str
    is_node: bool


@dataclass(frozen=True)
class ConnectionKind:
    """A to-many relation to a Node type, resolved through the reverse field on the target."""

    type_name: str
    reverse_name: str


@dataclass(frozen=True)
class ListKind:
    """An embedded list of scalars or of non-Node objects."""

    element: Union[ScalarKind, ReferenceKind]


FieldKind = Union[ScalarKind, ReferenceKind, ConnectionKind, ListKind]


def resolve_field_kind(schema: Schema, schema_field: Field) -> FieldKind:
    """Return the kind of the given field. The schema must have passed validation."""
    if schema_field.type == CONNECTION_TYPE_MARKER:
        if schema_field.of_type is None or schema_field.reverse_name is None:
            raise AssertionError(
                f"Connection field {schema_field} passed validation without ofType or reverseName."
            )
        return ConnectionKind(
            type_name=schema_field.of_type, reverse_name=schema_field.reverse_name
        )
    elif schema_field.type == LIST_TYPE_MARKER:
        if is_scalar_type_name(schema_field.of_type):
            return ListKind(element=ScalarKind(scalar_name=schema_field.of_type))
        element_type = schema.get_type(schema_field.of_type)
        if element_type is None:
            raise AssertionError(
                f"List field {schema_field} passed validation with an unknown ofType."
            )
        return ListKind(element=ReferenceKind(type_name=element_type.name, is_node=False))
    elif is_scalar_type_name(schema_field.type):
        return ScalarKind(scalar_name=schema_field.type)
    else:
        target_type = schema.get_type(schema_field.type)
        if target_type is None:
            raise AssertionError(f"Field {schema_field} passed validation with an unknown type.")
        return ReferenceKind(type_name=target_type.name, is_node=target_type.is_node)

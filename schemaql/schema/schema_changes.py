# Copyright 2019-present Kensho Technologies, LLC.
"""Descriptions of schema changes, and the pure function that applies them to a schema snapshot.

Schema mutation plans never modify a Schema in place. They carry one of the change objects
defined here, which the execution adapter persists. Anyone holding the previous snapshot
can compute the next one with apply_schema_change().
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from dataclasses_json import DataClassJsonMixin, config

from .builtins import DEFAULT_FIELD_REGISTRY, DefaultFieldRegistry
from .model import Field, ObjectType, Schema
from .validation import validate_schema


@dataclass(init=True, repr=True, eq=True, frozen=True)
class CreateTypeChange(DataClassJsonMixin):
    """Add a new type to the schema."""

    new_type: ObjectType = field(metadata=config(field_name="type"))


@dataclass(init=True, repr=True, eq=True, frozen=True)
class DeleteTypeChange(DataClassJsonMixin):
    """Remove a type, and every field of other types that refers to it."""

    type_name: str = field(metadata=config(field_name="typeName"))


@dataclass(init=True, repr=True, eq=True, frozen=True)
class AddFieldChange(DataClassJsonMixin):
    """Append a field to an existing type."""

    type_name: str = field(metadata=config(field_name="typeName"))
    new_field: Field = field(metadata=config(field_name="field"))


@dataclass(init=True, repr=True, eq=True, frozen=True)
class RemoveFieldChange(DataClassJsonMixin):
    """Remove a field from an existing type."""

    type_name: str = field(metadata=config(field_name="typeName"))
    field_name: str = field(metadata=config(field_name="fieldName"))


SchemaChange = Union[CreateTypeChange, DeleteTypeChange, AddFieldChange, RemoveFieldChange]


def _refers_to_type(type_field: Field, type_name: str) -> bool:
    return type_field.type == type_name or type_field.of_type == type_name


def get_fields_referring_to_type(schema: Schema, type_name: str) -> List[Tuple[str, str]]:
    """Return (type name, field name) of every field in *other* types that refers to the type."""
    return [
        (object_type.name, type_field.name)
        for object_type in schema.types
        if object_type.name != type_name
        for type_field in object_type.fields
        if _refers_to_type(type_field, type_name)
    ]


def _replace_type(schema: Schema, type_name: str, new_type: ObjectType) -> Schema:
    return schema.with_types(
        [new_type if object_type.name == type_name else object_type for object_type in schema.types]
    )


def _get_existing_type(schema: Schema, type_name: str) -> ObjectType:
    object_type = schema.get_type(type_name)
    if object_type is None:
        raise AssertionError(f"Cannot change type {type_name}, which is not in the schema.")
    return object_type


def apply_schema_change(schema: Schema, change: SchemaChange) -> Schema:
    """Return the schema snapshot that results from applying the change to the given snapshot.

    The result is not validated: callers are expected to run the validator over it.

    Raises:
        AssertionError: if the change refers to a type or field that does not exist
    """
    if isinstance(change, CreateTypeChange):
        return schema.with_types(list(schema.types) + [change.new_type])
    elif isinstance(change, DeleteTypeChange):
        _get_existing_type(schema, change.type_name)
        remaining_types = []
        for object_type in schema.types:
            if object_type.name == change.type_name:
                continue
            remaining_fields = [
                type_field
                for type_field in object_type.fields
                if not _refers_to_type(type_field, change.type_name)
            ]
            if len(remaining_fields) != len(object_type.fields):
                object_type = object_type.with_fields(remaining_fields)
            remaining_types.append(object_type)
        return schema.with_types(remaining_types)
    elif isinstance(change, AddFieldChange):
        object_type = _get_existing_type(schema, change.type_name)
        new_type = object_type.with_fields(list(object_type.fields) + [change.new_field])
        return _replace_type(schema, change.type_name, new_type)
    elif isinstance(change, RemoveFieldChange):
        object_type = _get_existing_type(schema, change.type_name)
        if object_type.get_field(change.field_name) is None:
            raise AssertionError(
                f"Cannot remove field {change.field_name}, which is not in type {change.type_name}."
            )
        new_type = object_type.with_fields(
            [
                type_field
                for type_field in object_type.fields
                if type_field.name != change.field_name
            ]
        )
        return _replace_type(schema, change.type_name, new_type)
    else:
        raise AssertionError(f"Unexpected schema change type {type(change).__name__}: {change}")


def apply_validated_schema_change(
    schema: Schema,
    change: SchemaChange,
    default_fields: DefaultFieldRegistry = DEFAULT_FIELD_REGISTRY,
    required_type_names: Sequence[str] = (),
) -> Tuple[Optional[Schema], List[str]]:
    """Apply the change to the snapshot, and validate the resulting schema.

    Changes compiled from the same query are each checked against the snapshot the query was
    compiled with, so one of them may no longer apply once the others have been persisted.
    Adapters call this function to recheck each change against their current snapshot.

    Returns:
        tuple (new schema, errors). If the change does not apply to the snapshot, or leaves
        the schema invalid, the new schema is None and the errors explain why.
    """
    if not isinstance(change, CreateTypeChange):
        object_type = schema.get_type(change.type_name)
        if object_type is None:
            return None, [f"Expected type {change.type_name} to be in the schema."]
        if (
            isinstance(change, RemoveFieldChange)
            and object_type.get_field(change.field_name) is None
        ):
            return None, [f"Expected field {change.field_name} to be in type {change.type_name}."]

    new_schema = apply_schema_change(schema, change)
    errors = validate_schema(new_schema, default_fields, required_type_names)
    if errors:
        return None, errors
    return new_schema, []

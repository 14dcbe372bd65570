# Copyright 2019-present Kensho Technologies, LLC.
"""Compilation of the schema mutation calls: createType, deleteType, addField, removeField.

Each mutation call compiles to a SchemaChange, together with the (old, new) snapshots of every
type the change affects. The change is applied to a copy of the schema, and the resulting
schema must pass the full validator, so that no change accepted here can leave the schema
in an invalid state.
"""
import logging
from typing import List, Optional, Tuple

from ..exceptions import QueryCompilationError
from ..query.ast import Call
from ..schema.builtins import ID_FIELD
from ..schema.model import NODE_INTERFACE_NAME, Field, ObjectType, Schema
from ..schema.schema_changes import (
    AddFieldChange,
    CreateTypeChange,
    DeleteTypeChange,
    RemoveFieldChange,
    SchemaChange,
    apply_schema_change,
)
from ..schema.schema_info import SchemaInfo
from ..schema.validation import validate_schema
from .helpers import (
    get_boolean_argument,
    get_name_argument,
    get_named_arguments,
    get_positional_arguments,
    get_text_argument,
)


logger = logging.getLogger(__name__)

ChangedTypes = List[Tuple[Optional[ObjectType], Optional[ObjectType]]]

_CREATE_TYPE_ARGUMENT_NAMES = frozenset({"pluralName", "description"})
_ADD_FIELD_TEXT_ARGUMENT_NAMES = frozenset(
    {"ofType", "reverseName", "description", "deprecationReason"}
)
_ADD_FIELD_BOOLEAN_ARGUMENT_NAMES = frozenset({"unique", "nonNull"})


def _get_existing_type(schema: Schema, call: Call, type_name: str) -> ObjectType:
    object_type = schema.get_type(type_name)
    if object_type is None:
        raise QueryCompilationError(
            f'Type "{type_name}" given to "{call.name}" does not exist in the schema'
            f"{call.describe_location()}."
        )
    return object_type


def _validate_changed_schema(schema_info: SchemaInfo, call: Call, change: SchemaChange) -> Schema:
    """Apply the change to a copy of the schema, and return the copy if it is still valid."""
    new_schema = apply_schema_change(schema_info.schema, change)
    errors = validate_schema(
        new_schema, schema_info.default_fields, schema_info.required_type_names
    )
    if errors:
        raise QueryCompilationError(
            f'"{call.name}"{call.describe_location()} would result in an invalid schema: '
            + "; ".join(errors)
        )
    logger.debug("Schema change %s leaves the schema valid.", change)
    return new_schema


def compile_create_type(schema_info: SchemaInfo, call: Call) -> Tuple[SchemaChange, ChangedTypes]:
    """Compile createType(Name, pluralName: P, description: D).

    New types implement Node, so they start out with just the id field.
    """
    (name_argument,) = get_positional_arguments(call, 1)
    type_name = get_name_argument(call, name_argument, "type name")
    named_arguments = get_named_arguments(call, _CREATE_TYPE_ARGUMENT_NAMES)

    if schema_info.schema.get_type(type_name) is not None:
        raise QueryCompilationError(
            f'Cannot create type "{type_name}", since it already exists{call.describe_location()}.'
        )

    optional_values = {
        argument_name: get_text_argument(call, argument, argument_name)
        for argument_name, argument in named_arguments.items()
    }
    new_type = ObjectType(
        name=type_name,
        fields=[ID_FIELD],
        interfaces=[NODE_INTERFACE_NAME],
        plural_name=optional_values.get("pluralName"),
        description=optional_values.get("description"),
    )
    change = CreateTypeChange(new_type=new_type)
    _validate_changed_schema(schema_info, call, change)
    return change, [(None, new_type)]


def compile_delete_type(schema_info: SchemaInfo, call: Call) -> Tuple[SchemaChange, ChangedTypes]:
    """Compile deleteType(Name), which also removes all fields of other types that refer to it."""
    (name_argument,) = get_positional_arguments(call, 1)
    get_named_arguments(call, ())
    type_name = get_name_argument(call, name_argument, "type name")
    old_type = _get_existing_type(schema_info.schema, call, type_name)

    change = DeleteTypeChange(type_name=type_name)
    new_schema = _validate_changed_schema(schema_info, call, change)

    changed_types: ChangedTypes = [(old_type, None)]
    for object_type in schema_info.schema.types:
        if object_type.name == type_name:
            continue
        new_type = new_schema.get_type(object_type.name)
        if new_type != object_type:
            changed_types.append((object_type, new_type))
    return change, changed_types


def compile_add_field(schema_info: SchemaInfo, call: Call) -> Tuple[SchemaChange, ChangedTypes]:
    """Compile addField(Type, name, type, ofType: X, reverseName: R, unique: true, ...)."""
    type_argument, name_argument, field_type_argument = get_positional_arguments(call, 3)
    named_arguments = get_named_arguments(
        call, _ADD_FIELD_TEXT_ARGUMENT_NAMES | _ADD_FIELD_BOOLEAN_ARGUMENT_NAMES
    )
    type_name = get_name_argument(call, type_argument, "type name")
    old_type = _get_existing_type(schema_info.schema, call, type_name)

    text_values = {
        argument_name: get_text_argument(call, argument, argument_name)
        for argument_name, argument in named_arguments.items()
        if argument_name in _ADD_FIELD_TEXT_ARGUMENT_NAMES
    }
    boolean_values = {
        argument_name: get_boolean_argument(argument)
        for argument_name, argument in named_arguments.items()
        if argument_name in _ADD_FIELD_BOOLEAN_ARGUMENT_NAMES
    }
    new_field = Field(
        name=get_name_argument(call, name_argument, "field name"),
        type=get_name_argument(call, field_type_argument, "field type"),
        of_type=text_values.get("ofType"),
        description=text_values.get("description"),
        deprecation_reason=text_values.get("deprecationReason"),
        reverse_name=text_values.get("reverseName"),
        unique=boolean_values.get("unique", False),
        non_null=boolean_values.get("nonNull", False),
    )

    change = AddFieldChange(type_name=type_name, new_field=new_field)
    new_schema = _validate_changed_schema(schema_info, call, change)
    return change, [(old_type, new_schema.get_type(type_name))]


def compile_remove_field(schema_info: SchemaInfo, call: Call) -> Tuple[SchemaChange, ChangedTypes]:
    """Compile removeField(Type, name)."""
    type_argument, name_argument = get_positional_arguments(call, 2)
    get_named_arguments(call, ())
    type_name = get_name_argument(call, type_argument, "type name")
    field_name = get_name_argument(call, name_argument, "field name")
    old_type = _get_existing_type(schema_info.schema, call, type_name)
    if old_type.get_field(field_name) is None:
        raise QueryCompilationError(
            f'Cannot remove field "{field_name}", which does not exist in type '
            f'"{type_name}"{call.describe_location()}.'
        )

    change = RemoveFieldChange(type_name=type_name, field_name=field_name)
    new_schema = _validate_changed_schema(schema_info, call, change)
    return change, [(old_type, new_schema.get_type(type_name))]

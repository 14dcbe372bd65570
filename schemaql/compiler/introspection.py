# Copyright 2019-present Kensho Technologies, LLC.
"""Built-in meta types describing the schema itself, and snapshots of schema metadata.

Introspection calls (schema, type) and the results of schema mutation calls are not backed
by stored records. Instead, the compiler snapshots the relevant schema metadata into plain
dict records at compile time, and projects them through the meta types defined here.

Lists of metadata (the calls and types of the schema, the fields of a type, and the changes
made by a mutation) are exposed as connections, just like relations between Nodes are:

    schema() {
        types {
            count
            nodes { name, isNode }
        }
    }
"""
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..schema.builtins import RESERVED_TYPE_NAME_PREFIX
from ..schema.model import (
    CONNECTION_TYPE_MARKER,
    LIST_TYPE_MARKER,
    Field,
    ObjectType,
    Schema,
    get_plural_name,
)
from ..schema.scalars import BOOLEAN_SCALAR_NAME, STRING_SCALAR_NAME


SCHEMA_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "Schema"
CALL_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "Call"
TYPE_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "Type"
FIELD_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "Field"
SCHEMA_RESULT_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "SchemaResult"
MUTATION_RESULT_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "MutationResult"
CHANGE_META_TYPE_NAME = RESERVED_TYPE_NAME_PREFIX + "Change"

# Call name -> the kind of value the call returns, in the order they are listed by schema().
CALL_RETURN_KINDS: Tuple[Tuple[str, str], ...] = (
    ("schema", "schema"),
    ("type", "type"),
    ("nodes", "connection"),
    ("node", "object"),
    ("createType", "schemaResult"),
    ("deleteType", "schemaResult"),
    ("addField", "mutationResult"),
    ("removeField", "mutationResult"),
)


def _string_field(name: str) -> Field:
    return Field(name=name, type=STRING_SCALAR_NAME)


def _boolean_field(name: str) -> Field:
    return Field(name=name, type=BOOLEAN_SCALAR_NAME, non_null=True)


def _connection_field(name: str, of_type: str) -> Field:
    return Field(name=name, type=CONNECTION_TYPE_MARKER, of_type=of_type, non_null=True)


_CHANGES_FIELD = _connection_field("changes", CHANGE_META_TYPE_NAME)

META_TYPES: Tuple[ObjectType, ...] = (
    ObjectType(
        name=SCHEMA_META_TYPE_NAME,
        description="The schema: the calls that queries can make, and the types they can use.",
        fields=[
            _connection_field("calls", CALL_META_TYPE_NAME),
            _connection_field("types", TYPE_META_TYPE_NAME),
        ],
    ),
    ObjectType(
        name=CALL_META_TYPE_NAME,
        fields=[_string_field("name"), _string_field("returns")],
    ),
    ObjectType(
        name=TYPE_META_TYPE_NAME,
        fields=[
            _string_field("name"),
            _string_field("pluralName"),
            _string_field("kind"),
            _string_field("description"),
            _boolean_field("isNode"),
            Field(name="interfaces", type=LIST_TYPE_MARKER, of_type=STRING_SCALAR_NAME),
            _connection_field("fields", FIELD_META_TYPE_NAME),
        ],
    ),
    ObjectType(
        name=FIELD_META_TYPE_NAME,
        fields=[
            _string_field("name"),
            _string_field("type"),
            _string_field("ofType"),
            _string_field("description"),
            _string_field("deprecationReason"),
            _string_field("reverseName"),
            _boolean_field("unique"),
            _boolean_field("nonNull"),
        ],
    ),
    ObjectType(
        name=SCHEMA_RESULT_META_TYPE_NAME,
        fields=[_boolean_field("success"), _CHANGES_FIELD],
    ),
    ObjectType(
        name=MUTATION_RESULT_META_TYPE_NAME,
        fields=[_boolean_field("success"), _CHANGES_FIELD],
    ),
    ObjectType(
        name=CHANGE_META_TYPE_NAME,
        description="A type before and after a schema change. Either side may be null.",
        fields=[
            Field(name="oldValue", type=TYPE_META_TYPE_NAME),
            Field(name="newValue", type=TYPE_META_TYPE_NAME),
        ],
    ),
)

META_SCHEMA = Schema(types=list(META_TYPES))

FAILED_MUTATION_RECORD: Mapping[str, Any] = MappingProxyType({"success": False, "changes": []})


def make_field_record(type_field: Field) -> Dict[str, Any]:
    """Return the SchemaQLField record describing the given field."""
    return type_field.to_dict()


def make_type_record(object_type: ObjectType) -> Dict[str, Any]:
    """Return the SchemaQLType record describing the given type."""
    return {
        "name": object_type.name,
        "pluralName": get_plural_name(object_type),
        "kind": object_type.kind,
        "description": object_type.description,
        "isNode": object_type.is_node,
        "interfaces": list(object_type.interfaces),
        "fields": [make_field_record(type_field) for type_field in object_type.fields],
    }


def make_schema_record(schema: Schema) -> Dict[str, Any]:
    """Return the SchemaQLSchema record describing the given schema and the built-in meta types."""
    return {
        "calls": [
            {"name": call_name, "returns": return_kind}
            for call_name, return_kind in CALL_RETURN_KINDS
        ],
        "types": [
            make_type_record(object_type) for object_type in list(schema.types) + list(META_TYPES)
        ],
    }


def make_mutation_result_record(
    changed_types: Sequence[Tuple[Optional[ObjectType], Optional[ObjectType]]]
) -> Dict[str, Any]:
    """Return the result record of a successful schema mutation.

    Args:
        changed_types: (old, new) snapshots of every type the mutation changed. The old snapshot
                       is None for created types, and the new one is None for deleted types.

    Returns:
        SchemaQLSchemaResult / SchemaQLMutationResult record
    """
    changes: List[Dict[str, Any]] = [
        {
            "oldValue": None if old_type is None else make_type_record(old_type),
            "newValue": None if new_type is None else make_type_record(new_type),
        }
        for old_type, new_type in changed_types
    ]
    return {"success": True, "changes": changes}

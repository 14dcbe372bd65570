# Copyright 2019-present Kensho Technologies, LLC.
"""In-memory representation of a schema: a set of named object types with their fields.

Schema definitions arrive from, and are persisted back to, the schema-storage collaborator as
JSON-compatible dicts with camelCase keys, e.g.:

    {
        "types": [
            {
                "name": "User",
                "kind": "OBJECT",
                "interfaces": ["Node"],
                "fields": [
                    {"name": "id", "type": "id", "nonNull": true, "unique": true},
                    {"name": "handle", "type": "string"},
                    {
                        "name": "microposts",
                        "type": "Connection",
                        "ofType": "Micropost",
                        "reverseName": "author"
                    }
                ]
            },
            ...
        ]
    }

Nothing in this module checks that the definitions are sensible: that is the job of
the validator in validation.py. The classes here only carry the data and provide lookups.
"""
from dataclasses import dataclass, field, replace
from functools import cached_property
import re
from typing import Any, Dict, List, Mapping, Optional

from dataclasses_json import DataClassJsonMixin, config

from ..exceptions import SchemaValidationError


OBJECT_TYPE_KIND = "OBJECT"

CONNECTION_TYPE_MARKER = "Connection"
LIST_TYPE_MARKER = "List"
WRAPPER_TYPE_MARKERS = frozenset({CONNECTION_TYPE_MARKER, LIST_TYPE_MARKER})

NODE_INTERFACE_NAME = "Node"

_SIBILANT_ENDING_PATTERN = re.compile("(s|x|z|ch|sh)$")
_CONSONANT_Y_ENDING_PATTERN = re.compile("[^aeiouAEIOU]y$")


@dataclass(init=True, repr=True, eq=True, frozen=True)
class Field(DataClassJsonMixin):
    """A single field of an object type."""

    name: str

    # A scalar name, an object type name, or one of the wrapper markers "Connection" / "List".
    type: str

    # The contained type, only for fields whose type is a wrapper marker.
    of_type: Optional[str] = field(default=None, metadata=config(field_name="ofType"))

    description: Optional[str] = None
    deprecation_reason: Optional[str] = field(
        default=None, metadata=config(field_name="deprecationReason")
    )

    # Name of the inverse field on the other side of a relation to a Node type.
    reverse_name: Optional[str] = field(default=None, metadata=config(field_name="reverseName"))

    unique: bool = False
    non_null: bool = field(default=False, metadata=config(field_name="nonNull"))

    @property
    def is_wrapper(self) -> bool:
        """Return True if the field's declared type is a wrapper marker."""
        return self.type in WRAPPER_TYPE_MARKERS

    @property
    def target_type_name(self) -> Optional[str]:
        """Return the name of the type the field points to, looking through Connection wrappers."""
        if self.type == CONNECTION_TYPE_MARKER:
            return self.of_type
        return self.type


@dataclass(init=True, repr=True, eq=True, frozen=True)
class ObjectType(DataClassJsonMixin):
    """A named object type, made up of an ordered list of fields."""

    name: str
    fields: List[Field] = field(default_factory=list)
    interfaces: List[str] = field(default_factory=list)
    kind: str = OBJECT_TYPE_KIND
    plural_name: Optional[str] = field(default=None, metadata=config(field_name="pluralName"))
    description: Optional[str] = None

    @property
    def is_node(self) -> bool:
        """Return True if the type implements the identifier-bearing Node interface."""
        return isinstance(self.interfaces, list) and NODE_INTERFACE_NAME in self.interfaces

    @property
    def resolved_plural_name(self) -> Any:
        """Return the explicit plural name if there is one, or the pluralized type name."""
        return get_plural_name(self)

    def get_field(self, field_name: str) -> Optional[Field]:
        """Return the field with the given name, or None if the type has no such field."""
        for type_field in self.fields:
            if type_field.name == field_name:
                return type_field
        return None

    def with_fields(self, fields: List[Field]) -> "ObjectType":
        """Return a copy of this type with its fields replaced by the given ones."""
        return replace(self, fields=list(fields))


@dataclass(init=True, repr=True, eq=True, frozen=True)
class Schema(DataClassJsonMixin):
    """An ordered collection of object types. Treated as an immutable snapshot once built."""

    types: List[ObjectType] = field(default_factory=list)

    @cached_property
    def types_by_name(self) -> Mapping[str, ObjectType]:
        """Return a dict of type name -> type. With duplicate names, the first type wins."""
        result: Dict[str, ObjectType] = {}
        for object_type in self.types:
            if isinstance(object_type.name, str):
                result.setdefault(object_type.name, object_type)
        return result

    @property
    def type_names(self) -> List[str]:
        """Return the names of all types in declaration order."""
        return [object_type.name for object_type in self.types]

    def get_type(self, type_name: str) -> Optional[ObjectType]:
        """Return the type with the given name, or None if no such type exists."""
        return self.types_by_name.get(type_name)

    def with_types(self, types: List[ObjectType]) -> "Schema":
        """Return a new schema snapshot made up of the given types."""
        return Schema(types=list(types))


def pluralize(name: str) -> str:
    """Return the English plural of a capitalized type name, e.g. "Category" -> "Categories"."""
    if _CONSONANT_Y_ENDING_PATTERN.search(name):
        return name[:-1] + "ies"
    elif _SIBILANT_ENDING_PATTERN.search(name):
        return name + "es"
    return name + "s"


def get_plural_name(object_type: ObjectType) -> Any:
    """Return the plural name of the type: the explicit one if given, otherwise a pluralization.

    Malformed (non-string) names are returned unchanged, so that the validator can report them.
    """
    if object_type.plural_name is not None:
        return object_type.plural_name
    if not isinstance(object_type.name, str):
        return object_type.name
    return pluralize(object_type.name)


def load_schema(schema_data: Mapping[str, Any]) -> Schema:
    """Build a Schema from its JSON-compatible dict representation.

    Missing keys are filled in with their defaults (or None for required keys), so that
    incomplete definitions make it to the validator and get reported there.

    Raises:
        SchemaValidationError: if the data is so malformed that it cannot be read at all,
                               e.g. a list of fields that is not a list of objects
    """
    try:
        return Schema.from_dict(dict(schema_data), infer_missing=True)
    # dataclasses-json surfaces structural mismatches as a variety of builtin exception types.
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise SchemaValidationError(
            [f"Expected a schema definition with a list of type objects. Found: {e}"]
        ) from e

# Copyright 2019-present Kensho Technologies, LLC.
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from ..exceptions import SchemaValidationError
from .builtins import DEFAULT_FIELD_REGISTRY, USER_TYPE_NAME, DefaultFieldRegistry
from .field_kinds import FieldKind, resolve_field_kind
from .model import Schema
from .validation import validate_schema


# Types that every deployed schema must contain.
DEFAULT_REQUIRED_TYPE_NAMES: Tuple[str, ...] = (USER_TYPE_NAME,)


@dataclass(frozen=True)
class SchemaInfo:
    """A validated schema snapshot, together with everything needed to validate changes to it."""

    schema: Schema

    # Registry of interface-mandated and built-in fields the schema was validated against.
    default_fields: DefaultFieldRegistry

    # Names of types that must remain present in the schema, e.g. across deleteType calls.
    required_type_names: Tuple[str, ...]

    # (type name, field name) -> kind of that field, resolved once at construction time.
    field_kinds: Dict[Tuple[str, str], FieldKind] = field(repr=False, compare=False)

    def get_field_kind(self, type_name: str, field_name: str) -> FieldKind:
        """Return the kind of the given field, which must exist in the schema."""
        return self.field_kinds[(type_name, field_name)]


def make_schema_info(
    schema: Schema,
    default_fields: DefaultFieldRegistry = DEFAULT_FIELD_REGISTRY,
    required_type_names: Sequence[str] = DEFAULT_REQUIRED_TYPE_NAMES,
) -> SchemaInfo:
    """Validate the schema and return a SchemaInfo snapshot for compiling queries against it.

    Args:
        schema: the schema to validate and wrap
        default_fields: registry of interface-mandated and built-in fields
        required_type_names: names of types that must be present in the schema

    Returns:
        SchemaInfo with all field kinds resolved

    Raises:
        SchemaValidationError: if the schema is invalid, with the full list of violations
    """
    errors = validate_schema(schema, default_fields, required_type_names)
    if errors:
        raise SchemaValidationError(errors)

    field_kinds = {
        (object_type.name, type_field.name): resolve_field_kind(schema, type_field)
        for object_type in schema.types
        for type_field in object_type.fields
    }
    return SchemaInfo(
        schema=schema,
        default_fields=default_fields,
        required_type_names=tuple(required_type_names),
        field_kinds=field_kinds,
    )

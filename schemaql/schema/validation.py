# Copyright 2019-present Kensho Technologies, LLC.
"""Static validation of schema definitions.

The validator runs a fixed pipeline of stages over a Schema. Each stage reports every violation
it can find on its own, as a list of human-readable messages. Later stages assume that earlier
stages passed (e.g. that type names are unique, so that types can be looked up by name),
so as soon as a stage reports any violations, the remaining stages are skipped and the
violations found so far are returned.
"""
from collections import Counter
import re
from typing import Any, Callable, Iterable, List, Mapping, Sequence

from .builtins import DEFAULT_FIELD_REGISTRY, RESERVED_TYPE_NAME_PREFIX, DefaultFieldRegistry
from .model import (
    CONNECTION_TYPE_MARKER,
    LIST_TYPE_MARKER,
    OBJECT_TYPE_KIND,
    Field,
    ObjectType,
    Schema,
    get_plural_name,
)
from .scalars import is_scalar_type_name


TYPE_NAME_PATTERN = re.compile("^[A-Z][_0-9A-Za-z]*$")
FIELD_NAME_PATTERN = re.compile("^[_A-Za-z][_0-9A-Za-z]*$")


def _check(condition: bool, message: str) -> List[str]:
    """Return a list with the given message if the condition does not hold, or an empty list."""
    return [] if condition else [message]


def _is_optional_string(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _describe_duplicates(names: Iterable[Any], property_name: str) -> List[str]:
    counts = Counter(names)
    return [
        f'{count} types with {property_name} "{name}"'
        for name, count in counts.items()
        if count > 1
    ]


def _is_node_type(object_type: ObjectType) -> bool:
    return object_type.is_node


class _ValidationContext:
    """Read-only inputs shared by all validation stages."""

    def __init__(
        self,
        schema: Schema,
        default_fields: DefaultFieldRegistry,
        required_type_names: Sequence[str],
    ) -> None:
        """Bundle the inputs of a single validation run."""
        self.schema = schema
        self.default_fields = default_fields
        self.required_type_names = required_type_names

    @property
    def types(self) -> List[ObjectType]:
        return self.schema.types

    @property
    def types_by_name(self) -> Mapping[str, ObjectType]:
        return self.schema.types_by_name


# ###################
# Validation stages #
# ###################


def _validate_type_names_unique(context: _ValidationContext) -> List[str]:
    duplicates = _describe_duplicates((object_type.name for object_type in context.types), "name")
    return _check(
        not duplicates, "Expected type names to be unique. Found {}".format(", ".join(duplicates))
    )


def _validate_plural_names_unique(context: _ValidationContext) -> List[str]:
    duplicates = _describe_duplicates(
        (get_plural_name(object_type) for object_type in context.types), "plural name"
    )
    return _check(
        not duplicates,
        "Expected plural names of types to be unique. Found {}".format(", ".join(duplicates)),
    )


def _validate_required_types_present(context: _ValidationContext) -> List[str]:
    errors: List[str] = []
    for required_type_name in context.required_type_names:
        errors.extend(
            _check(
                required_type_name in context.types_by_name,
                f"Expected {required_type_name} type to be present.",
            )
        )
    return errors


def _validate_type_structure(context: _ValidationContext) -> List[str]:
    errors: List[str] = []
    for object_type in context.types:
        errors.extend(_get_type_structure_errors(context, object_type))
    return errors


def _validate_interface_fields(context: _ValidationContext) -> List[str]:
    errors: List[str] = []
    for object_type in context.types:
        for interface_name in object_type.interfaces:
            for default_field in context.default_fields.get_interface_fields(interface_name):
                errors.extend(
                    _check(
                        any(
                            _is_same_field_definition(type_field, default_field)
                            for type_field in object_type.fields
                        ),
                        "{}.{}: Expected {}{}field of type {} from interface {}".format(
                            object_type.name,
                            default_field.name,
                            "non-null " if default_field.non_null else "",
                            "unique " if default_field.unique else "",
                            default_field.type,
                            interface_name,
                        ),
                    )
                )
    return errors


def _validate_fields(context: _ValidationContext) -> List[str]:
    errors: List[str] = []
    for object_type in context.types:
        for type_field in object_type.fields:
            errors.extend(_get_field_errors(context, object_type, type_field))
    return errors


_VALIDATION_STAGES: Sequence[Callable[[_ValidationContext], List[str]]] = (
    _validate_type_names_unique,
    _validate_plural_names_unique,
    _validate_required_types_present,
    _validate_type_structure,
    _validate_interface_fields,
    _validate_fields,
)


# #################
# Per-type checks #
# #################


def _get_type_structure_errors(context: _ValidationContext, object_type: ObjectType) -> List[str]:
    type_name = object_type.name
    errors = _check(
        isinstance(type_name, str),
        f"Expected `name` of a type to be a string. Found: {type_name}",
    )

    for property_name, name in (("name", type_name), ("pluralName", object_type.plural_name)):
        errors.extend(
            _check(
                name is None or (isinstance(name, str) and bool(TYPE_NAME_PATTERN.match(name))),
                f"Expected `{property_name}` of a type to be a string starting with a capital "
                f"letter. Allowed characters are letters A-Z, a-z, digits and underscore (_). "
                f"Found: {name}",
            )
        )
        errors.extend(
            _check(
                not (isinstance(name, str) and name.startswith(RESERVED_TYPE_NAME_PREFIX)),
                f'Invalid `{property_name}`: {name}. Names that begin with '
                f'"{RESERVED_TYPE_NAME_PREFIX}" are reserved for built-in types.',
            )
        )

    plural_name = get_plural_name(object_type)
    conflicting_type = context.types_by_name.get(plural_name)
    errors.extend(
        _check(
            conflicting_type is None or conflicting_type is object_type,
            f'{type_name}: Plural name "{plural_name}" conflicts with the name of type '
            f"{plural_name}. Use the `pluralName` property to define a unique plural name.",
        )
    )
    errors.extend(
        _check(
            object_type.kind == OBJECT_TYPE_KIND,
            f'{type_name}: Expected type `kind` to be "{OBJECT_TYPE_KIND}".',
        )
    )
    errors.extend(
        _check(
            _is_optional_string(object_type.description),
            f"{type_name}: Expected `description` to be undefined or a string.",
        )
    )
    errors.extend(
        _check(
            isinstance(object_type.interfaces, list)
            and all(
                isinstance(interface_name, str)
                and context.default_fields.is_declared_interface(interface_name)
                for interface_name in object_type.interfaces
            ),
            f"{type_name}: Expected `interfaces` to be an array of interface names. "
            f"Found: {object_type.interfaces}",
        )
    )

    fields_are_well_formed = isinstance(object_type.fields, list) and all(
        isinstance(type_field, Field) for type_field in object_type.fields
    )
    errors.extend(
        _check(
            fields_are_well_formed,
            f"{type_name}: Expected `fields` to be an array of field objects.",
        )
    )
    if fields_are_well_formed:
        field_names = [type_field.name for type_field in object_type.fields]
        errors.extend(
            _check(
                len(field_names) > 0,
                f"{type_name}: Expected `fields` to be an array with at least one element",
            )
        )
        errors.extend(
            _check(
                len(set(field_names)) == len(field_names),
                f"{type_name}: Expected field names to be unique within a type.",
            )
        )

    return errors


def _is_same_field_definition(left: Field, right: Field) -> bool:
    return (
        left.name == right.name
        and left.type == right.type
        and left.of_type == right.of_type
        and bool(left.non_null) == bool(right.non_null)
        and bool(left.unique) == bool(right.unique)
    )


# ##################
# Per-field checks #
# ##################


def _get_field_errors(
    context: _ValidationContext, object_type: ObjectType, type_field: Field
) -> List[str]:
    type_name = object_type.name
    field_name = type_field.name
    types_by_name = context.types_by_name

    errors = _check(
        isinstance(field_name, str) and bool(FIELD_NAME_PATTERN.match(field_name)),
        f"{type_name}: Expected field name to be a non-empty string of letters, digits and "
        f"underscores, not starting with a digit. Found: {field_name}.",
    )
    errors.extend(
        _check(
            _is_optional_string(type_field.description),
            f"{type_name}.{field_name}: Expected `description` to be undefined or string. "
            f"Found {type_field.description}.",
        )
    )
    errors.extend(
        _check(
            _is_optional_string(type_field.deprecation_reason),
            f"{type_name}.{field_name}: Expected `deprecationReason` to be undefined or string. "
            f"Found {type_field.deprecation_reason}.",
        )
    )

    field_type = type_field.type
    if not isinstance(field_type, str):
        errors.append(
            f"{type_name}.{field_name}: Expected field type to be a string. Found: {field_type}."
        )
        # None of the remaining checks make sense without a well-formed field type.
        return errors

    errors.extend(
        _check(
            is_scalar_type_name(field_type)
            or field_type in types_by_name
            or field_type in (CONNECTION_TYPE_MARKER, LIST_TYPE_MARKER),
            f"{type_name}.{field_name}: Expected `type` to be a valid scalar or object type. "
            f"Found: {field_type}.",
        )
    )

    of_type = type_field.of_type
    if field_type == CONNECTION_TYPE_MARKER:
        errors.extend(
            _check(
                isinstance(of_type, str)
                and of_type in types_by_name
                and _is_node_type(types_by_name[of_type]),
                f"{type_name}.{field_name}: Expected `ofType` of a connection field to be an "
                f"object type that implements the Node interface. Found: {of_type}.",
            )
        )
    elif field_type == LIST_TYPE_MARKER:
        errors.extend(
            _check(
                is_scalar_type_name(of_type)
                or (
                    isinstance(of_type, str)
                    and of_type in types_by_name
                    and not _is_node_type(types_by_name[of_type])
                ),
                f"{type_name}.{field_name}: Expected `ofType` of a list field to be a scalar or "
                f"non-Node object type. Found: {of_type}.",
            )
        )
    else:
        errors.extend(
            _check(
                of_type is None,
                f"{type_name}.{field_name}: Expected `ofType` to be undefined for a field with "
                f'non-wrapper type "{field_type}". Found: {of_type}.',
            )
        )

    target_type_name = type_field.target_type_name
    if (
        isinstance(target_type_name, str)
        and target_type_name in types_by_name
        and _is_node_type(types_by_name[target_type_name])
    ):
        # Relations are stored by id, so only Node types can be on either end of one.
        if _is_node_type(object_type):
            errors.extend(_get_reverse_field_errors(context, object_type, type_field))
        else:
            errors.append(
                f"{type_name}.{field_name}: Expected relation field to be defined on a type "
                f"that implements the Node interface. Found: {field_type} on {type_name}."
            )

    errors.extend(
        _check(
            not type_field.unique or is_scalar_type_name(field_type),
            f"{type_name}.{field_name}: Expected unique field to be a scalar type. "
            f"Found: {field_type}.",
        )
    )

    built_in_fields = context.default_fields.get_type_fields(type_name)
    errors.extend(
        _check(
            all(built_in_field.name != field_name for built_in_field in built_in_fields),
            f"{type_name}.{field_name}: Field name shadows a built-in field.",
        )
    )

    return errors


def _get_reverse_field_errors(
    context: _ValidationContext, object_type: ObjectType, type_field: Field
) -> List[str]:
    """Check that a relation field and its inverse on the target type mirror each other."""
    if type_field.type == CONNECTION_TYPE_MARKER:
        # The inverse of a connection is a to-one field pointing back at the origin type.
        reverse_type_name = type_field.of_type
        expected_field_type = object_type.name
        expected_field_of_type = None
    else:
        # The inverse of a to-one field is a connection of the origin type.
        reverse_type_name = type_field.type
        expected_field_type = CONNECTION_TYPE_MARKER
        expected_field_of_type = object_type.name

    reverse_type = context.types_by_name[reverse_type_name]
    reverse_field = None
    if type_field.reverse_name:
        reverse_field = reverse_type.get_field(type_field.reverse_name)

    if reverse_field is None:
        return [
            f"{object_type.name}.{type_field.name}: Expected `reverseName` to be a name of a "
            f"{expected_field_type} field in type {reverse_type_name}. "
            f"Found: {type_field.reverse_name}."
        ]

    origin = f"{object_type.name}.{type_field.name}"
    prefix = f"{reverse_type_name}.{reverse_field.name}: Expected reverse field of {origin}"
    errors = _check(
        reverse_field.reverse_name == type_field.name,
        f"{prefix} to have matching `reverseName` {type_field.name}. "
        f"Found: {reverse_field.reverse_name}.",
    )
    errors.extend(
        _check(
            reverse_field.type == expected_field_type,
            f"{prefix} to have type {expected_field_type}. Found: {reverse_field.type}.",
        )
    )
    if expected_field_of_type is not None:
        errors.extend(
            _check(
                reverse_field.of_type == expected_field_of_type,
                f"{prefix} to have ofType {expected_field_of_type}. "
                f"Found: {reverse_field.of_type}.",
            )
        )
    return errors


# ############
# Public API #
# ############


def validate_schema(
    schema: Schema,
    default_fields: DefaultFieldRegistry = DEFAULT_FIELD_REGISTRY,
    required_type_names: Sequence[str] = (),
) -> List[str]:
    """Check the schema against all schema invariants, returning the list of violations found.

    Args:
        schema: the schema to validate. It is not modified.
        default_fields: registry of the fields mandated by each interface, and of the built-in
                        fields of particular types.
        required_type_names: names of types that must be present in the schema.

    Returns:
        list of human-readable violation messages, all coming from the first validation stage
        that found any violations. An empty list means the schema is valid.
    """
    context = _ValidationContext(schema, default_fields, required_type_names)
    for stage in _VALIDATION_STAGES:
        errors = stage(context)
        if errors:
            return errors
    return []

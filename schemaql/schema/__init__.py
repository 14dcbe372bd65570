# Copyright 2017-present Kensho Technologies, LLC.
"""Schema model, built-in scalars and fields, validation, and schema changes."""
from .builtins import (  # noqa
    DEFAULT_FIELD_REGISTRY,
    ID_FIELD,
    ID_FIELD_NAME,
    RESERVED_TYPE_NAME_PREFIX,
    DefaultFieldRegistry,
)
from .field_kinds import ConnectionKind, FieldKind, ListKind, ReferenceKind, ScalarKind  # noqa
from .model import (  # noqa
    CONNECTION_TYPE_MARKER,
    LIST_TYPE_MARKER,
    NODE_INTERFACE_NAME,
    OBJECT_TYPE_KIND,
    Field,
    ObjectType,
    Schema,
    get_plural_name,
    load_schema,
    pluralize,
)
from .scalars import SCALAR_TYPES, GraphQLDateTime, coerce_scalar_value, is_scalar_type_name  # noqa
from .schema_changes import (  # noqa
    AddFieldChange,
    CreateTypeChange,
    DeleteTypeChange,
    RemoveFieldChange,
    SchemaChange,
    apply_schema_change,
    apply_validated_schema_change,
    get_fields_referring_to_type,
)
from .schema_info import DEFAULT_REQUIRED_TYPE_NAMES, SchemaInfo, make_schema_info  # noqa
from .validation import validate_schema  # noqa

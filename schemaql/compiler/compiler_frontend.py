# Copyright 2017-present Kensho Technologies, LLC.
"""Front-end of the compiler: turns a parsed call tree into a QueryPlan.

High-level overview of the compilation process, performed by compile_query_ast():
    - Each top-level call is compiled on its own, by the call compiler registered for its name
      in _CALL_COMPILERS. Unknown call names are a compilation error.
    - The call compiler reads and checks the call's arguments, and decides the kind of plan:
      node and nodes fetch records, schema and type introspect the schema, and the
      four schema mutation calls describe a change to the schema (see schema_mutations.py).
    - The selections nested within the call are then compiled by recursive descent,
      producing one ObjectProjection per selected object, keyed by its SelectionPath:
        - selections on types of the schema are compiled by _compile_data_field(), where
          a to-one relation to a Node becomes a fetch of the related record by id,
          a Connection becomes a fetch of the records pointing back via the reverse field,
          and any other object or list field is projected from the record's own value;
        - selections on the built-in meta types (introspection and mutation results) are
          compiled by _compile_meta_field(), and only ever project the snapshot taken at
          compile time;
        - connections of either kind accept "count", "nodes" and "edges { cursor, node }".
    - Every object selection must be non-empty, must not select the same name twice, and must
      not be nested deeper than the configured maximum depth.

Compilation either produces a complete plan for every call of the query, or raises.
No partially-compiled plan is ever returned, and compilation never calls out to the backend.
"""
from functools import partial
import logging
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NoReturn, Optional, Tuple

from funcy import lsplit

from ..exceptions import QueryAuthorizationError, QueryCompilationError
from ..query.ast import Call, Query
from ..schema.field_kinds import ConnectionKind, ListKind, ReferenceKind, ScalarKind
from ..schema.model import CONNECTION_TYPE_MARKER, LIST_TYPE_MARKER, ObjectType
from ..schema.scalars import coerce_scalar_value, is_scalar_type_name
from ..schema.schema_changes import SchemaChange
from ..schema.schema_info import SchemaInfo
from .credentials import ANONYMOUS_CREDENTIALS, Credentials
from .helpers import (
    PAGINATION_ARGUMENT_NAMES,
    get_id_argument,
    get_name_argument,
    get_named_arguments,
    get_pagination,
    get_positional_arguments,
)
from .introspection import (
    FAILED_MUTATION_RECORD,
    META_SCHEMA,
    MUTATION_RESULT_META_TYPE_NAME,
    SCHEMA_META_TYPE_NAME,
    SCHEMA_RESULT_META_TYPE_NAME,
    TYPE_META_TYPE_NAME,
    make_mutation_result_record,
    make_schema_record,
    make_type_record,
)
from .plan import (
    ROOT_PATH,
    CallPlan,
    ConnectionOutput,
    EmbeddedConnectionOutput,
    EmbeddedObjectOutput,
    FetchNodePlan,
    FetchNodesPlan,
    IntrospectionPlan,
    ObjectProjection,
    OutputStep,
    QueryPlan,
    RelatedNodeOutput,
    ScalarOutput,
    SchemaMutationPlan,
    SelectionPath,
    TypenameOutput,
)
from .schema_mutations import (
    ChangedTypes,
    compile_add_field,
    compile_create_type,
    compile_delete_type,
    compile_remove_field,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_SELECTION_DEPTH = 32

TYPENAME_META_FIELD_NAME = "__typename"

COUNT_FIELD_NAME = "count"
NODES_FIELD_NAME = "nodes"
EDGES_FIELD_NAME = "edges"
CURSOR_FIELD_NAME = "cursor"
NODE_FIELD_NAME = "node"


class _CompilationContext:
    """Mutable state of the compilation of a single top-level call."""

    def __init__(
        self, schema_info: SchemaInfo, credentials: Credentials, max_depth: int
    ) -> None:
        """Start compiling a call, with an empty arena of projections."""
        self.schema_info = schema_info
        self.credentials = credentials
        self.max_depth = max_depth
        self.projections: Dict[SelectionPath, ObjectProjection] = {}

    def get_projections(self) -> Mapping[SelectionPath, ObjectProjection]:
        """Return a read-only copy of the projections compiled so far."""
        return MappingProxyType(dict(self.projections))


FieldCompiler = Callable[[_CompilationContext, ObjectType, Call, SelectionPath, int], OutputStep]
MutationCompiler = Callable[[SchemaInfo, Call], Tuple[SchemaChange, ChangedTypes]]


def _describe_path(path: SelectionPath) -> str:
    return ".".join(path) if path else "<root>"


def _validate_selection_block(
    context: _CompilationContext, parent: Call, path: SelectionPath, depth: int
) -> None:
    """Ensure the object selection of the given call or field is non-empty and well-formed."""
    if depth > context.max_depth:
        raise QueryCompilationError(
            f"Selection at {_describe_path(path)} is nested {depth} levels deep, which is more "
            f"than the maximum of {context.max_depth}{parent.describe_location()}."
        )
    if not parent.selections:
        raise QueryCompilationError(
            f'"{parent.name}" returns an object, so it requires a selection of fields'
            f"{parent.describe_location()}."
        )

    seen_names = set()
    for selection in parent.selections:
        if selection.name in seen_names:
            raise QueryCompilationError(
                f'Field "{selection.name}" is selected more than once within "{parent.name}"'
                f"{selection.describe_location()}."
            )
        seen_names.add(selection.name)


def _ensure_leaf_selection(selection: Call, description: str) -> None:
    if selection.selections:
        raise QueryCompilationError(
            f'Field "{selection.name}" is {description}, so it cannot have a selection of fields'
            f"{selection.describe_location()}."
        )


def _ensure_no_arguments(selection: Call) -> None:
    if selection.arguments:
        raise QueryCompilationError(
            f'Field "{selection.name}" does not accept arguments{selection.describe_location()}.'
        )


def _raise_unknown_field(object_type: ObjectType, selection: Call) -> NoReturn:
    raise QueryCompilationError(
        f'Type "{object_type.name}" has no field named "{selection.name}"'
        f"{selection.describe_location()}."
    )


def _compile_object_projection(
    context: _CompilationContext,
    object_type: ObjectType,
    parent: Call,
    path: SelectionPath,
    depth: int,
    field_compiler: FieldCompiler,
) -> None:
    """Compile the selections of the parent call or field into a projection of the given type."""
    _validate_selection_block(context, parent, path, depth)
    outputs = tuple(
        field_compiler(context, object_type, selection, path + (selection.name,), depth)
        for selection in parent.selections
    )
    context.projections[path] = ObjectProjection(type_name=object_type.name, outputs=outputs)


def _compile_connection_projection(
    context: _CompilationContext,
    element_type: ObjectType,
    parent: Call,
    path: SelectionPath,
    depth: int,
    field_compiler: FieldCompiler,
) -> bool:
    """Compile the selections on a connection of the element type.

    Returns:
        True if the selections need the records of the connection, False if only the count
    """
    _validate_selection_block(context, parent, path, depth)
    fetch_records = False
    outputs = []
    for selection in parent.selections:
        _ensure_no_arguments(selection)
        child_path = path + (selection.name,)
        if selection.name == COUNT_FIELD_NAME:
            _ensure_leaf_selection(selection, "the number of records in a connection")
            outputs.append(ScalarOutput(output_name=COUNT_FIELD_NAME, field_name=COUNT_FIELD_NAME))
        elif selection.name == NODES_FIELD_NAME:
            fetch_records = True
            _compile_object_projection(
                context, element_type, selection, child_path, depth + 1, field_compiler
            )
            outputs.append(
                EmbeddedObjectOutput(
                    output_name=NODES_FIELD_NAME,
                    field_name=NODES_FIELD_NAME,
                    child_path=child_path,
                    is_list=True,
                )
            )
        elif selection.name == EDGES_FIELD_NAME:
            fetch_records = True
            _compile_edges_projection(
                context, element_type, selection, child_path, depth + 1, field_compiler
            )
            outputs.append(
                EmbeddedObjectOutput(
                    output_name=EDGES_FIELD_NAME,
                    field_name=EDGES_FIELD_NAME,
                    child_path=child_path,
                    is_list=True,
                )
            )
        else:
            raise QueryCompilationError(
                f'Field "{parent.name}" is a connection, so only "{COUNT_FIELD_NAME}", '
                f'"{NODES_FIELD_NAME}" and "{EDGES_FIELD_NAME}" can be selected on it, '
                f'not "{selection.name}"{selection.describe_location()}.'
            )

    context.projections[path] = ObjectProjection(
        type_name=element_type.name + CONNECTION_TYPE_MARKER, outputs=tuple(outputs)
    )
    return fetch_records


def _compile_edges_projection(
    context: _CompilationContext,
    element_type: ObjectType,
    parent: Call,
    path: SelectionPath,
    depth: int,
    field_compiler: FieldCompiler,
) -> None:
    """Compile "edges { cursor, node { ... } }" on a connection of the element type."""
    _validate_selection_block(context, parent, path, depth)
    outputs: List[OutputStep] = []
    for selection in parent.selections:
        _ensure_no_arguments(selection)
        child_path = path + (selection.name,)
        if selection.name == CURSOR_FIELD_NAME:
            _ensure_leaf_selection(selection, "the cursor of an edge")
            outputs.append(
                ScalarOutput(output_name=CURSOR_FIELD_NAME, field_name=CURSOR_FIELD_NAME)
            )
        elif selection.name == NODE_FIELD_NAME:
            _compile_object_projection(
                context, element_type, selection, child_path, depth + 1, field_compiler
            )
            outputs.append(
                EmbeddedObjectOutput(
                    output_name=NODE_FIELD_NAME,
                    field_name=NODE_FIELD_NAME,
                    child_path=child_path,
                    is_list=False,
                )
            )
        else:
            raise QueryCompilationError(
                f'Only "{CURSOR_FIELD_NAME}" and "{NODE_FIELD_NAME}" can be selected on '
                f'"{EDGES_FIELD_NAME}", not "{selection.name}"{selection.describe_location()}.'
            )

    context.projections[path] = ObjectProjection(
        type_name=element_type.name + "Edge", outputs=tuple(outputs)
    )


def _compile_data_field(
    context: _CompilationContext,
    object_type: ObjectType,
    selection: Call,
    child_path: SelectionPath,
    depth: int,
) -> OutputStep:
    """Compile a selection on a type of the schema, whose records come from the backend."""
    field_name = selection.name
    schema = context.schema_info.schema

    if field_name == TYPENAME_META_FIELD_NAME:
        _ensure_no_arguments(selection)
        _ensure_leaf_selection(selection, "the name of a type")
        return TypenameOutput(output_name=field_name, type_name=object_type.name)

    type_field = object_type.get_field(field_name)
    if type_field is None:
        built_in_fields = context.schema_info.default_fields.get_type_fields(object_type.name)
        if any(built_in_field.name == field_name for built_in_field in built_in_fields):
            # Built-in fields are maintained by the storage layer, and are output as stored.
            _ensure_no_arguments(selection)
            _ensure_leaf_selection(selection, "a built-in field")
            return ScalarOutput(output_name=field_name, field_name=field_name)
        _raise_unknown_field(object_type, selection)

    field_kind = context.schema_info.get_field_kind(object_type.name, field_name)
    if isinstance(field_kind, ConnectionKind):
        if selection.positional_arguments:
            raise QueryCompilationError(
                f'Connection field "{field_name}" only accepts named arguments'
                f"{selection.describe_location()}."
            )
        named_arguments = get_named_arguments(selection, PAGINATION_ARGUMENT_NAMES)
        pagination = get_pagination(selection, named_arguments)
        target_type = schema.get_type(field_kind.type_name)
        fetch_records = _compile_connection_projection(
            context, target_type, selection, child_path, depth + 1, _compile_data_field
        )
        return ConnectionOutput(
            output_name=field_name,
            target_type_name=target_type.name,
            reverse_field_name=field_kind.reverse_name,
            pagination=pagination,
            fetch_records=fetch_records,
            child_path=child_path,
        )

    _ensure_no_arguments(selection)
    if isinstance(field_kind, ScalarKind):
        _ensure_leaf_selection(selection, f"of scalar type {field_kind.scalar_name}")
        return ScalarOutput(output_name=field_name, field_name=field_name)
    elif isinstance(field_kind, ListKind):
        if isinstance(field_kind.element, ScalarKind):
            _ensure_leaf_selection(selection, f"a list of {field_kind.element.scalar_name}")
            return ScalarOutput(output_name=field_name, field_name=field_name)
        element_type = schema.get_type(field_kind.element.type_name)
        _compile_object_projection(
            context, element_type, selection, child_path, depth + 1, _compile_data_field
        )
        return EmbeddedObjectOutput(
            output_name=field_name, field_name=field_name, child_path=child_path, is_list=True
        )
    elif isinstance(field_kind, ReferenceKind):
        target_type = schema.get_type(field_kind.type_name)
        _compile_object_projection(
            context, target_type, selection, child_path, depth + 1, _compile_data_field
        )
        if field_kind.is_node:
            return RelatedNodeOutput(
                output_name=field_name,
                field_name=field_name,
                target_type_name=target_type.name,
                child_path=child_path,
            )
        return EmbeddedObjectOutput(
            output_name=field_name, field_name=field_name, child_path=child_path, is_list=False
        )
    else:
        raise AssertionError(
            f"Unreachable code reached: unexpected field kind {field_kind} for field "
            f"{object_type.name}.{field_name}"
        )


def _compile_meta_field(
    context: _CompilationContext,
    object_type: ObjectType,
    selection: Call,
    child_path: SelectionPath,
    depth: int,
) -> OutputStep:
    """Compile a selection on a built-in meta type, whose records are compile-time snapshots."""
    field_name = selection.name
    _ensure_no_arguments(selection)

    if field_name == TYPENAME_META_FIELD_NAME:
        _ensure_leaf_selection(selection, "the name of a type")
        return TypenameOutput(output_name=field_name, type_name=object_type.name)

    type_field = object_type.get_field(field_name)
    if type_field is None:
        _raise_unknown_field(object_type, selection)

    if type_field.type == CONNECTION_TYPE_MARKER:
        element_type = META_SCHEMA.get_type(type_field.of_type)
        _compile_connection_projection(
            context, element_type, selection, child_path, depth + 1, _compile_meta_field
        )
        return EmbeddedConnectionOutput(
            output_name=field_name, field_name=field_name, child_path=child_path
        )
    elif type_field.type == LIST_TYPE_MARKER and is_scalar_type_name(type_field.of_type):
        _ensure_leaf_selection(selection, f"a list of {type_field.of_type}")
        return ScalarOutput(output_name=field_name, field_name=field_name)
    elif is_scalar_type_name(type_field.type):
        _ensure_leaf_selection(selection, f"of scalar type {type_field.type}")
        return ScalarOutput(output_name=field_name, field_name=field_name)
    else:
        is_list = type_field.type == LIST_TYPE_MARKER
        target_type = META_SCHEMA.get_type(type_field.of_type if is_list else type_field.type)
        _compile_object_projection(
            context, target_type, selection, child_path, depth + 1, _compile_meta_field
        )
        return EmbeddedObjectOutput(
            output_name=field_name, field_name=field_name, child_path=child_path, is_list=is_list
        )


# ################
# Call compilers #
# ################


def _get_node_type(context: _CompilationContext, call: Call, type_name: str) -> ObjectType:
    """Return the named type of the schema, which must implement the Node interface."""
    object_type = context.schema_info.schema.get_type(type_name)
    if object_type is None:
        raise QueryCompilationError(
            f'Type "{type_name}" given to "{call.name}" does not exist in the schema'
            f"{call.describe_location()}."
        )
    if not object_type.is_node:
        raise QueryCompilationError(
            f'Type "{type_name}" given to "{call.name}" does not implement the Node interface, '
            f"so it has no records of its own{call.describe_location()}."
        )
    return object_type


def _compile_node_call(context: _CompilationContext, call: Call) -> CallPlan:
    """Compile node(TypeName, id)."""
    type_argument, id_argument = get_positional_arguments(call, 2)
    get_named_arguments(call, ())
    object_type = _get_node_type(
        context, call, get_name_argument(call, type_argument, "type name")
    )
    node_id = get_id_argument(id_argument)

    _compile_object_projection(context, object_type, call, ROOT_PATH, 1, _compile_data_field)
    return FetchNodePlan(
        type_name=object_type.name, node_id=node_id, projections=context.get_projections()
    )


def _compile_nodes_call(context: _CompilationContext, call: Call) -> CallPlan:
    """Compile nodes(TypeName, first: n, after: cursor, <scalar field>: value, ...).

    Named arguments other than "first" and "after" are equality filters on scalar fields.
    """
    (type_argument,) = get_positional_arguments(call, 1)
    object_type = _get_node_type(
        context, call, get_name_argument(call, type_argument, "type name")
    )

    filterable_field_names = {
        type_field.name
        for type_field in object_type.fields
        if isinstance(
            context.schema_info.get_field_kind(object_type.name, type_field.name), ScalarKind
        )
    }
    named_arguments = get_named_arguments(
        call, PAGINATION_ARGUMENT_NAMES | filterable_field_names
    )
    pagination = get_pagination(call, named_arguments)

    _, filter_arguments = lsplit(
        lambda item: item[0] in PAGINATION_ARGUMENT_NAMES, named_arguments.items()
    )
    filters = []
    for argument_name, argument in filter_arguments:
        field_kind = context.schema_info.get_field_kind(object_type.name, argument_name)
        filters.append((argument_name, coerce_scalar_value(field_kind.scalar_name, argument.value)))

    fetch_records = _compile_connection_projection(
        context, object_type, call, ROOT_PATH, 1, _compile_data_field
    )
    return FetchNodesPlan(
        type_name=object_type.name,
        filters=tuple(filters),
        pagination=pagination,
        fetch_records=fetch_records,
        projections=context.get_projections(),
    )


def _compile_schema_call(context: _CompilationContext, call: Call) -> CallPlan:
    """Compile schema()."""
    get_positional_arguments(call, 0)
    get_named_arguments(call, ())

    meta_type = META_SCHEMA.get_type(SCHEMA_META_TYPE_NAME)
    _compile_object_projection(context, meta_type, call, ROOT_PATH, 1, _compile_meta_field)
    return IntrospectionPlan(
        record=make_schema_record(context.schema_info.schema),
        projections=context.get_projections(),
    )


def _compile_type_call(context: _CompilationContext, call: Call) -> CallPlan:
    """Compile type(TypeName). Both the types of the schema and the meta types can be inspected."""
    (type_argument,) = get_positional_arguments(call, 1)
    get_named_arguments(call, ())
    type_name = get_name_argument(call, type_argument, "type name")

    inspected_type = context.schema_info.schema.get_type(type_name) or META_SCHEMA.get_type(
        type_name
    )
    if inspected_type is None:
        raise QueryCompilationError(
            f'Type "{type_name}" given to "{call.name}" does not exist in the schema'
            f"{call.describe_location()}."
        )

    meta_type = META_SCHEMA.get_type(TYPE_META_TYPE_NAME)
    _compile_object_projection(context, meta_type, call, ROOT_PATH, 1, _compile_meta_field)
    return IntrospectionPlan(
        record=make_type_record(inspected_type), projections=context.get_projections()
    )


def _compile_schema_mutation_call(
    context: _CompilationContext,
    call: Call,
    mutation_compiler: MutationCompiler,
    result_type_name: str,
) -> CallPlan:
    """Compile one of the calls that change the schema. Only admins may make such calls."""
    if not context.credentials.is_admin:
        raise QueryAuthorizationError(
            f'"{call.name}" changes the schema, which requires admin credentials'
            f"{call.describe_location()}."
        )

    change, changed_types = mutation_compiler(context.schema_info, call)

    meta_type = META_SCHEMA.get_type(result_type_name)
    _compile_object_projection(context, meta_type, call, ROOT_PATH, 1, _compile_meta_field)
    return SchemaMutationPlan(
        change=change,
        success_record=make_mutation_result_record(changed_types),
        failure_record=FAILED_MUTATION_RECORD,
        projections=context.get_projections(),
    )


_CALL_COMPILERS: Dict[str, Callable[[_CompilationContext, Call], CallPlan]] = {
    "schema": _compile_schema_call,
    "type": _compile_type_call,
    "nodes": _compile_nodes_call,
    "node": _compile_node_call,
    "createType": partial(
        _compile_schema_mutation_call,
        mutation_compiler=compile_create_type,
        result_type_name=SCHEMA_RESULT_META_TYPE_NAME,
    ),
    "deleteType": partial(
        _compile_schema_mutation_call,
        mutation_compiler=compile_delete_type,
        result_type_name=SCHEMA_RESULT_META_TYPE_NAME,
    ),
    "addField": partial(
        _compile_schema_mutation_call,
        mutation_compiler=compile_add_field,
        result_type_name=MUTATION_RESULT_META_TYPE_NAME,
    ),
    "removeField": partial(
        _compile_schema_mutation_call,
        mutation_compiler=compile_remove_field,
        result_type_name=MUTATION_RESULT_META_TYPE_NAME,
    ),
}


# ############
# Public API #
# ############


def compile_query_ast(
    schema_info: SchemaInfo,
    query: Query,
    credentials: Optional[Credentials] = None,
    max_depth: int = DEFAULT_MAX_SELECTION_DEPTH,
) -> QueryPlan:
    """Compile a parsed query against a validated schema.

    Args:
        schema_info: the validated schema snapshot to compile against
        query: the call tree produced by parse_query()
        credentials: identity of the caller, or None for anonymous callers
        max_depth: maximum nesting depth of selections, counting the top-level call's own
                   selection as depth 1

    Returns:
        QueryPlan with one call plan per top-level call, in declared order

    Raises:
        QueryCompilationError: if any call does not fit the schema
        QueryAuthorizationError: if a call requires admin credentials the caller does not have
    """
    if credentials is None:
        credentials = ANONYMOUS_CREDENTIALS

    call_plans = []
    for call in query.calls:
        call_compiler = _CALL_COMPILERS.get(call.name)
        if call_compiler is None:
            raise QueryCompilationError(
                f'Unknown call "{call.name}"{call.describe_location()}. '
                f"Available calls: {sorted(_CALL_COMPILERS)}"
            )
        context = _CompilationContext(schema_info, credentials, max_depth)
        call_plan = call_compiler(context, call)
        logger.debug("Compiled call %s into %s.", call.name, type(call_plan).__name__)
        call_plans.append(call_plan)

    return QueryPlan(call_plans=tuple(call_plans))

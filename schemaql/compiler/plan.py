# Copyright 2019-present Kensho Technologies, LLC.
"""Query plan: the backend-agnostic output of the compiler.

A QueryPlan holds one CallPlan per top-level call of the query, in declared order.

Every CallPlan describes the shape of its result as a flat arena of ObjectProjection objects,
keyed by the SelectionPath leading to them from the call's root. Output steps that need the
projection of a nested object refer to it by path rather than holding it directly. Since a
path only ever grows as the selection nests deeper, the arena is finite and acyclic even when
the schema itself is cyclic (e.g. User.microposts <-> Micropost.author).

Plans do not reference the Schema: they only carry copies of the names and argument values
needed to execute them, and snapshots of any schema metadata they return.
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union

from ..schema.schema_changes import SchemaChange


SelectionPath = Tuple[str, ...]

ROOT_PATH: SelectionPath = ()


@dataclass(frozen=True)
class Pagination:
    """Page of a connection: at most "first" records, starting after the record with id "after".

    Records of a connection are ordered by id, and a record's id is its cursor.
    """

    first: Optional[int] = None
    after: Optional[str] = None


# ##############
# Output steps #
# ##############


@dataclass(frozen=True)
class ScalarOutput:
    """Output the value of the record's field as-is."""

    output_name: str
    field_name: str


@dataclass(frozen=True)
class TypenameOutput:
    """Output the name of the type of the record."""

    output_name: str
    type_name: str


@dataclass(frozen=True)
class EmbeddedObjectOutput:
    """Project the object (or list of objects) stored in the record's field."""

    output_name: str
    field_name: str
    child_path: SelectionPath
    is_list: bool


@dataclass(frozen=True)
class EmbeddedConnectionOutput:
    """Present the list stored in the record's field as a connection, with count/nodes/edges.

    The cursor of each edge is the position of the element within the list.
    """

    output_name: str
    field_name: str
    child_path: SelectionPath


@dataclass(frozen=True)
class RelatedNodeOutput:
    """Fetch the Node whose id is stored in the record's field, and project it."""

    output_name: str
    field_name: str
    target_type_name: str
    child_path: SelectionPath


@dataclass(frozen=True)
class ConnectionOutput:
    """Fetch the records of the target type whose reverse field points at the current record.

    If fetch_records is False, only the count is selected and no record bodies are fetched.
    """

    output_name: str
    target_type_name: str
    reverse_field_name: str
    pagination: Pagination
    fetch_records: bool
    child_path: SelectionPath


OutputStep = Union[
    ScalarOutput,
    TypenameOutput,
    EmbeddedObjectOutput,
    EmbeddedConnectionOutput,
    RelatedNodeOutput,
    ConnectionOutput,
]


@dataclass(frozen=True)
class ObjectProjection:
    """The ordered outputs to produce for one object of the result."""

    type_name: str
    outputs: Tuple[OutputStep, ...]

    @property
    def output_names(self) -> Tuple[str, ...]:
        """Return the keys of the projected object, in order."""
        return tuple(step.output_name for step in self.outputs)


# ############
# Call plans #
# ############


@dataclass(frozen=True)
class FetchNodePlan:
    """Fetch one record by id, then project it at ROOT_PATH. A missing record yields None."""

    type_name: str
    node_id: str
    projections: Mapping[SelectionPath, ObjectProjection]


@dataclass(frozen=True)
class FetchNodesPlan:
    """Fetch a filtered, paginated set of records, then project the connection at ROOT_PATH."""

    type_name: str

    # (field name, coerced value) equality filters, all of which must hold.
    filters: Tuple[Tuple[str, Any], ...]
    pagination: Pagination

    # False when only the count is selected, in which case no record bodies are fetched.
    fetch_records: bool
    projections: Mapping[SelectionPath, ObjectProjection]


@dataclass(frozen=True)
class IntrospectionPlan:
    """Project a snapshot of schema metadata taken at compile time. Needs no adapter calls."""

    record: Mapping[str, Any] = field(repr=False)
    projections: Mapping[SelectionPath, ObjectProjection]


@dataclass(frozen=True)
class SchemaMutationPlan:
    """Ask the adapter to apply a schema change, then project the mutation's result.

    success_record is the result to project if the adapter applies the change, and
    failure_record the one to project if it does not.
    """

    change: SchemaChange
    success_record: Mapping[str, Any] = field(repr=False)
    failure_record: Mapping[str, Any] = field(repr=False)
    projections: Mapping[SelectionPath, ObjectProjection]


CallPlan = Union[FetchNodePlan, FetchNodesPlan, IntrospectionPlan, SchemaMutationPlan]


@dataclass(frozen=True)
class QueryPlan:
    """The compiled form of a query: one call plan per top-level call, in declared order."""

    call_plans: Tuple[CallPlan, ...]

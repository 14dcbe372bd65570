# Copyright 2020-present Kensho Technologies, LLC.
"""Execution of query plans against an ExecutionAdapter.

The executor runs the call plans of a QueryPlan one at a time, in declared order, and returns
one result per top-level call. Within a call, it walks the plan's projections depth-first,
asking the adapter for exactly the records the projections need, and builds result objects
that contain exactly the selected keys, in selection order.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..compiler.plan import (
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
from ..schema.builtins import ID_FIELD_NAME
from .typedefs import ExecutionAdapter, Record


logger = logging.getLogger(__name__)

Projections = Mapping[SelectionPath, ObjectProjection]


def _make_connection_record(
    records: Sequence[Any], total_count: int, cursors: Sequence[str]
) -> Dict[str, Any]:
    """Return the record that connection projections (count, nodes, edges) are evaluated against."""
    return {
        "count": total_count,
        "nodes": list(records),
        "edges": [{"cursor": cursor, "node": record} for cursor, record in zip(cursors, records)],
    }


def _project_record(
    adapter: ExecutionAdapter, projections: Projections, path: SelectionPath, record: Record
) -> Dict[str, Any]:
    """Return the result object for the record, as described by the projection at the path."""
    projection = projections[path]
    return {
        step.output_name: _evaluate_output_step(adapter, projections, step, record)
        for step in projection.outputs
    }


def _project_optional_record(
    adapter: ExecutionAdapter,
    projections: Projections,
    path: SelectionPath,
    record: Optional[Record],
) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    return _project_record(adapter, projections, path, record)


def _evaluate_output_step(
    adapter: ExecutionAdapter, projections: Projections, step: OutputStep, record: Record
) -> Any:
    """Return the value the output step produces for the given record."""
    if isinstance(step, ScalarOutput):
        return record.get(step.field_name)
    elif isinstance(step, TypenameOutput):
        return step.type_name
    elif isinstance(step, EmbeddedObjectOutput):
        value = record.get(step.field_name)
        if value is None:
            return None
        if step.is_list:
            return [
                _project_optional_record(adapter, projections, step.child_path, element)
                for element in value
            ]
        return _project_record(adapter, projections, step.child_path, value)
    elif isinstance(step, EmbeddedConnectionOutput):
        elements = record.get(step.field_name) or []
        connection = _make_connection_record(
            elements, len(elements), [str(index) for index in range(len(elements))]
        )
        return _project_record(adapter, projections, step.child_path, connection)
    elif isinstance(step, RelatedNodeOutput):
        related_id = record.get(step.field_name)
        if related_id is None:
            return None
        related_record = adapter.fetch_by_id(step.target_type_name, related_id)
        return _project_optional_record(adapter, projections, step.child_path, related_record)
    elif isinstance(step, ConnectionOutput):
        owner_id = record[ID_FIELD_NAME]
        if step.fetch_records:
            records, total_count = adapter.fetch_by_reverse_relation(
                step.target_type_name, step.reverse_field_name, owner_id, step.pagination
            )
        else:
            records = []
            total_count = adapter.count_by_reverse_relation(
                step.target_type_name, step.reverse_field_name, owner_id
            )
        connection = _make_connection_record(
            records, total_count, [related[ID_FIELD_NAME] for related in records]
        )
        return _project_record(adapter, projections, step.child_path, connection)
    else:
        raise AssertionError(f"Unreachable code reached: unexpected output step {step}")


def _execute_call_plan(adapter: ExecutionAdapter, call_plan: CallPlan) -> Any:
    """Execute a single call plan, and return its result."""
    projections = call_plan.projections
    if isinstance(call_plan, FetchNodePlan):
        record = adapter.fetch_by_id(call_plan.type_name, call_plan.node_id)
        return _project_optional_record(adapter, projections, ROOT_PATH, record)
    elif isinstance(call_plan, FetchNodesPlan):
        if call_plan.fetch_records:
            records, total_count = adapter.fetch_many(
                call_plan.type_name, call_plan.filters, call_plan.pagination
            )
        else:
            records = []
            total_count = adapter.count_many(call_plan.type_name, call_plan.filters)
        connection = _make_connection_record(
            records, total_count, [record[ID_FIELD_NAME] for record in records]
        )
        return _project_record(adapter, projections, ROOT_PATH, connection)
    elif isinstance(call_plan, IntrospectionPlan):
        return _project_record(adapter, projections, ROOT_PATH, call_plan.record)
    elif isinstance(call_plan, SchemaMutationPlan):
        applied = adapter.apply_schema_change(call_plan.change)
        if applied:
            logger.info("Applied schema change %s.", call_plan.change)
            result_record = call_plan.success_record
        else:
            logger.warning("Schema change %s was not applied by the backend.", call_plan.change)
            result_record = call_plan.failure_record
        return _project_record(adapter, projections, ROOT_PATH, result_record)
    else:
        raise AssertionError(f"Unreachable code reached: unexpected call plan {call_plan}")


# ############
# Public API #
# ############


def execute_plan(plan: QueryPlan, adapter: ExecutionAdapter) -> List[Any]:
    """Execute the query plan against the adapter, and return one result per top-level call.

    Args:
        plan: the QueryPlan to execute, as produced by the compiler
        adapter: the ExecutionAdapter through which to access the backing store

    Returns:
        list with the result of each call, in declared order. A node() call whose record
        does not exist produces None; all other results are dicts with exactly the selected keys.

    Raises:
        QueryExecutionError: propagated unchanged from the adapter
    """
    results = []
    for call_plan in plan.call_plans:
        logger.debug("Executing %s.", type(call_plan).__name__)
        results.append(_execute_call_plan(adapter, call_plan))
    return results

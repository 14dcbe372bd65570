# Copyright 2020-present Kensho Technologies, LLC.
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..compiler.plan import Pagination
from ..execution import ExecutionAdapter, Filters, Record
from ..schema.model import Schema
from ..schema.schema_changes import (
    CreateTypeChange,
    DeleteTypeChange,
    SchemaChange,
    apply_validated_schema_change,
)


class InMemoryTestAdapter(ExecutionAdapter):
    """A simple adapter over in-memory records, which records every call made to it.

    Schema changes are applied to the adapter's own copy of the schema, so that tests can
    compile further queries against the changed schema.
    """

    def __init__(self, schema: Schema, records_by_type: Dict[str, List[Dict[str, Any]]]) -> None:
        """Create a new adapter over the given schema and records."""
        self.schema = schema
        self.records_by_type = {
            type_name: [dict(record) for record in records]
            for type_name, records in records_by_type.items()
        }
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.accept_schema_changes = True

    @property
    def call_names(self) -> List[str]:
        """Return the names of the adapter methods called so far, in order."""
        return [call_name for call_name, _ in self.calls]

    def _get_records(self, type_name: str) -> List[Dict[str, Any]]:
        return sorted(self.records_by_type.get(type_name, []), key=lambda record: record["id"])

    def _get_page(
        self, records: List[Dict[str, Any]], pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        page = records
        if pagination.after is not None:
            page = [record for record in page if record["id"] > pagination.after]
        if pagination.first is not None:
            page = page[: pagination.first]
        return page, len(records)

    def _filter_records(self, type_name: str, filters: Filters) -> List[Dict[str, Any]]:
        return [
            record
            for record in self._get_records(type_name)
            if all(record.get(field_name) == value for field_name, value in filters)
        ]

    def fetch_by_id(self, type_name: str, node_id: str) -> Optional[Record]:
        """Return the record with the given id, if any."""
        self.calls.append(("fetch_by_id", (type_name, node_id)))
        for record in self._get_records(type_name):
            if record["id"] == node_id:
                return record
        return None

    def fetch_many(
        self, type_name: str, filters: Filters, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the matching records, and their count."""
        self.calls.append(("fetch_many", (type_name, tuple(filters), pagination)))
        return self._get_page(self._filter_records(type_name, filters), pagination)

    def fetch_by_reverse_relation(
        self, type_name: str, field_name: str, owner_id: str, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the records pointing at the owner, and their count."""
        self.calls.append(
            ("fetch_by_reverse_relation", (type_name, field_name, owner_id, pagination))
        )
        return self._get_page(self._filter_records(type_name, [(field_name, owner_id)]), pagination)

    def count_many(self, type_name: str, filters: Filters) -> int:
        """Return the number of matching records, without looking at their bodies."""
        self.calls.append(("count_many", (type_name, tuple(filters))))
        return len(self._filter_records(type_name, filters))

    def count_by_reverse_relation(self, type_name: str, field_name: str, owner_id: str) -> int:
        """Return the number of records pointing at the owner."""
        self.calls.append(("count_by_reverse_relation", (type_name, field_name, owner_id)))
        return len(self._filter_records(type_name, [(field_name, owner_id)]))

    def apply_schema_change(self, change: SchemaChange) -> bool:
        """Apply the change to the adapter's schema, unless refused or no longer valid."""
        self.calls.append(("apply_schema_change", (change,)))
        if not self.accept_schema_changes:
            return False

        new_schema, _ = apply_validated_schema_change(self.schema, change)
        if new_schema is None:
            return False

        self.schema = new_schema
        if isinstance(change, CreateTypeChange):
            self.records_by_type.setdefault(change.new_type.name, [])
        elif isinstance(change, DeleteTypeChange):
            self.records_by_type.pop(change.type_name, None)
        return True

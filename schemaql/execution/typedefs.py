# Copyright 2020-present Kensho Technologies, LLC.
from abc import ABCMeta, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..compiler.plan import Pagination
from ..schema.schema_changes import SchemaChange


# A stored record of a Node type: field name -> stored value. Every record has an "id" key.
Record = Mapping[str, Any]

# (field name, value) equality filters, all of which must hold.
Filters = Sequence[Tuple[str, Any]]

COUNT_ONLY_PAGINATION = Pagination(first=0)


class ExecutionAdapter(metaclass=ABCMeta):
    """Base class defining the API through which query plans read and change the backing store.

    The plan executor is backend-agnostic: it performs all data access through this small API,
    and owns the projection of the raw records returned here into the shape the query requested.

    ## Records, ordering and pagination

    Records are mappings of field name to stored value, and must contain at least the fields of
    the type as declared in the schema (extra fields are fine, they are never output unless
    selected). Fields holding to-one relations store the id of the related record. Connection
    fields are not stored: they are resolved via the reverse field on the other side.

    Methods that return several records return them ordered by id. The id of a record is its
    cursor: pagination with after=X skips every record whose id is not greater than X, and
    pagination with first=N returns at most N records. Alongside the page of records, those methods
    also return the total count of matching records, disregarding pagination.

    ## Schema changes

    apply_schema_change() persists a change compiled from a schema mutation call. The compiler has
    checked the change against the snapshot the query was compiled with, but other changes may
    have been applied since. Adapters must serialize schema changes, recheck each one against
    their current schema with apply_validated_schema_change(), and return False for a change
    that no longer applies or would leave the schema invalid.

    ## Errors

    Failures of the backing store are reported by raising QueryExecutionError, which the executor
    propagates to the caller unchanged.
    """

    @abstractmethod
    def fetch_by_id(self, type_name: str, node_id: str) -> Optional[Record]:
        """Return the record of the given type with the given id, or None if there is none."""

    @abstractmethod
    def fetch_many(
        self, type_name: str, filters: Filters, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the records of the given type that satisfy the filters, and their count.

        Args:
            type_name: name of the Node type whose records to fetch
            filters: equality filters on scalar fields, all of which must hold
            pagination: the page of records to return

        Returns:
            tuple (records on the requested page ordered by id, total count of matching records)
        """

    @abstractmethod
    def fetch_by_reverse_relation(
        self, type_name: str, field_name: str, owner_id: str, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the records whose field holds the owner's id, and their count.

        Args:
            type_name: name of the Node type whose records to fetch
            field_name: name of the to-one relation field of that type pointing at the owner
            owner_id: id of the record that owns the connection
            pagination: the page of records to return

        Returns:
            tuple (records on the requested page ordered by id, total count of matching records)
        """

    @abstractmethod
    def apply_schema_change(self, change: SchemaChange) -> bool:
        """Persist the schema change. Return True if it was applied, and False otherwise."""

    def count_many(self, type_name: str, filters: Filters) -> int:
        """Return the number of records of the given type that satisfy the filters.

        Used when the query selects nothing but the count. The default implementation requests
        an empty page from fetch_many(); adapters able to count without loading any records
        should override it.
        """
        _, total_count = self.fetch_many(type_name, filters, COUNT_ONLY_PAGINATION)
        return total_count

    def count_by_reverse_relation(self, type_name: str, field_name: str, owner_id: str) -> int:
        """Return the number of records of the type whose field holds the owner's id.

        Used when the query selects nothing but the count. The default implementation requests
        an empty page from fetch_by_reverse_relation().
        """
        _, total_count = self.fetch_by_reverse_relation(
            type_name, field_name, owner_id, COUNT_ONLY_PAGINATION
        )
        return total_count

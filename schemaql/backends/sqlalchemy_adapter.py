# Copyright 2020-present Kensho Technologies, LLC.
"""Reference ExecutionAdapter storing the records of each Node type in a SQL table.

Each Node type gets a table named after it, with one column per stored field:
    - scalar fields get a column of the matching SQL type, and the id field is the primary key;
    - to-one relations to Node types store the id of the related record;
    - embedded objects, lists, and built-in fields are stored as JSON;
    - Connection fields are not stored, since they are resolved via the reverse field.
Types that do not implement Node have no table: their values are embedded in their owners.

Schema changes are applied to the database as DDL statements, and are serialized by a lock.
"""
import logging
import threading
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import sqlalchemy
from sqlalchemy import and_, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..compiler.plan import Pagination
from ..exceptions import QueryExecutionError
from ..execution.typedefs import ExecutionAdapter, Filters, Record
from ..schema.builtins import DEFAULT_FIELD_REGISTRY, ID_FIELD_NAME, DefaultFieldRegistry
from ..schema.field_kinds import (
    ConnectionKind,
    ListKind,
    ReferenceKind,
    ScalarKind,
    resolve_field_kind,
)
from ..schema.model import Field, ObjectType, Schema
from ..schema.scalars import (
    BOOLEAN_SCALAR_NAME,
    DATETIME_SCALAR_NAME,
    FLOAT_SCALAR_NAME,
    ID_SCALAR_NAME,
    INT_SCALAR_NAME,
    STRING_SCALAR_NAME,
)
from ..schema.schema_changes import (
    AddFieldChange,
    CreateTypeChange,
    DeleteTypeChange,
    RemoveFieldChange,
    SchemaChange,
    apply_validated_schema_change,
    get_fields_referring_to_type,
)


logger = logging.getLogger(__name__)

_SCALAR_COLUMN_TYPES = {
    ID_SCALAR_NAME: sqlalchemy.String,
    STRING_SCALAR_NAME: sqlalchemy.Text,
    INT_SCALAR_NAME: sqlalchemy.Integer,
    FLOAT_SCALAR_NAME: sqlalchemy.Float,
    BOOLEAN_SCALAR_NAME: sqlalchemy.Boolean,
    DATETIME_SCALAR_NAME: sqlalchemy.DateTime,
}


def _make_column(schema: Schema, type_field: Field) -> Optional[sqlalchemy.Column]:
    """Return the column storing the field, or None if the field is not stored."""
    field_kind = resolve_field_kind(schema, type_field)
    if isinstance(field_kind, ConnectionKind):
        return None
    elif isinstance(field_kind, ScalarKind):
        column_type = _SCALAR_COLUMN_TYPES[field_kind.scalar_name]()
        if type_field.name == ID_FIELD_NAME:
            return sqlalchemy.Column(type_field.name, column_type, primary_key=True)
        return sqlalchemy.Column(type_field.name, column_type, nullable=True)
    elif isinstance(field_kind, ReferenceKind) and field_kind.is_node:
        return sqlalchemy.Column(type_field.name, sqlalchemy.String(), nullable=True)
    elif isinstance(field_kind, (ReferenceKind, ListKind)):
        return sqlalchemy.Column(type_field.name, sqlalchemy.JSON(), nullable=True)
    else:
        raise AssertionError(f"Unreachable code reached: unexpected field kind {field_kind}")


def _make_table(
    schema: Schema,
    default_fields: DefaultFieldRegistry,
    object_type: ObjectType,
    metadata: sqlalchemy.MetaData,
) -> sqlalchemy.Table:
    columns = [_make_column(schema, type_field) for type_field in object_type.fields]
    built_in_columns = [
        sqlalchemy.Column(built_in_field.name, sqlalchemy.JSON(), nullable=True)
        for built_in_field in default_fields.get_type_fields(object_type.name)
    ]
    return sqlalchemy.Table(
        object_type.name,
        metadata,
        *[column for column in columns if column is not None],
        *built_in_columns,
    )


def make_tables(
    schema: Schema, default_fields: DefaultFieldRegistry = DEFAULT_FIELD_REGISTRY
) -> Tuple[sqlalchemy.MetaData, Dict[str, sqlalchemy.Table]]:
    """Return SQLAlchemy metadata with a table for each Node type of the valid schema.

    Args:
        schema: a schema that passed validation
        default_fields: registry of the built-in fields each type carries

    Returns:
        tuple (MetaData, dict of type name -> Table)
    """
    metadata = sqlalchemy.MetaData()
    tables = {
        object_type.name: _make_table(schema, default_fields, object_type, metadata)
        for object_type in schema.types
        if object_type.is_node
    }
    return metadata, tables


class SQLAlchemyAdapter(ExecutionAdapter):
    """ExecutionAdapter backed by a relational database, accessed via a SQLAlchemy Engine."""

    def __init__(
        self,
        engine: Engine,
        schema: Schema,
        default_fields: DefaultFieldRegistry = DEFAULT_FIELD_REGISTRY,
        create_tables: bool = True,
    ) -> None:
        """Create a new adapter over the given database.

        Args:
            engine: the Engine through which to access the database
            schema: the current, valid schema of the stored data
            default_fields: registry of the built-in fields each type carries
            create_tables: whether to create the tables of any types that lack one
        """
        self._engine = engine
        self._default_fields = default_fields
        self._schema_change_lock = threading.Lock()
        self._set_schema(schema)
        if create_tables:
            try:
                self._metadata.create_all(engine)
            except SQLAlchemyError as e:
                raise QueryExecutionError(f"Failed to create tables for the schema: {e}") from e

    @property
    def schema(self) -> Schema:
        """Return the schema the stored data currently conforms to."""
        return self._schema

    def _set_schema(self, schema: Schema) -> None:
        self._metadata, self._tables = make_tables(schema, self._default_fields)
        self._schema = schema

    def _get_table(self, type_name: str) -> sqlalchemy.Table:
        table = self._tables.get(type_name)
        if table is None:
            raise QueryExecutionError(f"No table stores the records of type {type_name}.")
        return table

    def _run_query(self, query: Any) -> Sequence[Mapping[str, Any]]:
        try:
            with self._engine.connect() as connection:
                return connection.execute(query).mappings().all()
        except SQLAlchemyError as e:
            raise QueryExecutionError(f"Failed to run query {query}: {e}") from e

    def _count(self, table: sqlalchemy.Table, conditions: Sequence[Any]) -> int:
        query = select(func.count()).select_from(table)
        if conditions:
            query = query.where(and_(*conditions))
        try:
            with self._engine.connect() as connection:
                return connection.execute(query).scalar_one()
        except SQLAlchemyError as e:
            raise QueryExecutionError(f"Failed to count records of {table.name}: {e}") from e

    def _fetch_page(
        self, table: sqlalchemy.Table, conditions: Sequence[Any], pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        total_count = self._count(table, conditions)

        id_column = table.c[ID_FIELD_NAME]
        page_conditions = list(conditions)
        if pagination.after is not None:
            page_conditions.append(id_column > pagination.after)
        query = select(table).order_by(id_column)
        if page_conditions:
            query = query.where(and_(*page_conditions))
        if pagination.first is not None:
            query = query.limit(pagination.first)
        records = [dict(row) for row in self._run_query(query)]

        logger.debug(
            "Fetched %d of %d records from table %s.", len(records), total_count, table.name
        )
        return records, total_count

    def _get_filter_conditions(self, table: sqlalchemy.Table, filters: Filters) -> Sequence[Any]:
        return [table.c[field_name] == value for field_name, value in filters]

    def fetch_by_id(self, type_name: str, node_id: str) -> Optional[Record]:
        """Return the record of the given type with the given id, or None if there is none."""
        table = self._get_table(type_name)
        rows = self._run_query(select(table).where(table.c[ID_FIELD_NAME] == node_id))
        if not rows:
            return None
        return dict(rows[0])

    def fetch_many(
        self, type_name: str, filters: Filters, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the records of the type that satisfy the filters, and their count."""
        table = self._get_table(type_name)
        return self._fetch_page(table, self._get_filter_conditions(table, filters), pagination)

    def fetch_by_reverse_relation(
        self, type_name: str, field_name: str, owner_id: str, pagination: Pagination
    ) -> Tuple[Sequence[Record], int]:
        """Return a page of the records whose field holds the owner's id, and their count."""
        table = self._get_table(type_name)
        return self._fetch_page(table, [table.c[field_name] == owner_id], pagination)

    def count_many(self, type_name: str, filters: Filters) -> int:
        """Return the number of records of the given type that satisfy the filters."""
        table = self._get_table(type_name)
        return self._count(table, self._get_filter_conditions(table, filters))

    def count_by_reverse_relation(self, type_name: str, field_name: str, owner_id: str) -> int:
        """Return the number of records of the type whose field holds the owner's id."""
        table = self._get_table(type_name)
        return self._count(table, [table.c[field_name] == owner_id])

    def insert_records(self, type_name: str, records: Sequence[Record]) -> None:
        """Store new records of the given type."""
        table = self._get_table(type_name)
        try:
            with self._engine.begin() as connection:
                connection.execute(table.insert(), [dict(record) for record in records])
        except SQLAlchemyError as e:
            raise QueryExecutionError(f"Failed to insert records into {type_name}: {e}") from e

    def apply_schema_change(self, change: SchemaChange) -> bool:
        """Change the database to fit the schema change, and start using the changed schema."""
        with self._schema_change_lock:
            old_schema = self._schema
            new_schema, errors = apply_validated_schema_change(
                old_schema, change, self._default_fields
            )
            if new_schema is None:
                logger.warning(
                    "Refusing schema change %s, which does not fit the current schema: %s",
                    change,
                    "; ".join(errors),
                )
                return False

            new_metadata, new_tables = make_tables(new_schema, self._default_fields)
            try:
                with self._engine.begin() as connection:
                    self._apply_ddl(connection, change, old_schema, new_tables)
            except SQLAlchemyError as e:
                raise QueryExecutionError(f"Failed to apply schema change {change}: {e}") from e

            self._set_schema(new_schema)
            logger.info("Applied schema change to the database: %s", change)
            return True

    def _apply_ddl(
        self,
        connection: Connection,
        change: SchemaChange,
        old_schema: Schema,
        new_tables: Mapping[str, sqlalchemy.Table],
    ) -> None:
        """Issue the DDL statements that make the database fit the changed schema."""
        if isinstance(change, CreateTypeChange):
            new_table = new_tables.get(change.new_type.name)
            if new_table is not None:
                new_table.create(connection)
        elif isinstance(change, DeleteTypeChange):
            for type_name, field_name in get_fields_referring_to_type(
                old_schema, change.type_name
            ):
                self._drop_column_if_stored(connection, type_name, field_name)
            old_table = self._tables.get(change.type_name)
            if old_table is not None:
                old_table.drop(connection)
        elif isinstance(change, AddFieldChange):
            new_table = new_tables.get(change.type_name)
            if new_table is not None and change.new_field.name in new_table.c:
                self._add_column(connection, new_table, new_table.c[change.new_field.name])
        elif isinstance(change, RemoveFieldChange):
            self._drop_column_if_stored(connection, change.type_name, change.field_name)
        else:
            raise AssertionError(f"Unexpected schema change type {type(change).__name__}: {change}")

    def _add_column(
        self, connection: Connection, table: sqlalchemy.Table, column: sqlalchemy.Column
    ) -> None:
        quote = connection.dialect.identifier_preparer.quote
        column_type = column.type.compile(dialect=connection.dialect)
        connection.execute(
            text(f"ALTER TABLE {quote(table.name)} ADD COLUMN {quote(column.name)} {column_type}")
        )

    def _drop_column_if_stored(
        self, connection: Connection, type_name: str, field_name: str
    ) -> None:
        table = self._tables.get(type_name)
        if table is None or field_name not in table.c:
            return
        quote = connection.dialect.identifier_preparer.quote
        connection.execute(
            text(f"ALTER TABLE {quote(table.name)} DROP COLUMN {quote(field_name)}")
        )

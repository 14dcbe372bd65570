# Copyright 2020-present Kensho Technologies, LLC.
import sqlite3
from typing import Any, List, Optional
import unittest

import sqlalchemy
from sqlalchemy.pool import StaticPool

from .. import execute_query
from ..backends.sqlalchemy_adapter import SQLAlchemyAdapter, make_tables
from ..compiler.credentials import Credentials
from ..compiler.plan import Pagination
from ..exceptions import QueryExecutionError
from ..schema.model import Field, load_schema
from ..schema.schema_changes import AddFieldChange
from ..schema.schema_info import make_schema_info
from .test_helpers import (
    ADMIN_CREDENTIALS,
    MICROPOST_CREATED_AT,
    MICROPOST_ID,
    SECOND_USER_ID,
    USER_ID,
    get_schema,
    get_schema_data,
    get_test_records,
)


# ALTER TABLE ... DROP COLUMN is only supported from SQLite 3.35.0 onwards.
SQLITE_SUPPORTS_DROP_COLUMN = sqlite3.sqlite_version_info >= (3, 35, 0)


def _make_engine() -> sqlalchemy.engine.Engine:
    return sqlalchemy.create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )


class SQLAlchemyAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = _make_engine()
        self.adapter = SQLAlchemyAdapter(self.engine, get_schema())
        for type_name, records in get_test_records().items():
            self.adapter.insert_records(type_name, records)

    def tearDown(self) -> None:
        self.engine.dispose()

    def execute(self, query_text: str, credentials: Optional[Credentials] = None) -> List[Any]:
        schema_info = make_schema_info(self.adapter.schema)
        return execute_query(schema_info, self.adapter, query_text, credentials=credentials)

    def get_column_names(self, table_name: str) -> List[str]:
        columns = sqlalchemy.inspect(self.engine).get_columns(table_name)
        return [column["name"] for column in columns]

    def test_tables(self) -> None:
        _, tables = make_tables(get_schema())
        self.assertEqual({"User", "Micropost"}, set(tables))
        self.assertEqual(
            ["id", "handle", "credentials"], [column.name for column in tables["User"].c]
        )
        self.assertEqual(
            ["id", "text", "createdAt", "author", "tags", "location"],
            [column.name for column in tables["Micropost"].c],
        )
        self.assertEqual(
            {"User", "Micropost"}, set(sqlalchemy.inspect(self.engine).get_table_names())
        )

    def test_fetch_by_id(self) -> None:
        record = self.adapter.fetch_by_id("Micropost", MICROPOST_ID)
        self.assertEqual("Test text", record["text"])
        self.assertEqual(MICROPOST_CREATED_AT, record["createdAt"])
        self.assertEqual(USER_ID, record["author"])
        self.assertEqual(["intro", "test"], record["tags"])
        self.assertEqual({"latitude": 60.17, "longitude": 24.94}, record["location"])
        self.assertIsNone(self.adapter.fetch_by_id("Micropost", "missing-id"))

    def test_fetch_many(self) -> None:
        records, total_count = self.adapter.fetch_many("User", [], Pagination(first=1))
        self.assertEqual(2, total_count)
        self.assertEqual([USER_ID], [record["id"] for record in records])

        records, total_count = self.adapter.fetch_many("User", [], Pagination(after=USER_ID))
        self.assertEqual(2, total_count)
        self.assertEqual([SECOND_USER_ID], [record["id"] for record in records])

        records, total_count = self.adapter.fetch_many(
            "User", [("handle", "fson")], Pagination()
        )
        self.assertEqual((1, [SECOND_USER_ID]), (total_count, [record["id"] for record in records]))
        self.assertEqual(0, self.adapter.count_many("User", [("handle", "nobody")]))

    def test_reverse_relation(self) -> None:
        records, total_count = self.adapter.fetch_by_reverse_relation(
            "Micropost", "author", USER_ID, Pagination()
        )
        self.assertEqual((1, [MICROPOST_ID]), (total_count, [record["id"] for record in records]))
        self.assertEqual(
            0, self.adapter.count_by_reverse_relation("Micropost", "author", SECOND_USER_ID)
        )

    def test_queries(self) -> None:
        results = self.execute(
            f"""
            node(Micropost, {MICROPOST_ID}) {{
                text
                tags
                location {{ latitude }}
                author {{
                    handle
                    microposts {{ count, edges {{ cursor }} }}
                }}
            }}
            nodes(User, first: 1) {{ count, nodes {{ handle }} }}
            nodes(Micropost, createdAt: "2015-04-10T10:24:52.163") {{ count }}
            """
        )
        self.assertEqual(
            [
                {
                    "text": "Test text",
                    "tags": ["intro", "test"],
                    "location": {"latitude": 60.17},
                    "author": {
                        "handle": "freiksenet",
                        "microposts": {"count": 1, "edges": [{"cursor": MICROPOST_ID}]},
                    },
                },
                {"count": 2, "nodes": [{"handle": "freiksenet"}]},
                {"count": 1},
            ],
            results,
        )

    def test_unknown_type(self) -> None:
        with self.assertRaises(QueryExecutionError):
            self.adapter.fetch_by_id("Comment", "1")
        with self.assertRaises(QueryExecutionError):
            self.adapter.insert_records("Location", [{"latitude": 1.0}])

    def test_create_type_and_add_field(self) -> None:
        self.execute("createType(Comment) { success }", credentials=ADMIN_CREDENTIALS)
        self.assertEqual(["id"], self.get_column_names("Comment"))

        self.execute("addField(Comment, text, string) { success }", credentials=ADMIN_CREDENTIALS)
        self.assertEqual(["id", "text"], self.get_column_names("Comment"))

        self.adapter.insert_records("Comment", [{"id": "c-1", "text": "Nice post"}])
        self.assertEqual(
            [{"nodes": [{"text": "Nice post"}]}], self.execute("nodes(Comment) { nodes { text } }")
        )

    def test_relation_columns(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {
                "name": "Comment",
                "interfaces": ["Node"],
                "fields": [
                    {"name": "id", "type": "id", "nonNull": True, "unique": True},
                    {"name": "post", "type": "Micropost", "reverseName": "comments"},
                ],
            }
        )
        for type_data in schema_data["types"]:
            if type_data["name"] == "Micropost":
                type_data["fields"].append(
                    {
                        "name": "comments",
                        "type": "Connection",
                        "ofType": "Comment",
                        "reverseName": "post",
                    }
                )
        self.engine.dispose()
        self.engine = _make_engine()
        self.adapter = SQLAlchemyAdapter(self.engine, load_schema(schema_data))
        self.assertEqual(["id", "post"], self.get_column_names("Comment"))
        self.assertNotIn("comments", self.get_column_names("Micropost"))

        self.adapter.insert_records("Micropost", get_test_records()["Micropost"])
        self.adapter.insert_records("Comment", [{"id": "c-1", "post": MICROPOST_ID}])
        self.assertEqual(
            [{"comments": {"count": 1, "nodes": [{"id": "c-1"}]}}],
            self.execute(
                f"node(Micropost, {MICROPOST_ID}) {{ comments {{ count, nodes {{ id }} }} }}"
            ),
        )

        # Connection fields have no column, so the cascade needs no DROP COLUMN.
        self.execute("deleteType(Comment) { success }", credentials=ADMIN_CREDENTIALS)
        self.assertNotIn("Comment", sqlalchemy.inspect(self.engine).get_table_names())
        self.assertIsNone(self.adapter.schema.get_type("Micropost").get_field("comments"))

    def test_change_that_leaves_schema_invalid_is_refused(self) -> None:
        self.execute("createType(Comment) { success }", credentials=ADMIN_CREDENTIALS)
        half_of_relation = AddFieldChange(
            type_name="Comment",
            new_field=Field(name="post", type="Micropost", reverse_name="comments"),
        )
        with self.assertLogs("schemaql.backends.sqlalchemy_adapter", level="WARNING"):
            self.assertFalse(self.adapter.apply_schema_change(half_of_relation))
        self.assertEqual(["id"], self.get_column_names("Comment"))
        self.assertIsNone(self.adapter.schema.get_type("Comment").get_field("post"))

    def test_each_schema_change_is_checked_against_the_current_schema(self) -> None:
        results = self.execute(
            """
            addField(Micropost, rating, float) { success }
            addField(Micropost, rating, int) { success }
            """,
            credentials=ADMIN_CREDENTIALS,
        )
        self.assertEqual([{"success": True}, {"success": False}], results)
        rating_field = self.adapter.schema.get_type("Micropost").get_field("rating")
        self.assertEqual("float", rating_field.type)
        self.assertEqual(1, self.get_column_names("Micropost").count("rating"))

    @unittest.skipUnless(SQLITE_SUPPORTS_DROP_COLUMN, "SQLite does not support DROP COLUMN.")
    def test_remove_field(self) -> None:
        self.execute("removeField(Micropost, location) { success }", credentials=ADMIN_CREDENTIALS)
        self.assertNotIn("location", self.get_column_names("Micropost"))
        self.assertNotIn("location", self.adapter.fetch_by_id("Micropost", MICROPOST_ID))

    def test_delete_type(self) -> None:
        self.execute("deleteType(Micropost) { success }", credentials=ADMIN_CREDENTIALS)
        self.assertEqual({"User"}, set(sqlalchemy.inspect(self.engine).get_table_names()))
        self.assertIsNone(self.adapter.schema.get_type("Micropost"))
        self.assertEqual(
            [{"count": 2, "nodes": [{"handle": "freiksenet"}, {"handle": "fson"}]}],
            self.execute("nodes(User) { count, nodes { handle } }"),
        )

    def test_existing_tables_are_reused(self) -> None:
        adapter = SQLAlchemyAdapter(self.engine, get_schema())
        self.assertEqual("fson", adapter.fetch_by_id("User", SECOND_USER_ID)["handle"])

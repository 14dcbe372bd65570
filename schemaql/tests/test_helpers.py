# Copyright 2017-present Kensho Technologies, LLC.
"""Common test data and helper functions."""
from datetime import datetime
from typing import Any, Dict, List

from ..compiler.credentials import Credentials
from ..schema.model import Schema, load_schema
from ..schema.schema_info import SchemaInfo, make_schema_info


USER_ID = "bbd1db98-4ac4-40a7-b514-968059c3dbac"
SECOND_USER_ID = "ed4c9bd8-2d3e-4b4e-8c9f-5c3b0f7e3a21"
MICROPOST_ID = "f2f7fb49-3581-4caa-b84b-e9489eb47d84"

MICROPOST_CREATED_AT = datetime(2015, 4, 10, 10, 24, 52, 163000)

ADMIN_CREDENTIALS = Credentials(user_id=USER_ID, is_admin=True)
USER_CREDENTIALS = Credentials(user_id=SECOND_USER_ID, is_admin=False)


def get_schema_data() -> Dict[str, Any]:
    """Return the JSON-compatible definition of the test schema."""
    return {
        "types": [
            {
                "name": "User",
                "kind": "OBJECT",
                "interfaces": ["Node"],
                "fields": [
                    {"name": "id", "type": "id", "nonNull": True, "unique": True},
                    {"name": "handle", "type": "string"},
                    {
                        "name": "microposts",
                        "type": "Connection",
                        "ofType": "Micropost",
                        "reverseName": "author",
                    },
                ],
            },
            {
                "name": "Micropost",
                "kind": "OBJECT",
                "interfaces": ["Node"],
                "fields": [
                    {"name": "id", "type": "id", "nonNull": True, "unique": True},
                    {"name": "text", "type": "string"},
                    {"name": "createdAt", "type": "datetime"},
                    {"name": "author", "type": "User", "reverseName": "microposts"},
                    {"name": "tags", "type": "List", "ofType": "string"},
                    {"name": "location", "type": "Location"},
                ],
            },
            {
                "name": "Location",
                "kind": "OBJECT",
                "interfaces": [],
                "fields": [
                    {"name": "latitude", "type": "float"},
                    {"name": "longitude", "type": "float"},
                ],
            },
        ]
    }


def get_schema() -> Schema:
    """Return the test schema."""
    return load_schema(get_schema_data())


def get_schema_info() -> SchemaInfo:
    """Return a SchemaInfo over the test schema."""
    return make_schema_info(get_schema())


def get_test_records() -> Dict[str, List[Dict[str, Any]]]:
    """Return a fresh copy of the records of the test data set, by type name."""
    return {
        "User": [
            {"id": SECOND_USER_ID, "handle": "fson"},
            {"id": USER_ID, "handle": "freiksenet"},
        ],
        "Micropost": [
            {
                "id": MICROPOST_ID,
                "text": "Test text",
                "createdAt": MICROPOST_CREATED_AT,
                "author": USER_ID,
                "tags": ["intro", "test"],
                "location": {"latitude": 60.17, "longitude": 24.94},
            },
        ],
    }

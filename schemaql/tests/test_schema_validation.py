# Copyright 2017-present Kensho Technologies, LLC.
from typing import Any, Dict, List
import unittest

from ..exceptions import SchemaValidationError
from ..schema.builtins import DefaultFieldRegistry
from ..schema.model import Field, load_schema
from ..schema.schema_info import make_schema_info
from ..schema.validation import validate_schema
from .test_helpers import get_schema, get_schema_data


def _get_type_data(schema_data: Dict[str, Any], type_name: str) -> Dict[str, Any]:
    for type_data in schema_data["types"]:
        if type_data["name"] == type_name:
            return type_data
    raise AssertionError(f"No type {type_name} in the test schema data.")


def _get_field_data(schema_data: Dict[str, Any], type_name: str, field_name: str) -> Dict[str, Any]:
    for field_data in _get_type_data(schema_data, type_name)["fields"]:
        if field_data["name"] == field_name:
            return field_data
    raise AssertionError(f"No field {type_name}.{field_name} in the test schema data.")


def _validate(schema_data: Dict[str, Any], **kwargs: Any) -> List[str]:
    return validate_schema(load_schema(schema_data), **kwargs)


class SchemaValidationTests(unittest.TestCase):
    def test_valid_schema(self) -> None:
        self.assertEqual([], validate_schema(get_schema()))
        self.assertEqual([], validate_schema(get_schema(), required_type_names=("User",)))

    def test_duplicate_type_names(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {"name": "User", "fields": [{"name": "nickname", "type": "string"}]}
        )
        # Later stages, including the plural name uniqueness check, are skipped.
        self.assertEqual(
            ['Expected type names to be unique. Found 2 types with name "User"'],
            _validate(schema_data),
        )

    def test_all_duplicate_type_names_are_reported(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].extend(
            [
                {"name": "User", "fields": [{"name": "nickname", "type": "string"}]},
                {"name": "Location", "fields": [{"name": "city", "type": "string"}]},
                {"name": "Location", "fields": [{"name": "country", "type": "string"}]},
            ]
        )
        self.assertEqual(
            [
                'Expected type names to be unique. Found 2 types with name "User", '
                '3 types with name "Location"'
            ],
            _validate(schema_data),
        )

    def test_duplicate_plural_names(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {
                "name": "Person",
                "pluralName": "Users",
                "fields": [{"name": "nickname", "type": "string"}],
            }
        )
        self.assertEqual(
            ['Expected plural names of types to be unique. Found 2 types with plural name "Users"'],
            _validate(schema_data),
        )

    def test_plural_name_conflicts_with_type_name(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {"name": "Locations", "fields": [{"name": "city", "type": "string"}]}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertTrue(errors[0].startswith('Location: Plural name "Locations" conflicts'))

    def test_required_types(self) -> None:
        self.assertEqual(
            ["Expected Admin type to be present."],
            validate_schema(get_schema(), required_type_names=("User", "Admin")),
        )

    def test_reserved_type_names(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {"name": "SchemaQLThing", "fields": [{"name": "city", "type": "string"}]}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertIn("reserved for built-in types", errors[0])

    def test_invalid_type_name(self) -> None:
        schema_data = get_schema_data()
        schema_data["types"].append(
            {"name": "lowercase", "fields": [{"name": "city", "type": "string"}]}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertIn("Expected `name` of a type to be a string starting with a capital", errors[0])

    def test_type_structure_errors_are_all_reported(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Location")["interfaces"] = ["Searchable"]
        schema_data["types"].append({"name": "Empty", "fields": []})
        errors = _validate(schema_data)
        self.assertEqual(2, len(errors))
        self.assertTrue(errors[0].startswith("Location: Expected `interfaces` to be an array"))
        self.assertEqual(
            "Empty: Expected `fields` to be an array with at least one element", errors[1]
        )

    def test_duplicate_field_names(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Location")["fields"].append(
            {"name": "latitude", "type": "string"}
        )
        self.assertEqual(
            ["Location: Expected field names to be unique within a type."], _validate(schema_data)
        )

    def test_missing_interface_field(self) -> None:
        schema_data = get_schema_data()
        micropost_data = _get_type_data(schema_data, "Micropost")
        micropost_data["fields"] = [
            field_data for field_data in micropost_data["fields"] if field_data["name"] != "id"
        ]
        self.assertEqual(
            ["Micropost.id: Expected non-null unique field of type id from interface Node"],
            _validate(schema_data),
        )

    def test_mismatched_interface_field(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "User", "id")["unique"] = False
        self.assertEqual(
            ["User.id: Expected non-null unique field of type id from interface Node"],
            _validate(schema_data),
        )

    def test_custom_default_field_registry(self) -> None:
        registry = DefaultFieldRegistry(
            interface_fields={
                "Node": (Field(name="id", type="id", non_null=True, unique=True),),
                "Timestamped": (Field(name="createdAt", type="datetime"),),
            }
        )
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Micropost")["interfaces"] = ["Node", "Timestamped"]
        _get_type_data(schema_data, "User")["interfaces"] = ["Node", "Timestamped"]
        self.assertEqual(
            ["User.createdAt: Expected field of type datetime from interface Timestamped"],
            _validate(schema_data, default_fields=registry),
        )

    def test_unknown_field_type(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "User", "handle")["type"] = "Handle"
        self.assertEqual(
            [
                "User.handle: Expected `type` to be a valid scalar or object type. "
                "Found: Handle."
            ],
            _validate(schema_data),
        )

    def test_connection_of_non_node_type(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "User")["fields"].append(
            {"name": "locations", "type": "Connection", "ofType": "Location"}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertTrue(
            errors[0].startswith(
                "User.locations: Expected `ofType` of a connection field to be an object type "
                "that implements the Node interface."
            )
        )

    def test_list_of_node_type(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Micropost")["fields"].append(
            {"name": "likers", "type": "List", "ofType": "User"}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertTrue(
            errors[0].startswith(
                "Micropost.likers: Expected `ofType` of a list field to be a scalar or "
                "non-Node object type."
            )
        )

    def test_of_type_on_non_wrapper_field(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "User", "handle")["ofType"] = "string"
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertTrue(errors[0].startswith("User.handle: Expected `ofType` to be undefined"))

    def test_missing_reverse_field(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "Micropost", "author")["reverseName"] = "posts"
        errors = _validate(schema_data)
        self.assertIn(
            "Micropost.author: Expected `reverseName` to be a name of a Connection field in "
            "type User. Found: posts.",
            errors,
        )

    def test_mismatched_reverse_field(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Micropost")["fields"].append(
            {"name": "editor", "type": "User", "reverseName": "microposts"}
        )
        errors = _validate(schema_data)
        self.assertEqual(
            [
                "User.microposts: Expected reverse field of Micropost.editor to have matching "
                "`reverseName` editor. Found: author."
            ],
            errors,
        )

    def test_relation_field_on_non_node_type(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Location")["fields"].extend(
            [
                {
                    "name": "posts",
                    "type": "Connection",
                    "ofType": "Micropost",
                    "reverseName": "location",
                },
                {"name": "owner", "type": "User"},
            ]
        )
        self.assertEqual(
            [
                "Location.posts: Expected relation field to be defined on a type that "
                "implements the Node interface. Found: Connection on Location.",
                "Location.owner: Expected relation field to be defined on a type that "
                "implements the Node interface. Found: User on Location.",
            ],
            _validate(schema_data),
        )

    def test_unique_relation_field(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "Micropost", "author")["unique"] = True
        self.assertEqual(
            ["Micropost.author: Expected unique field to be a scalar type. Found: User."],
            _validate(schema_data),
        )

    def test_built_in_field_shadowing(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "User")["fields"].append(
            {"name": "credentials", "type": "string"}
        )
        self.assertEqual(
            ["User.credentials: Field name shadows a built-in field."], _validate(schema_data)
        )

    def test_invalid_field_name(self) -> None:
        schema_data = get_schema_data()
        _get_type_data(schema_data, "Location")["fields"].append(
            {"name": "1st", "type": "string"}
        )
        errors = _validate(schema_data)
        self.assertEqual(1, len(errors))
        self.assertTrue(errors[0].startswith("Location: Expected field name to be a non-empty"))

    def test_validation_does_not_modify_schema(self) -> None:
        schema = get_schema()
        validate_schema(schema)
        self.assertEqual(get_schema(), schema)

    def test_make_schema_info_raises_all_errors(self) -> None:
        schema_data = get_schema_data()
        _get_field_data(schema_data, "User", "handle")["type"] = "Handle"
        _get_field_data(schema_data, "Location", "latitude")["type"] = "Degrees"
        with self.assertRaises(SchemaValidationError) as context:
            make_schema_info(load_schema(schema_data))
        self.assertEqual(2, len(context.exception.errors))

    def test_make_schema_info_resolves_field_kinds(self) -> None:
        schema_info = make_schema_info(get_schema())
        self.assertEqual(("User",), schema_info.required_type_names)
        self.assertEqual("Micropost", schema_info.get_field_kind("User", "microposts").type_name)
        self.assertEqual("author", schema_info.get_field_kind("User", "microposts").reverse_name)
        self.assertTrue(schema_info.get_field_kind("Micropost", "author").is_node)
        self.assertFalse(schema_info.get_field_kind("Micropost", "location").is_node)
        self.assertEqual(
            "string", schema_info.get_field_kind("Micropost", "tags").element.scalar_name
        )

# Copyright 2017-present Kensho Technologies, LLC.
import unittest

from ..exceptions import SchemaValidationError
from ..schema.model import Field, ObjectType, Schema, get_plural_name, load_schema, pluralize
from .test_helpers import get_schema, get_schema_data


class SchemaModelTests(unittest.TestCase):
    def test_pluralize(self) -> None:
        test_data = {
            "User": "Users",
            "Micropost": "Microposts",
            "Category": "Categories",
            "Day": "Days",
            "Box": "Boxes",
            "Bus": "Buses",
            "Match": "Matches",
            "Wish": "Wishes",
        }
        for name, expected_plural in test_data.items():
            self.assertEqual(expected_plural, pluralize(name))

    def test_explicit_plural_name(self) -> None:
        person = ObjectType(name="Person", plural_name="People", fields=[])
        self.assertEqual("People", get_plural_name(person))
        self.assertEqual("People", person.resolved_plural_name)
        self.assertEqual("Users", get_plural_name(ObjectType(name="User", fields=[])))

    def test_load_schema(self) -> None:
        schema = get_schema()
        self.assertEqual(["User", "Micropost", "Location"], schema.type_names)

        user_type = schema.get_type("User")
        self.assertTrue(user_type.is_node)
        self.assertEqual(["Node"], user_type.interfaces)
        self.assertEqual("OBJECT", user_type.kind)
        self.assertEqual(
            Field(
                name="microposts", type="Connection", of_type="Micropost", reverse_name="author"
            ),
            user_type.get_field("microposts"),
        )
        self.assertEqual(
            Field(name="id", type="id", non_null=True, unique=True), user_type.get_field("id")
        )
        self.assertIsNone(user_type.get_field("nonexistent"))
        self.assertFalse(schema.get_type("Location").is_node)
        self.assertIsNone(schema.get_type("Nonexistent"))

    def test_load_schema_fills_in_defaults(self) -> None:
        schema = load_schema(
            {"types": [{"name": "Point", "fields": [{"name": "x", "type": "float"}]}]}
        )
        point_type = schema.get_type("Point")
        self.assertEqual([], point_type.interfaces)
        self.assertEqual("OBJECT", point_type.kind)
        self.assertIsNone(point_type.plural_name)
        self.assertEqual(Field(name="x", type="float"), point_type.get_field("x"))

    def test_load_malformed_schema(self) -> None:
        with self.assertRaises(SchemaValidationError):
            load_schema({"types": [5]})

    def test_schema_dict_round_trip(self) -> None:
        schema = get_schema()
        schema_dict = schema.to_dict()

        user_fields = schema_dict["types"][0]["fields"]
        self.assertTrue(user_fields[0]["nonNull"])
        self.assertEqual("Micropost", user_fields[2]["ofType"])
        self.assertEqual("author", user_fields[2]["reverseName"])

        self.assertEqual(schema, Schema.from_dict(schema_dict))
        self.assertEqual(schema, load_schema(get_schema_data()))

    def test_types_by_name_prefers_first_type(self) -> None:
        first = ObjectType(name="Thing", fields=[Field(name="a", type="string")])
        second = ObjectType(name="Thing", fields=[Field(name="b", type="string")])
        schema = Schema(types=[first, second])
        self.assertIs(first, schema.get_type("Thing"))

    def test_with_fields_does_not_modify_type(self) -> None:
        user_type = get_schema().get_type("User")
        new_type = user_type.with_fields(user_type.fields[:1])
        self.assertEqual(3, len(user_type.fields))
        self.assertEqual(1, len(new_type.fields))
        self.assertEqual(user_type.name, new_type.name)

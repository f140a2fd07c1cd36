"""Tests for oasync.parser.schema."""

from __future__ import annotations

import pytest

from oasync.models import (
    AllOfType,
    ArrayType,
    BooleanType,
    IntegerType,
    ObjectType,
    OneOfType,
    RefType,
    StringType,
    UnknownType,
)
from oasync.parser.schema import describe_schema_type, parse_schema_type, type_name


class TestTypeName:
    def test_plain_type(self) -> None:
        assert type_name({"type": "integer"}) == "integer"

    def test_type_array_skips_null(self) -> None:
        assert type_name({"type": ["null", "string"]}) == "string"

    def test_only_null(self) -> None:
        assert type_name({"type": ["null"]}) is None

    def test_missing(self) -> None:
        assert type_name({}) is None


class TestParseSchemaType:
    def test_ref_strips_prefix(self) -> None:
        assert parse_schema_type({"$ref": "#/definitions/Pet"}) == RefType(name="Pet")
        assert parse_schema_type({"$ref": "#/components/schemas/Pet"}) == RefType(name="Pet")

    def test_ref_wins_over_type(self) -> None:
        assert isinstance(parse_schema_type({"$ref": "#/definitions/Pet", "type": "object"}), RefType)

    def test_string_with_enum(self) -> None:
        result = parse_schema_type({"type": "string", "enum": ["a", "b"]})
        assert result == StringType(enum_values=["a", "b"])

    def test_integer_format(self) -> None:
        assert parse_schema_type({"type": "integer", "format": "int64"}) == IntegerType(format="int64")

    def test_boolean(self) -> None:
        assert parse_schema_type({"type": "boolean"}) == BooleanType()

    def test_array_of_refs(self) -> None:
        result = parse_schema_type({"type": "array", "items": {"$ref": "#/definitions/Pet"}})
        assert result == ArrayType(items=RefType(name="Pet"))

    def test_array_without_items(self) -> None:
        assert parse_schema_type({"type": "array"}) == ArrayType(items=UnknownType())

    def test_object_properties_and_required(self) -> None:
        result = parse_schema_type(
            {"type": "object", "required": ["id"], "properties": {"id": {"type": "integer"}}}
        )
        assert isinstance(result, ObjectType)
        assert result.required == ["id"]
        assert result.properties == {"id": IntegerType()}

    def test_properties_without_type_is_object(self) -> None:
        assert isinstance(parse_schema_type({"properties": {}}), ObjectType)

    def test_composition(self) -> None:
        result = parse_schema_type(
            {"oneOf": [{"$ref": "#/components/schemas/Cat"}, {"$ref": "#/components/schemas/Dog"}]}
        )
        assert result == OneOfType(variants=[RefType(name="Cat"), RefType(name="Dog")])

    def test_nullable_31_type(self) -> None:
        assert parse_schema_type({"type": ["string", "null"]}) == StringType()

    @pytest.mark.parametrize("raw", [None, "string", {"type": "file"}, {}])
    def test_unknown(self, raw: object) -> None:
        assert parse_schema_type(raw) == UnknownType()


class TestDescribeSchemaType:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"type": "string"}, "string"),
            ({"type": "string", "format": "date-time"}, "string(date-time)"),
            ({"type": "string", "enum": ["a", "b"]}, "enum<a|b>"),
            ({"type": "number", "format": "double"}, "number(double)"),
            ({"type": "boolean"}, "boolean"),
            ({"type": "array", "items": {"$ref": "#/definitions/Pet"}}, "array<Pet>"),
            ({"type": "object", "properties": {"a": {}, "b": {}}}, "object{2 properties}"),
            ({"anyOf": [{"type": "string"}, {"type": "integer"}]}, "anyOf<string|integer>"),
            ({"allOf": [{"$ref": "#/definitions/A"}, {"$ref": "#/definitions/B"}]}, "allOf<A&B>"),
            ({}, "unknown"),
        ],
    )
    def test_renders(self, raw: dict, expected: str) -> None:
        assert describe_schema_type(parse_schema_type(raw)) == expected

    def test_nested_composition(self) -> None:
        schema_type = AllOfType(variants=[ArrayType(items=RefType(name="Pet")), BooleanType()])
        assert describe_schema_type(schema_type) == "allOf<array<Pet>&boolean>"

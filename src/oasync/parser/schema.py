"""Convert raw JSON Schema objects into :data:`~oasync.models.SchemaType` values."""

from __future__ import annotations

from typing import Any, Optional

from oasync.models import (
    AllOfType,
    AnyOfType,
    ArrayType,
    BooleanType,
    IntegerType,
    NumberType,
    ObjectType,
    OneOfType,
    RefType,
    SchemaType,
    StringType,
    UnknownType,
)
from oasync.parser.refs import SCHEMA_REF_PREFIXES


def _strip_schema_prefix(ref: str) -> str:
    for prefix in SCHEMA_REF_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def type_name(raw: dict[str, Any]) -> Optional[str]:
    """Return the declared ``type``; for 3.1 type arrays, the first non-null entry."""
    declared = raw.get("type")
    if isinstance(declared, list):
        for entry in declared:
            if entry != "null":
                return str(entry)
        return None
    if isinstance(declared, str):
        return declared
    return None


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_schema_type(raw: Any) -> SchemaType:
    """Build the :data:`SchemaType` for one raw schema object.

    Precedence: ``$ref``, then ``oneOf``/``anyOf``/``allOf``, then ``type``.
    An object with ``properties`` but no ``type`` is treated as an object.
    Anything unrecognised becomes :class:`UnknownType`.
    """
    if not isinstance(raw, dict):
        return UnknownType()

    ref = raw.get("$ref")
    if isinstance(ref, str):
        return RefType(name=_strip_schema_prefix(ref))

    for keyword, model in (("oneOf", OneOfType), ("anyOf", AnyOfType), ("allOf", AllOfType)):
        variants = raw.get(keyword)
        if isinstance(variants, list):
            return model(variants=[parse_schema_type(v) for v in variants])

    kind = type_name(raw)
    fmt = _str_or_none(raw.get("format"))

    if kind == "string":
        enum = raw.get("enum")
        enum_values = (
            [v for v in enum if isinstance(v, str)] if isinstance(enum, list) else None
        )
        return StringType(format=fmt, enum_values=enum_values)
    if kind == "number":
        return NumberType(format=fmt)
    if kind == "integer":
        return IntegerType(format=fmt)
    if kind == "boolean":
        return BooleanType()
    if kind == "array":
        items = raw.get("items")
        return ArrayType(items=parse_schema_type(items) if items is not None else UnknownType())
    if kind == "object" or (kind is None and "properties" in raw):
        properties = raw.get("properties")
        required = raw.get("required")
        return ObjectType(
            properties=(
                {name: parse_schema_type(prop) for name, prop in properties.items()}
                if isinstance(properties, dict)
                else {}
            ),
            required=(
                [r for r in required if isinstance(r, str)]
                if isinstance(required, list)
                else []
            ),
        )
    return UnknownType()


def describe_schema_type(schema_type: SchemaType) -> str:
    """Render a short display string such as ``array<Pet>`` or ``oneOf<Cat|Dog>``."""
    if isinstance(schema_type, StringType):
        if schema_type.enum_values:
            return f"enum<{'|'.join(schema_type.enum_values)}>"
        return f"string({schema_type.format})" if schema_type.format else "string"
    if isinstance(schema_type, NumberType):
        return f"number({schema_type.format})" if schema_type.format else "number"
    if isinstance(schema_type, IntegerType):
        return f"integer({schema_type.format})" if schema_type.format else "integer"
    if isinstance(schema_type, BooleanType):
        return "boolean"
    if isinstance(schema_type, ArrayType):
        return f"array<{describe_schema_type(schema_type.items)}>"
    if isinstance(schema_type, ObjectType):
        return f"object{{{len(schema_type.properties)} properties}}"
    if isinstance(schema_type, RefType):
        return schema_type.name
    if isinstance(schema_type, OneOfType):
        return f"oneOf<{'|'.join(describe_schema_type(v) for v in schema_type.variants)}>"
    if isinstance(schema_type, AnyOfType):
        return f"anyOf<{'|'.join(describe_schema_type(v) for v in schema_type.variants)}>"
    if isinstance(schema_type, AllOfType):
        return f"allOf<{'&'.join(describe_schema_type(v) for v in schema_type.variants)}>"
    if isinstance(schema_type, UnknownType):
        return "unknown"
    raise TypeError(f"Unhandled schema type: {type(schema_type).__name__}")

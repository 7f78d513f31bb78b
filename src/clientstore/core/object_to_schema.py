"""
Convenience literals -> Schema.

    object_to_schema("todo", {"$name": str, "done": False, "tags": ["a"]})

A leading ``$`` marks a required field; each value is inspected to infer the
field's type and default.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterable

from ..errors import SchemaError, error_messages
from .checks import (
    get_default_value,
    get_type_name,
    is_object_literal,
    is_supported_type,
    is_valid_object_literal,
)
from .custom_types import ArrayOf, CustomType, SchemaId
from .schema import DEFAULT_KEYS, Schema
from .types import TypedArray


def get_schema_type_and_default_value_from_value(value: Any) -> tuple[Any, Any]:
    """Infer ``(type, default_value)`` from a literal; type is None if unknown."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return bool, value
    if isinstance(value, (int, float)):
        return type(value), value
    if isinstance(value, str):
        return str, value
    if isinstance(value, dt.datetime):
        return dt.datetime, value

    if isinstance(value, list):
        if value:
            first_type, _ = get_schema_type_and_default_value_from_value(value[0])
            if first_type is not None:
                first_name = get_type_name(first_type)
                if all(
                    get_type_name(get_schema_type_and_default_value_from_value(item)[0])
                    == first_name
                    for item in value
                ):
                    return ArrayOf(first_type), value
        return list, value

    if isinstance(value, TypedArray):
        return type(value), value
    if isinstance(value, (bytes, bytearray)):
        return type(value), value

    if isinstance(value, Schema):
        return value, None
    if isinstance(value, SchemaId):
        return SchemaId, value.default_value
    if isinstance(value, CustomType):
        return value, get_default_value(value)

    if is_object_literal(value):
        return Schema, value

    # declarations (classes)
    if is_supported_type(value):
        return value, get_default_value(value)

    return None, value


def object_to_schema(
    name: str,
    schema_data: dict[str, Any],
    include_default_keys: bool = True,
    default_keys: Iterable[str] = DEFAULT_KEYS,
) -> Schema:
    if not is_valid_object_literal(schema_data):
        raise SchemaError(error_messages.invalid_schema())

    schema = Schema(name, include_default_keys=include_default_keys, default_keys=default_keys)

    for key, val in schema_data.items():
        key = str(key)
        required = key.startswith("$")
        if required:
            key = key[1:]

        type_, default_value = get_schema_type_and_default_value_from_value(val)

        if type_ is None:
            raise SchemaError(
                f'Unsupported Schema Type => key: "{key}", '
                f'type: "{type(val).__name__}" (estimated)'
            )

        if type_ is Schema and is_object_literal(default_value):
            type_ = object_to_schema(key, default_value, include_default_keys=False)
            default_value = None

        schema.define_field(key, type_, required=required, default_value=default_value)

    return schema

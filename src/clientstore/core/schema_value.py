"""
A single field declaration: (type, required, default_value).
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import SchemaError
from .checks import (
    get_default_value,
    get_type_name,
    is_same_value_type,
    is_schema,
    is_supported_type,
    resolve_type,
)
from .custom_types import CustomType


def _same_type(a: Any, b: Any) -> bool:
    if isinstance(a, CustomType) and isinstance(b, CustomType):
        return type(a) is type(b) and a.name == b.name
    return a is b


class SchemaValue:
    """Field declaration; an explicit default must match the declared type."""

    def __init__(self, type_: Any, required: bool = False, default_value: Any = None) -> None:
        type_ = resolve_type(type_)

        if not is_supported_type(type_):
            raise SchemaError(f'Unsupported Schema Type "{type_!r}"')

        if default_value is not None and not is_same_value_type(type_, default_value):
            raise SchemaError(
                f'Default value "{default_value}" does not match type "{get_type_name(type_)}"'
            )

        self.type = type_
        self.required = bool(required)
        self.default_value = (
            default_value if default_value is not None else get_default_value(type_)
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.type.to_json() if is_schema(self.type) else get_type_name(self.type),
            "required": self.required,
            "defaultValue": self.default_value,
        }

    def to_string(self) -> str:
        return json.dumps(self.to_json(), indent=4, default=str)

    def __str__(self) -> str:
        return get_type_name(self.type)

    def __repr__(self) -> str:
        return (
            f"SchemaValue(type={get_type_name(self.type)}, required={self.required}, "
            f"default_value={self.default_value!r})"
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SchemaValue):
            return NotImplemented
        return (
            _same_type(self.type, other.type)
            and self.required == other.required
            and self.default_value == other.default_value
        )

    __hash__ = None  # type: ignore[assignment]

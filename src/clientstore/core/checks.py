"""
Type-matching kernel: decides whether a runtime value conforms to a declared
field type, and what a declared type's canonical default is.
"""

from __future__ import annotations

import array
import copy
import datetime as dt
import math
from typing import Any

from .custom_types import ArrayOf, CustomType, Null, OneOf, SchemaId, generate_id
from .types import PRIMITIVE_TYPE_NAMES, TYPED_ARRAYS, UUID_PATTERN, TypedArray


# helpers
def _schema_class():
    from .schema import Schema  # late import – avoids circular dep

    return Schema


def is_schema(value: Any) -> bool:
    """True for Schema *instances*."""
    return isinstance(value, _schema_class())


def is_object_literal(value: Any) -> bool:
    return isinstance(value, dict)


def is_valid_object_literal(value: Any) -> bool:
    return is_object_literal(value) and len(value) > 0


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def resolve_type(type_: Any) -> Any:
    """Normalise a declaration: bare custom-type classes become instances and
    dict literals become anonymous nested schemas."""
    if type_ is Null or type_ is SchemaId:
        return type_()
    if is_object_literal(type_):
        from .object_to_schema import object_to_schema

        return object_to_schema("", type_, include_default_keys=False)
    return type_


def get_type_name(type_: Any) -> str:
    type_ = resolve_type(type_)
    if isinstance(type_, CustomType):
        return type_.name
    if is_schema(type_):
        return f"Schema<{type_.name}>" if type_.name else "Schema"
    if type_ is _schema_class():
        return "Schema"
    if isinstance(type_, type) and type_ in PRIMITIVE_TYPE_NAMES:
        return PRIMITIVE_TYPE_NAMES[type_]
    return getattr(type_, "__name__", repr(type_))


def is_supported_type(type_: Any) -> bool:
    """Whether `type_` can be used as a field declaration."""
    if type_ is Null or type_ is SchemaId:
        return True
    if isinstance(type_, (ArrayOf, OneOf, SchemaId, Null)):
        return True
    if is_schema(type_) or type_ is _schema_class():
        return True
    return isinstance(type_, type) and type_ in PRIMITIVE_TYPE_NAMES


def is_supported_type_value(value: Any) -> bool:
    """Whether a runtime value belongs to the supported value universe."""
    return value is None or isinstance(
        value,
        (
            bool,
            int,
            float,
            str,
            dt.datetime,
            list,
            dict,
            bytes,
            bytearray,
            array.array,
            SchemaId,
            _schema_class(),
        ),
    )


def _matches_primitive(type_: Any, value: Any) -> bool:
    if value is None or _is_nan(value):
        return False
    if not (isinstance(type_, type) and type_ in PRIMITIVE_TYPE_NAMES):
        return False
    if type_ in (int, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if issubclass(type_, TypedArray):
        return type(value) is type_
    return isinstance(value, type_)


def is_same_value_type(type_: Any, value: Any) -> bool:
    """Shallow type match; nested schemas only require a dict here."""
    type_ = resolve_type(type_)

    if isinstance(value, list) and not all(is_supported_type_value(v) for v in value):
        return False

    if isinstance(type_, ArrayOf):
        return isinstance(value, list) and all(
            is_same_value_type(type_.type, item) for item in value
        )

    if isinstance(type_, OneOf):
        return any(is_same_value_type(t, value) for t in type_.type)

    if isinstance(type_, SchemaId):
        return isinstance(value, SchemaId) or (
            isinstance(value, str) and UUID_PATTERN.match(value) is not None
        )

    if isinstance(type_, Null):
        return value is None

    if is_schema(type_) or type_ is _schema_class():
        return is_object_literal(value)

    return _matches_primitive(type_, value)


def is_of_supported_type(type_: Any, value: Any) -> bool:
    """Strict match: nested schemas are validated deeply."""
    type_ = resolve_type(type_)

    if isinstance(type_, Null):
        return value is None

    if value is None or _is_nan(value):
        return False

    if is_schema(type_):
        return value is type_ or (
            is_object_literal(value) and not type_.get_invalid_schema_data_fields(value)
        )

    return is_same_value_type(type_, value)


def get_default_value(type_: Any) -> Any:
    """Canonical zero value for a declared type (fresh object on every call)."""
    type_ = resolve_type(type_)

    if isinstance(type_, SchemaId):
        return generate_id()
    if isinstance(type_, ArrayOf):
        return []
    if isinstance(type_, CustomType):  # OneOf, Null
        return copy.deepcopy(type_.default_value)
    if is_schema(type_):
        return {
            key: copy.deepcopy(field.default_value) for key, field in type_.fields.items()
        }

    if type_ is bool:
        return False
    if type_ is int:
        return 0
    if type_ is float:
        return 0.0
    if type_ is str:
        return ""
    if type_ is list:
        return []
    if type_ in TYPED_ARRAYS:
        return type_()

    # Date, ArrayBuffer, Blob, the Schema class and anything unknown
    return None

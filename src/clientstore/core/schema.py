"""
Schema – a named, ordered map of field name -> SchemaValue.

* Carries the three reserved record keys (id, created, last updated) unless
  built with ``include_default_keys=False``.
* Dot paths (``user.name``) address fields of nested schemas.
* ``get_invalid_schema_data_fields`` is the record validator used before
  every store mutation.
"""

from __future__ import annotations

import copy
import datetime as dt
import json
from typing import Any, Iterable, Iterator

from ..errors import SchemaError
from .checks import is_object_literal, is_same_value_type, is_schema
from .custom_types import ArrayOf, OneOf, SchemaId, generate_id
from .schema_value import SchemaValue
from .types import now_utc

DEFAULT_KEYS: tuple[str, str, str] = ("_id", "_createdDate", "_lastUpdatedDate")


class Schema:
    def __init__(
        self,
        name: str = "",
        fields: dict[str, SchemaValue] | None = None,
        include_default_keys: bool = True,
        default_keys: Iterable[str] = DEFAULT_KEYS,
    ) -> None:
        self._name = name
        self._fields: dict[str, SchemaValue] = {}
        self._default_keys: tuple[str, ...] = ()

        if include_default_keys:
            id_key, created_key, updated_key = tuple(default_keys)
            self._default_keys = (id_key, created_key, updated_key)
            self._fields[id_key] = SchemaValue(SchemaId)
            self._fields[created_key] = SchemaValue(dt.datetime)
            self._fields[updated_key] = SchemaValue(dt.datetime)

        for key, value in (fields or {}).items():
            if not isinstance(value, SchemaValue):
                raise SchemaError(f'Field "{key}" is not a SchemaValue')
            self._check_not_reserved(key)
            self._fields[key] = value

    # properties
    @property
    def name(self) -> str:
        return self._name

    @property
    def default_keys(self) -> tuple[str, ...]:
        return self._default_keys

    @property
    def include_default_keys(self) -> bool:
        return bool(self._default_keys)

    @property
    def fields(self) -> dict[str, SchemaValue]:
        """Shallow copy of the field map, in declaration order."""
        return dict(self._fields)

    # field management
    def _check_not_reserved(self, key: str) -> None:
        if key in self._default_keys:
            raise SchemaError(f'Field "{key}" is reserved and cannot be overridden')

    def _resolve_path(self, name: str) -> tuple["Schema", str] | None:
        """Walk a dot path down to (owning schema, last key)."""
        first, _, rest = str(name).partition(".")
        if not rest:
            return self, first
        field = self._fields.get(first)
        if field is not None and is_schema(field.type):
            return field.type._resolve_path(rest)
        return None

    def define_field(
        self,
        name: str,
        type_: Any,
        *,
        default_value: Any = None,
        required: bool = False,
    ) -> None:
        resolved = self._resolve_path(name)
        if resolved is None:
            raise SchemaError(f'Cannot define "{name}": parent field is not a Schema')
        schema, key = resolved
        schema._check_not_reserved(key)
        schema._fields[key] = SchemaValue(type_, required, default_value)

    def remove_field(self, name: str) -> None:
        if not name:
            return
        resolved = self._resolve_path(name)
        if resolved is None:
            return
        schema, key = resolved
        schema._check_not_reserved(key)
        schema._fields.pop(key, None)

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None

    def get_field(self, name: str) -> SchemaValue | None:
        if not name:
            return None
        resolved = self._resolve_path(name)
        if resolved is None:
            return None
        schema, key = resolved
        return schema._fields.get(key)

    def __contains__(self, name: str) -> bool:
        return self.has_field(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    # validation
    def is_valid_field_value(self, name: str, value: Any = None) -> bool:
        field = self.get_field(name)

        if field is None:
            return False

        if field.required:
            if value is None:
                return False
            if field.type is str and value == "":
                return False
            return is_same_value_type(field.type, value)

        if value is None or (
            type(value) is type(field.default_value) and value == field.default_value
        ):
            return True

        return is_same_value_type(field.type, value)

    def get_invalid_schema_data_fields(
        self, value: dict[str, Any], default_keys: Iterable[str] | None = None
    ) -> list[str]:
        skip = set(self._default_keys if default_keys is None else default_keys)
        required = [key for key, field in self._fields.items() if field.required]
        invalid: dict[str, None] = {}  # ordered set

        for key in dict.fromkeys([*value.keys(), *required]):
            if key in skip:
                continue

            field = self.get_field(key)
            val = value.get(key)

            if field is None:
                invalid[key] = None
                continue

            if val is None and not field.required:
                continue

            if isinstance(field.type, ArrayOf):
                if not isinstance(val, list):
                    invalid[key] = None
                    continue
                item_type = field.type.type
                for idx, item in enumerate(val):
                    if is_schema(item_type):
                        if is_object_literal(item):
                            for sub in item_type.get_invalid_schema_data_fields(item):
                                invalid[f"{key}[{idx}].{sub}"] = None
                        else:
                            invalid[f"{key}[{idx}]"] = None
                    elif not is_same_value_type(item_type, item):
                        invalid[f"{key}[{idx}]"] = None
                continue

            if isinstance(field.type, OneOf):
                schema = next((t for t in field.type.type if is_schema(t)), None)
                if schema is not None and is_object_literal(val):
                    for sub in schema.get_invalid_schema_data_fields(val):
                        invalid[f"{key}.{sub}"] = None
                elif not self.is_valid_field_value(key, val):
                    invalid[key] = None
                continue

            if is_schema(field.type):
                if is_object_literal(val):
                    for sub in field.type.get_invalid_schema_data_fields(val):
                        invalid[f"{key}.{sub}"] = None
                else:
                    invalid[key] = None
                continue

            if not self.is_valid_field_value(key, val):
                invalid[key] = None

        return list(invalid)

    # projections
    def to_json(self) -> dict[str, Any]:
        return {key: field.to_json() for key, field in self._fields.items()}

    def to_string(self) -> str:
        return json.dumps(self.to_json(), indent=4, default=str)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Schema({self._name!r}, fields={list(self._fields)})"

    def to_value(self) -> dict[str, Any]:
        return self._to_value(now_utc())

    def _to_value(self, now: dt.datetime) -> dict[str, Any]:
        obj: dict[str, Any] = {}

        for key, field in self._fields.items():
            if is_schema(field.type):
                obj[key] = field.type._to_value(now)
            elif isinstance(field.type, SchemaId):
                obj[key] = generate_id()
            elif field.type is dt.datetime:
                obj[key] = (
                    field.default_value if isinstance(field.default_value, dt.datetime) else now
                )
            else:
                obj[key] = copy.deepcopy(field.default_value)

        return obj

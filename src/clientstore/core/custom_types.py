"""
Composite / derived field types.

The variants form a closed set (`Null`, `ArrayOf`, `OneOf`, `SchemaId`) and
are told apart with `isinstance`, never by comparing type names.
"""

from __future__ import annotations

import random
import uuid
from typing import Any, Sequence

from ..errors import SchemaError


def _generate_uuid() -> str:
    """Manual UUIDv4 synthesis for hosts without a secure random source."""
    return str(uuid.UUID(int=random.getrandbits(128), version=4))


def generate_id() -> str:
    try:
        return str(uuid.uuid4())
    except NotImplementedError:  # os.urandom has no entropy source
        return _generate_uuid()


class CustomType:
    """Tagged wrapper around a derived type: name, wrapped type(s), default."""

    def __init__(self, name: str, type_: Any, default_value: Any) -> None:
        self.name = name
        self.type = type_
        self.default_value = default_value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.name))


class Null(CustomType):
    def __init__(self) -> None:
        super().__init__("Null", None, None)


class SchemaId(CustomType):
    """Generated unique identifier; each instance carries a fresh id."""

    def __init__(self) -> None:
        super().__init__("SchemaId", str, generate_id())

    @property
    def value(self) -> str:
        return self.default_value

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, SchemaId):
            return self.default_value == other.default_value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.default_value)

    def __str__(self) -> str:
        return self.default_value

    def __repr__(self) -> str:
        return f"SchemaId({self.default_value!r})"


class ArrayOf(CustomType):
    """List whose every element matches a single type."""

    def __init__(self, type_: Any) -> None:
        # late import – avoids circular dep
        from .checks import get_type_name, is_schema, is_supported_type, resolve_type

        item_type = resolve_type(type_)
        if not is_supported_type(item_type):
            raise SchemaError(f'ArrayOf received unsupported type "{type_!r}"')

        if is_schema(item_type):
            name = f"Array<Schema<{item_type.name}>>" if item_type.name else "Array<Schema>"
        else:
            name = f"Array<{get_type_name(item_type)}>"

        super().__init__(name, item_type, [])


class OneOf(CustomType):
    """Sum type: a value is valid if it matches any of the listed types."""

    def __init__(self, types: Sequence[Any], default_value: Any = None) -> None:
        from .checks import get_type_name, is_same_value_type, is_supported_type, resolve_type

        if isinstance(types, (str, bytes)) or not isinstance(types, Sequence):
            types = [types]
        if len(types) < 2:
            raise SchemaError("OneOf requires more than single type listed comma separated")

        resolved = []
        for t in types:
            if isinstance(t, OneOf) or t is OneOf:
                raise SchemaError('Cannot nest "OneOf" types')
            t = resolve_type(t)
            if not is_supported_type(t):
                raise SchemaError(f'OneOf received unsupported type "{t!r}"')
            resolved.append(t)

        name = " | ".join(get_type_name(t) for t in resolved)

        if default_value is not None and not any(
            is_same_value_type(t, default_value) for t in resolved
        ):
            raise SchemaError(
                f'Default value "{default_value}" does not match any of "{name}" types'
            )

        super().__init__(name, tuple(resolved), default_value)

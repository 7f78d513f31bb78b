"""
Runtime type tokens for schema fields.

* Typed arrays are thin `array.array` subclasses with a fixed typecode, so
  `isinstance` tells an Int16Array apart from an Int32Array.
* `PRIMITIVE_TYPE_NAMES` is the closed table of builtin declarations.
"""

from __future__ import annotations

import array
import datetime as dt
import re
from typing import Iterable


def now_utc() -> dt.datetime:  # compact timezone‑aware timestamp
    return dt.datetime.now(tz=dt.timezone.utc)


UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class TypedArray(array.array):
    """Fixed-width numeric array; subclasses pin the typecode."""

    typecode_: str = ""

    def __new__(cls, initializer: Iterable = ()):
        if cls is TypedArray:
            raise TypeError("TypedArray is abstract, use one of its subclasses")
        return super().__new__(cls, cls.typecode_, cls._prepare(initializer))

    @classmethod
    def _prepare(cls, initializer: Iterable) -> list:
        return list(initializer)

    def __eq__(self, other):
        if isinstance(other, TypedArray) and type(other) is not type(self):
            return False
        return super().__eq__(other)

    def __ne__(self, other):
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    # array.array copies and pickles as a plain array; keep the subclass
    def __copy__(self):
        return type(self)(self)

    def __deepcopy__(self, memo):
        return type(self)(self)

    def __reduce_ex__(self, protocol):
        return type(self), (self.tolist(),)


class Int8Array(TypedArray):
    typecode_ = "b"


class Uint8Array(TypedArray):
    typecode_ = "B"


class Uint8ClampedArray(TypedArray):
    typecode_ = "B"

    @classmethod
    def _prepare(cls, initializer: Iterable) -> list:
        return [min(255, max(0, int(round(v)))) for v in initializer]


class Int16Array(TypedArray):
    typecode_ = "h"


class Uint16Array(TypedArray):
    typecode_ = "H"


class Int32Array(TypedArray):
    typecode_ = "i"


class Uint32Array(TypedArray):
    typecode_ = "I"


class Float32Array(TypedArray):
    typecode_ = "f"


class Float64Array(TypedArray):
    typecode_ = "d"


TYPED_ARRAYS: tuple[type[TypedArray], ...] = (
    Int8Array,
    Uint8Array,
    Uint8ClampedArray,
    Int16Array,
    Uint16Array,
    Int32Array,
    Uint32Array,
    Float32Array,
    Float64Array,
)

# declaration -> type name
PRIMITIVE_TYPE_NAMES: dict[type, str] = {
    int: "Number",
    float: "Number",
    str: "String",
    bool: "Boolean",
    dt.datetime: "Date",
    list: "Array",
    bytearray: "ArrayBuffer",
    bytes: "Blob",
    **{cls: cls.__name__ for cls in TYPED_ARRAYS},
}

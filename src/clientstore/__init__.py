"""
Public surface for clientstore.
Constructing a store does not touch storage; the driver initialises on the
running event loop or on the first awaited operation.
"""

from .app_state import AppState
from .bootstrap import create_driver
from .config import StoreConfig
from .core.custom_types import ArrayOf, CustomType, Null, OneOf, SchemaId
from .core.object_to_schema import object_to_schema
from .core.schema import DEFAULT_KEYS, Schema
from .core.schema_value import SchemaValue
from .core.types import (
    Float32Array,
    Float64Array,
    Int8Array,
    Int16Array,
    Int32Array,
    Uint8Array,
    Uint8ClampedArray,
    Uint16Array,
    Uint32Array,
)
from .errors import (
    ClientStoreError,
    InvalidHandlerError,
    SchemaError,
    StoreError,
    ValidationError,
)
from .events import ABORT, ActionEventData, EventType, InterceptData
from .persistence.driver import StorageDriver
from .persistence.memory import MemoryDriver
from .persistence.store import SQLDriver
from .store import ClientStore

__all__ = [
    "ClientStore",
    "AppState",
    "Schema",
    "SchemaValue",
    "SchemaId",
    "ArrayOf",
    "OneOf",
    "Null",
    "CustomType",
    "object_to_schema",
    "DEFAULT_KEYS",
    "StoreConfig",
    "EventType",
    "ABORT",
    "ActionEventData",
    "InterceptData",
    "StorageDriver",
    "MemoryDriver",
    "SQLDriver",
    "create_driver",
    "ClientStoreError",
    "SchemaError",
    "StoreError",
    "InvalidHandlerError",
    "ValidationError",
    "Int8Array",
    "Uint8Array",
    "Uint8ClampedArray",
    "Int16Array",
    "Uint16Array",
    "Int32Array",
    "Uint32Array",
    "Float32Array",
    "Float64Array",
]

"""
Exception hierarchy and the message builders shared by store and schema code.
"""

from __future__ import annotations

from typing import Any, Sequence


class ClientStoreError(Exception):
    """
    Base exception class for errors raised by the clientstore library.
    """


class SchemaError(ClientStoreError):
    """
    Raised when a schema, field declaration or custom type cannot be built.
    """


class StoreError(ClientStoreError):
    """
    Raised when a store or its storage driver cannot be constructed.
    """


class InvalidHandlerError(ClientStoreError, TypeError):
    """
    Raised when a non-callable handler or an unknown event name is registered.
    """


class ValidationError(ClientStoreError):
    """
    Raised when data handed to a store action does not satisfy the schema.
    """


class _ErrorMessages:
    """Namespace for message builders"""

    @staticmethod
    def blank_store_name() -> str:
        return "ClientStore must have a non-blank name"

    @staticmethod
    def invalid_schema() -> str:
        return 'Invalid "Schema" instance or object'

    @staticmethod
    def mismatched_default_keys(schema_keys: Sequence[str], config_keys: Sequence[str]) -> str:
        return (
            f"Schema reserved keys {list(schema_keys)} do not match the store "
            f"configuration keys {list(config_keys)}"
        )

    @staticmethod
    def invalid_sub_handler(sub: Any) -> str:
        return f'Received invalid "subscribe" handler => {sub!r}'

    @staticmethod
    def invalid_event_name(kind: str, event_name: Any) -> str:
        return f'Received unknown {kind} "{event_name}" event'

    @staticmethod
    def invalid_event_handler(kind: str, event_name: Any, handler: Any) -> str:
        return f'Received invalid {kind} "{event_name}" event handler => {handler!r}'

    @staticmethod
    def invalid_value_provided(action: str, data: Any) -> str:
        return f'Invalid "value" provided to {action} item => {data!r}'

    @staticmethod
    def invalid_value_intercept_provided(action: str, data: Any) -> str:
        return f'Invalid "value" returned via {action} intercept handler - item => {data!r}'

    @staticmethod
    def missing_or_invalid_fields(invalid_fields: Sequence[str], field_types: Sequence[Any]) -> str:
        expected = ", ".join(
            f"[{name}, {field_type}]" for name, field_type in zip(invalid_fields, field_types)
        )
        return (
            f'Missing or invalid field types for "{", ".join(invalid_fields)}" keys. '
            f"Should be {expected}"
        )

    @staticmethod
    def unknown_driver(name: str) -> str:
        return f'Unknown storage driver "{name}"'

    @staticmethod
    def no_supported_driver(names: Sequence[str]) -> str:
        return f"None of the storage drivers {list(names)} is supported by this configuration"


error_messages = _ErrorMessages()

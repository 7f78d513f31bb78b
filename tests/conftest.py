# tests/conftest.py

import datetime as dt
from unittest.mock import MagicMock

import pytest

from clientstore import ArrayOf, Schema, SchemaValue


@pytest.fixture
def user_schema():
    """A nested schema without reserved keys."""
    schema = Schema("user", include_default_keys=False)
    schema.define_field("name", str, required=True)
    schema.define_field("age", int)
    return schema


@pytest.fixture
def owner_schema():
    """A nested schema whose fields are all optional."""
    schema = Schema("user", include_default_keys=False)
    schema.define_field("name", str)
    schema.define_field("age", int)
    return schema


@pytest.fixture
def todo_schema(owner_schema):
    """A todo schema with a required name and a nested user."""
    return Schema(
        "todo",
        {
            "name": SchemaValue(str, required=True),
            "description": SchemaValue(str, default_value="No description"),
            "complete": SchemaValue(bool),
            "tags": SchemaValue(ArrayOf(str)),
            "dueDate": SchemaValue(dt.datetime),
            "user": SchemaValue(owner_schema),
        },
    )


@pytest.fixture
def todo_literal():
    """Literal form accepted by object_to_schema / ClientStore."""
    return {
        "$name": str,
        "description": "No description",
        "complete": False,
        "tags": ArrayOf(str),
    }


@pytest.fixture
def spy():
    """A handler spy."""
    return MagicMock(return_value=None)


@pytest.fixture
def sqlite_config():
    """Config selecting the SQL driver against in-memory SQLite."""
    from clientstore import StoreConfig

    return StoreConfig(appName="test-app", type="sql", databaseUrl="sqlite+aiosqlite://")

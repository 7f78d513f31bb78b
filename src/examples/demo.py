"""
demo.py – One-shot showcase of clientstore.

Assumes:
  • an optional async SQLAlchemy URL in $CLIENTSTORE_DATABASE_URL, e.g.
    sqlite+aiosqlite:///todos.db (falls back to memory)
"""

import asyncio
import logging
import os
from pprint import pprint

from dotenv import load_dotenv

from clientstore import (
    ABORT,
    AppState,
    ArrayOf,
    ClientStore,
    EventType,
    Schema,
    SchemaValue,
    object_to_schema,
)

# ────────────────────────────────── 1. Configuration ───────────────────────────────────

load_dotenv()

logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

DATABASE_URL = os.environ.get("CLIENTSTORE_DATABASE_URL")

config = {"appName": "clientstore-demo"}
if DATABASE_URL:
    config.update(type=["sql", "memory"], databaseUrl=DATABASE_URL)

print(f"\nUsing {'SQL storage at ' + DATABASE_URL if DATABASE_URL else 'memory storage'}\n")


# ────────────────────────────────── 2. Schemas ─────────────────────────────────────────
user_schema = Schema("user", include_default_keys=False)
user_schema.define_field("name", str)
user_schema.define_field("email", str)

todo_schema = object_to_schema(
    "todo",
    {
        "$name": str,
        "description": "No description",
        "complete": False,
        "tags": ArrayOf(str),
    },
)
todo_schema.define_field("user", user_schema)


# ────────────────────────────────── 3. Hooks & events ─────────────────────────────────
def log_event(event: EventType, data) -> None:
    if event in (EventType.CREATED, EventType.UPDATED, EventType.REMOVED, EventType.ABORTED):
        print(f"\n→ {event}:")
        pprint(data, width=80)


def reject_spam(event_data):
    """Cancel any todo whose name screams"""
    if event_data.data["name"].isupper():
        return ABORT
    return None


# ────────────────────────────────── 4. Flow ───────────────────────────────────────────
async def run_todos() -> None:
    todos = ClientStore("todo", todo_schema, config)
    todos.subscribe(log_event)
    todos.intercept(EventType.CREATED, reject_spam)

    first = await todos.create_item(
        {"name": "write docs", "tags": ["docs"], "user": {"name": "sam"}}
    )
    await todos.create_item({"name": "BUY NOW"})  # aborted
    await todos.update_item(first["_id"], {"complete": True})

    done = await todos.find_items(lambda todo, key: todo["complete"])
    print(f"\nCompleted todos: {[todo['name'] for todo in done]}")

    await todos.remove_item(first["_id"])
    print(f"\nItems left: {await todos.size()}")
    await todos.close()


async def run_app_state() -> None:
    theme = AppState(
        "theme",
        Schema("theme", {"mode": SchemaValue(str, default_value="light")}),
        config,
    )
    theme.subscribe(lambda state, error: print(f"\n→ theme state: {state} error: {error}"))

    await theme.update({"mode": "dark"})
    await theme.update({"mode": "light"})
    print(f"\nFinal theme: {theme.value}")
    await theme.store.close()


def main():
    asyncio.run(run_todos())
    asyncio.run(run_app_state())


if __name__ == "__main__":
    main()

# tests/integration/test_client_store.py

import asyncio
import datetime as dt
from unittest.mock import AsyncMock, MagicMock

import pytest

from clientstore import (
    ABORT,
    ActionEventData,
    ClientStore,
    EventType,
    InterceptData,
    Int16Array,
    InvalidHandlerError,
    MemoryDriver,
    Schema,
    SchemaValue,
    StoreConfig,
    StoreError,
    Uint8ClampedArray,
    ValidationError,
)
from clientstore.core.types import UUID_PATTERN


def recorder(store, skip=(EventType.READY,)):
    """Collect (event, data) pairs broadcast by a store."""
    events = []
    store.subscribe(lambda event, data: events.append((event, data)) if event not in skip else None)
    return events


# construction
def test_blank_name():
    with pytest.raises(StoreError, match="non-blank name"):
        ClientStore("  ", Schema("todo"))


def test_invalid_schema():
    with pytest.raises(StoreError, match='Invalid "Schema" instance or object'):
        ClientStore("todo", [])


def test_literal_schema_uses_configured_keys(todo_literal):
    store = ClientStore("todo", todo_literal, {"idKeyName": "id"})
    assert list(store.schema) == [
        "id", "_createdDate", "_lastUpdatedDate", "name", "description", "complete", "tags",
    ]
    assert store.id_key_name == "id"


@pytest.mark.asyncio
async def test_configured_key_names_on_records(todo_literal):
    store = ClientStore(
        "todo", todo_literal, {"idKeyName": "id", "createdDateKeyName": "created"}
    )
    item = await store.create_item({"name": "a"})

    assert "_id" not in item
    assert UUID_PATTERN.match(item["id"])
    assert item["created"] == item["_lastUpdatedDate"]
    assert await store.get_item(item["id"]) == item


def test_properties(todo_schema):
    store = ClientStore("todo", todo_schema, StoreConfig(appName="Todos"))
    assert store.name == "todo"
    assert store.app_name == "Todos"
    assert store.type == "memory"
    assert store.schema is todo_schema
    assert store.ready is False
    assert store.processing is False
    assert store.processing_events == []
    assert store.created_date_key_name == "_createdDate"
    assert store.updated_date_key_name == "_lastUpdatedDate"


def test_handler_registration_errors(todo_schema):
    store = ClientStore("todo", todo_schema)

    with pytest.raises(InvalidHandlerError):
        store.subscribe(None)
    with pytest.raises(InvalidHandlerError):
        store.on("nope", MagicMock())
    with pytest.raises(InvalidHandlerError):
        store.intercept("created", "not callable")
    with pytest.raises(InvalidHandlerError, match='unknown INTERCEPT "saved"'):
        store.intercept("saved", MagicMock())
    with pytest.raises(InvalidHandlerError):
        store.before_change(12)


# readiness
@pytest.mark.asyncio
async def test_ready_broadcast_once(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    store.on(EventType.READY, spy)

    assert await store.size() == 0
    await store.get_items()

    assert store.ready is True
    spy.assert_called_once_with(True)


def test_ready_deferred_without_running_loop(todo_schema):
    store = ClientStore("todo", todo_schema)
    assert store.ready is False
    assert asyncio.run(store.size()) == 0
    assert store.ready is True


# create
@pytest.mark.asyncio
async def test_create_nested_item(todo_schema):
    store = ClientStore("todo", todo_schema)
    events = recorder(store)

    item = await store.create_item({"name": "buy milk", "user": {"name": "sam"}})

    assert UUID_PATTERN.match(item["_id"])
    assert isinstance(item["_createdDate"], dt.datetime)
    assert item["_createdDate"] == item["_lastUpdatedDate"]
    assert item["name"] == "buy milk"
    assert item["description"] == "No description"
    assert item["complete"] is False
    assert item["tags"] == []
    assert item["user"] == {"name": "sam"}

    assert [event for event, _ in events] == [
        EventType.PROCESSING,
        EventType.PROCESSING_EVENTS,
        EventType.CREATED,
        EventType.PROCESSING,
        EventType.PROCESSING_EVENTS,
    ]
    assert events[1][1] == [EventType.CREATED]
    assert events[2][1] == item
    assert events[4][1] == []
    assert await store.get_item(item["_id"]) == item


@pytest.mark.asyncio
async def test_create_keeps_given_id_and_ignores_reserved_values(todo_schema):
    store = ClientStore("todo", todo_schema)
    item = await store.create_item({"_id": "my-id", "name": "a", "_createdDate": "yesterday"})

    assert item["_id"] == "my-id"
    assert isinstance(item["_createdDate"], dt.datetime)


@pytest.mark.asyncio
async def test_create_with_invalid_value(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    store.on("error", spy)

    with pytest.raises(ValidationError, match='Invalid "value" provided to create item => {}'):
        await store.create_item({})

    event_data = spy.call_args[0][0]
    assert isinstance(event_data, ActionEventData)
    assert event_data.action is EventType.CREATED
    assert event_data.data == {}
    assert isinstance(event_data.error, ValidationError)
    assert store.processing is False


@pytest.mark.asyncio
async def test_create_with_invalid_fields(todo_schema):
    store = ClientStore("todo", todo_schema)

    with pytest.raises(ValidationError) as info:
        await store.create_item({"description": "no name", "complete": "yes"})

    assert str(info.value) == (
        'Missing or invalid field types for "name, complete" keys. '
        "Should be [name, String], [complete, Boolean]"
    )
    assert await store.size() == 0


@pytest.mark.asyncio
async def test_create_from_schema_value(todo_schema):
    store = ClientStore("todo", todo_schema)
    value = todo_schema.to_value()
    value["name"] = "from value"
    value["user"]["name"] = "sam"

    item = await store.create_item(value)
    assert item["_id"] == value["_id"]


@pytest.mark.asyncio
async def test_returned_items_are_copies(todo_schema):
    store = ClientStore("todo", todo_schema)
    data = {"name": "a", "tags": ["x"]}
    item = await store.create_item(data)

    data["tags"].append("y")
    item["tags"].append("z")

    assert (await store.get_item(item["_id"]))["tags"] == ["x"]


# update
@pytest.mark.asyncio
async def test_update_preserves_id_and_created_date(todo_schema):
    store = ClientStore("todo", todo_schema)
    item = await store.create_item({"name": "a"})
    await asyncio.sleep(0.001)

    updated = await store.update_item(item["_id"], {"complete": True, "_id": "other"})

    assert updated["_id"] == item["_id"]
    assert updated["_createdDate"] == item["_createdDate"]
    assert updated["_lastUpdatedDate"] > item["_lastUpdatedDate"]
    assert updated["complete"] is True
    assert updated["name"] == "a"


@pytest.mark.asyncio
async def test_update_missing_item(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    store.on("updated", spy)

    assert await store.update_item("missing", {"name": "x"}) is None
    spy.assert_not_called()


@pytest.mark.asyncio
async def test_update_with_invalid_field(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    item = await store.create_item({"name": "a"})
    store.on("error", spy)

    with pytest.raises(ValidationError, match='"name" keys'):
        await store.update_item(item["_id"], {"name": ""})

    event_data = spy.call_args[0][0]
    assert event_data.action is EventType.UPDATED
    assert event_data.id == item["_id"]
    assert (await store.get_item(item["_id"]))["name"] == "a"


# intercept & before change
@pytest.mark.asyncio
async def test_intercept_abort(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    store.intercept(EventType.CREATED, lambda event_data: ABORT)
    store.on("aborted", spy)
    data = {"name": "a"}

    assert await store.create_item(data) is None
    assert await store.size() == 0

    event_data = spy.call_args[0][0]
    assert event_data.action is EventType.CREATED
    assert event_data.data is data


@pytest.mark.asyncio
async def test_intercept_error(todo_schema):
    store = ClientStore("todo", todo_schema)
    events = recorder(store)
    error = RuntimeError("nope")

    def fail(event_data):
        raise error

    store.intercept("created", fail)

    with pytest.raises(RuntimeError, match="nope"):
        await store.create_item({"name": "a"})

    assert [event for event, _ in events] == [
        EventType.PROCESSING,
        EventType.PROCESSING_EVENTS,
        EventType.ERROR,
        EventType.PROCESSING,
        EventType.PROCESSING_EVENTS,
    ]
    assert events[2][1].error is error
    assert events[2][1].data == {"name": "a"}
    assert await store.size() == 0


@pytest.mark.asyncio
async def test_intercept_receives_copy_and_may_change_data(todo_schema):
    store = ClientStore("todo", todo_schema)
    received = []

    async def shout(event_data):
        received.append(event_data)
        event_data.data["name"] = "mutated"
        return {"name": event_data.data["name"].upper()}

    store.intercept(EventType.CREATED, shout)
    item = await store.create_item({"name": "a"})

    assert isinstance(received[0], InterceptData)
    assert received[0].id == item["_id"]
    assert item["name"] == "MUTATED"


@pytest.mark.asyncio
async def test_intercept_result_is_validated(todo_schema):
    store = ClientStore("todo", todo_schema)
    store.intercept(EventType.CREATED, lambda event_data: {"complete": "yes"})

    with pytest.raises(ValidationError, match='"complete" keys'):
        await store.create_item({"name": "a"})


@pytest.mark.asyncio
async def test_before_change(todo_schema):
    store = ClientStore("todo", todo_schema)
    handler = MagicMock(return_value=None)
    store.before_change(handler)

    item = await store.create_item({"name": "a"})
    await store.remove_item(item["_id"])

    actions = [args[0] for args, _ in handler.call_args_list]
    assert actions == [EventType.CREATED, EventType.REMOVED]
    assert handler.call_args_list[1][0][1] == InterceptData(data=item["_id"], id=item["_id"])


@pytest.mark.asyncio
async def test_intercept_takes_priority_over_before_change(todo_schema):
    store = ClientStore("todo", todo_schema)
    before = MagicMock(return_value=ABORT)
    store.before_change(before)
    store.intercept("created", lambda event_data: None)

    assert await store.create_item({"name": "a"}) is not None
    before.assert_not_called()


@pytest.mark.asyncio
async def test_unsubscribers_only_clear_their_own_handler(todo_schema):
    store = ClientStore("todo", todo_schema)
    first = MagicMock(return_value=ABORT)
    second = MagicMock(return_value=ABORT)

    un_first = store.intercept("created", first)
    store.intercept("created", second)
    un_first()

    assert await store.create_item({"name": "a"}) is None
    second.assert_called_once()

    un_before = store.before_change(first)
    store.before_change(second)
    un_before()
    assert await store.clear() is None


# load
@pytest.mark.asyncio
async def test_load_empty_list():
    store = ClientStore("todo", {"$name": str})
    events = recorder(store)

    assert await store.load_items([]) == []
    assert await store.load_items() == []

    assert events[:5] == [
        (EventType.PROCESSING, True),
        (EventType.PROCESSING_EVENTS, [EventType.LOADED]),
        (EventType.LOADED, []),
        (EventType.PROCESSING, False),
        (EventType.PROCESSING_EVENTS, []),
    ]


@pytest.mark.asyncio
async def test_load_upserts_by_id(todo_schema):
    store = ClientStore("todo", todo_schema)
    existing = await store.create_item({"name": "a", "complete": True})

    loaded = await store.load_items([
        {"_id": existing["_id"], "name": "renamed"},
        {"name": "b"},
    ])

    assert len(loaded) == 2
    assert loaded[0]["_id"] == existing["_id"]
    assert loaded[0]["name"] == "renamed"
    assert loaded[0]["complete"] is True
    assert loaded[0]["_createdDate"] == existing["_createdDate"]
    assert await store.size() == 2


@pytest.mark.asyncio
async def test_load_rejects_invalid_entries(todo_schema):
    store = ClientStore("todo", todo_schema)

    with pytest.raises(ValidationError, match="provided to load item"):
        await store.load_items([{"name": "a"}, {}])
    with pytest.raises(ValidationError, match="provided to load item"):
        await store.load_items({"name": "a"})

    assert await store.size() == 0


@pytest.mark.asyncio
async def test_load_intercept_replaces_batch(todo_schema):
    store = ClientStore("todo", todo_schema)

    def fetch(event_data):
        return [{"name": "from server"}, {"name": "another"}]

    store.intercept(EventType.LOADED, fetch)
    loaded = await store.load_items()

    assert [item["name"] for item in loaded] == ["from server", "another"]
    assert await store.size() == 2


@pytest.mark.asyncio
async def test_load_intercept_merges_with_batch_entry(todo_schema):
    store = ClientStore("todo", todo_schema)
    store.intercept(
        EventType.LOADED,
        lambda event_data: [{**event_data.data[0], "complete": True}],
    )

    loaded = await store.load_items([{"_id": "1", "name": "a"}, {"_id": "2", "name": "b"}])

    assert [(item["_id"], item["complete"]) for item in loaded] == [("1", True)]


@pytest.mark.asyncio
async def test_load_intercept_invalid_entry(todo_schema):
    store = ClientStore("todo", todo_schema)
    store.intercept(EventType.LOADED, lambda event_data: ["nope"])

    with pytest.raises(ValidationError, match="returned via load intercept handler"):
        await store.load_items([{"name": "a"}])


# remove & clear
@pytest.mark.asyncio
async def test_remove_item(todo_schema):
    store = ClientStore("todo", todo_schema)
    events = recorder(store)
    item = await store.create_item({"name": "a"})

    assert await store.remove_item(item["_id"]) == item["_id"]
    assert await store.remove_item(item["_id"]) is None
    assert await store.get_item(item["_id"]) is None
    assert (EventType.REMOVED, item["_id"]) in events


@pytest.mark.asyncio
async def test_clear(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    store.on("cleared", spy)

    assert await store.clear() == []

    a = await store.create_item({"name": "a"})
    b = await store.create_item({"name": "b"})

    assert await store.clear() == [a["_id"], b["_id"]]
    assert await store.size() == 0
    assert spy.call_count == 2


@pytest.mark.asyncio
async def test_clear_abort(todo_schema, spy):
    store = ClientStore("todo", todo_schema)
    await store.create_item({"name": "a"})
    store.intercept("cleared", lambda event_data: ABORT)
    store.on("aborted", spy)

    assert await store.clear() is None
    assert await store.size() == 1
    assert spy.call_args[0][0].action is EventType.CLEARED


# queries
@pytest.mark.asyncio
async def test_find_items(todo_schema):
    store = ClientStore("todo", todo_schema)
    await store.load_items([
        {"name": "a", "complete": True},
        {"name": "b"},
        {"name": "c", "complete": True},
    ])

    done = await store.find_items(lambda item, key: item["complete"])
    assert [item["name"] for item in done] == ["a", "c"]

    first = await store.find_item(lambda item, key: item["name"] == "b")
    assert first["name"] == "b"

    assert await store.find_item(lambda item, key: False) is None
    assert await store.find_item() is None
    assert await store.find_items("not callable") == []
    assert len(await store.get_items()) == 3


@pytest.mark.asyncio
async def test_find_gets_copies(todo_schema):
    store = ClientStore("todo", todo_schema)
    await store.create_item({"name": "a"})

    def mutate(item, key):
        item["name"] = "changed"
        return True

    await store.find_items(mutate)
    assert (await store.get_items())[0]["name"] == "a"


# concurrency
@pytest.mark.asyncio
async def test_concurrent_operations_share_processing_state(todo_schema):
    store = ClientStore("todo", todo_schema)
    events = recorder(store)

    async def yield_once(event_data):
        await asyncio.sleep(0)

    store.intercept("created", yield_once)

    await asyncio.gather(*(store.create_item({"name": str(i)}) for i in range(5)))

    processing = [data for event, data in events if event is EventType.PROCESSING]
    assert processing == [True, False]
    assert store.processing is False
    assert await store.size() == 5


@pytest.mark.asyncio
async def test_processing_events_while_in_flight(todo_schema):
    store = ClientStore("todo", todo_schema)
    seen = []

    async def slow(event_data):
        seen.append(store.processing_events)
        await asyncio.sleep(0)

    store.intercept("created", slow)
    await store.create_item({"name": "a"})

    assert seen == [[EventType.CREATED]]
    assert store.processing_events == []


# drivers
@pytest.mark.asyncio
async def test_custom_driver_instance(todo_schema):
    driver = MemoryDriver(StoreConfig(), "todo")
    store = ClientStore("todo", todo_schema, driver=driver)
    item = await store.create_item({"name": "a"})

    assert await driver.get_item(item["_id"]) == item


@pytest.mark.asyncio
async def test_sql_backed_store(todo_schema, sqlite_config):
    store = ClientStore("todo", todo_schema, sqlite_config)
    assert store.type == "sql"

    item = await store.create_item({"name": "a", "tags": ["x"], "user": {"name": "sam"}})
    await store.update_item(item["_id"], {"complete": True})

    stored = await store.get_item(item["_id"])
    assert stored["complete"] is True
    assert stored["user"] == {"name": "sam"}
    assert await store.clear() == [item["_id"]]
    await store.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("storage", ["memory", "sql"])
async def test_typed_array_fields(storage, sqlite_config):
    config = sqlite_config if storage == "sql" else StoreConfig()
    schema = Schema(
        "sample",
        {"name": SchemaValue(str), "buf": SchemaValue(Int16Array), "px": SchemaValue(Uint8ClampedArray)},
    )
    store = ClientStore("sample", schema, config)

    defaulted = await store.create_item({"name": "a"})
    assert type(defaulted["buf"]) is Int16Array
    assert list(defaulted["buf"]) == []

    supplied = await store.create_item({"name": "b", "buf": Int16Array([1, 2])})
    updated = await store.update_item(supplied["_id"], {"px": Uint8ClampedArray([300])})

    stored = await store.get_item(supplied["_id"])
    assert type(stored["buf"]) is Int16Array
    assert list(stored["buf"]) == [1, 2]
    assert type(stored["px"]) is Uint8ClampedArray
    assert stored == updated

    from_value = await store.create_item(schema.to_value())
    assert type(from_value["px"]) is Uint8ClampedArray

    await store.close()


def test_schema_reserved_keys_must_match_config():
    schema = Schema("todo", {"name": SchemaValue(str, required=True)})

    with pytest.raises(StoreError, match="do not match the store configuration keys"):
        ClientStore("todo", schema, {"idKeyName": "id"})

    matching = Schema("todo", default_keys=("id", "_createdDate", "_lastUpdatedDate"))
    assert ClientStore("todo", matching, {"idKeyName": "id"}).id_key_name == "id"


@pytest.mark.asyncio
async def test_schema_without_reserved_keys_uses_configured_ones():
    schema = Schema("todo", {"name": SchemaValue(str)}, include_default_keys=False)
    store = ClientStore("todo", schema, {"idKeyName": "id"})

    item = await store.create_item({"name": "x"})
    assert sorted(item) == ["_createdDate", "_lastUpdatedDate", "id", "name"]


@pytest.mark.asyncio
async def test_close_releases_driver(todo_schema):
    driver = MemoryDriver(StoreConfig(), "todo")
    driver.close = AsyncMock()
    store = ClientStore("todo", todo_schema, driver=driver)

    await store.close()

    driver.close.assert_awaited_once()
    assert store.ready is True

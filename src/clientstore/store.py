"""
ClientStore – a schema-validated collection of records over a storage driver.

* Every mutation runs: validate ➜ intercept / before_change ➜ persist ➜ broadcast.
* Failures are broadcast as ``error`` and then re-raised to the caller.
* The store owns persisted records; callers always receive deep copies.
"""

from __future__ import annotations

import asyncio
import copy
import datetime as dt
import inspect
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from .bootstrap import create_driver
from .config import StoreConfig
from .core.checks import is_object_literal, is_valid_object_literal
from .core.custom_types import generate_id
from .core.object_to_schema import object_to_schema
from .core.schema import Schema
from .core.types import now_utc
from .errors import InvalidHandlerError, StoreError, ValidationError, error_messages
from .events import (
    ABORT,
    ActionEventData,
    EventHandler,
    EventRegistry,
    EventType,
    InterceptData,
    StoreSubscriber,
    UnSubscriber,
)
from .persistence.driver import StorageDriver

logger = logging.getLogger(__name__)

deep_clone = copy.deepcopy

Record = Dict[str, Any]
InterceptHandler = Callable[[InterceptData], Any]
BeforeChangeHandler = Callable[[EventType, InterceptData], Any]
Predicate = Callable[[Record, str], bool]


class ClientStore:
    def __init__(
        self,
        name: str,
        schema: Schema | Dict[str, Any],
        config: StoreConfig | Dict[str, Any] | None = None,
        driver: StorageDriver | None = None,
    ) -> None:
        if not str(name).strip():
            raise StoreError(error_messages.blank_store_name())

        self._name = name
        self._config = StoreConfig.from_value(config)

        if not isinstance(schema, Schema):
            if not is_object_literal(schema):
                raise StoreError(error_messages.invalid_schema())
            schema = object_to_schema(name, schema, default_keys=self._config.default_keys)
        elif schema.default_keys and schema.default_keys != self._config.default_keys:
            raise StoreError(
                error_messages.mismatched_default_keys(schema.default_keys, self._config.default_keys)
            )

        self._schema = schema
        self._driver = driver if driver is not None else create_driver(self._config, name)
        self._events = EventRegistry()
        self._intercept_handlers: Dict[EventType, Optional[InterceptHandler]] = {
            event: None for event in EventType
        }
        self._before_change_handler: Optional[BeforeChangeHandler] = None
        self._ready = False
        self._ready_task: Optional[asyncio.Future] = None
        self._processes: Dict[str, EventType] = {}

        # start the driver right away when constructed inside an event loop,
        # otherwise the first operation does it
        if _running_loop() is not None:
            self._ready_task = asyncio.ensure_future(self._initialize())

    def __repr__(self) -> str:
        return f"ClientStore({self._name!r}, app={self.app_name!r}, driver={self._driver.name!r})"

    # properties
    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def ready(self) -> bool:
        """whether the storage driver finished initialising"""
        return self._ready

    @property
    def type(self) -> str:
        """name of the storage driver in use"""
        return self._driver.name

    @property
    def name(self) -> str:
        return self._name

    @property
    def app_name(self) -> str:
        return self._config.app_name

    @property
    def processing(self) -> bool:
        return len(self._processes) > 0

    @property
    def processing_events(self) -> List[EventType]:
        return list(self._processes.values())

    @property
    def id_key_name(self) -> str:
        return self._config.id_key_name

    @property
    def created_date_key_name(self) -> str:
        return self._config.created_date_key_name

    @property
    def updated_date_key_name(self) -> str:
        return self._config.updated_date_key_name

    async def size(self) -> int:
        """the total count of items in the store"""
        await self._ensure_ready()
        return await self._driver.length()

    async def close(self) -> None:
        """release the storage driver; the store is unusable afterwards"""
        if self._ready_task is not None and not self._ready_task.done():
            await self._ready_task
        await self._driver.close()
        logger.debug("store %s/%s closed", self.app_name, self._name)

    # subscriptions & hooks
    def subscribe(self, sub: StoreSubscriber) -> UnSubscriber:
        """call ``sub(event_type, data)`` for every event"""
        return self._events.subscribe(sub)

    def on(self, event: EventType | str, handler: EventHandler) -> UnSubscriber:
        return self._events.on(event, handler)

    def off(self, event: EventType | str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    def before_change(self, handler: BeforeChangeHandler) -> UnSubscriber:
        """
        Single hook called as ``handler(action, InterceptData)`` before any
        change, unless an action-specific intercept handler is registered.
        Registering again replaces the previous handler.
        """
        if not callable(handler):
            raise InvalidHandlerError(
                error_messages.invalid_event_handler("function", "beforeChange", handler)
            )

        self._before_change_handler = handler

        def unsubscribe() -> None:
            if self._before_change_handler is handler:
                self._before_change_handler = None

        return unsubscribe

    def intercept(self, event: EventType | str, handler: InterceptHandler) -> UnSubscriber:
        """
        Per-action hook called as ``handler(InterceptData)``. Return ``ABORT``
        to cancel the action, a dict (a list for ``loaded``) to change the
        data, or None to let it through.
        """
        if not callable(handler):
            raise InvalidHandlerError(
                error_messages.invalid_event_handler("INTERCEPT", event, handler)
            )

        event_type = EventType.parse(event, "INTERCEPT")
        self._intercept_handlers[event_type] = handler

        def unsubscribe() -> None:
            if self._intercept_handlers[event_type] is handler:
                self._intercept_handlers[event_type] = None

        return unsubscribe

    # actions
    async def load_items(self, data_list: Optional[List[Dict[str, Any]]] = None) -> Optional[List[Record]]:
        """
        Upsert a list of items keyed by the id field. The LOADED intercept
        handler receives the whole batch and may return a replacement list,
        which makes ``load_items()`` usable as a lazy fetch.
        """
        data_list = [] if data_list is None else data_list

        async with self._track_process(EventType.LOADED):
            try:
                await self._ensure_ready()

                if not isinstance(data_list, list):
                    raise ValidationError(error_messages.invalid_value_provided("load", data_list))

                new_items: Dict[str, Record] = {}

                for data in data_list:
                    if not is_valid_object_literal(data):
                        raise ValidationError(error_messages.invalid_value_provided("load", data))

                    item, item_id = await self._merge_existing_item_with_new_data(
                        data, self._batched_item(new_items, data)
                    )
                    self._validate_data(item)
                    new_items[item_id] = item

                result = await self._get_with_result(EventType.LOADED, list(new_items.values()))

                if result is ABORT:
                    self._abort(EventType.LOADED, data_list)
                    return None

                if isinstance(result, list) and result:
                    replaced: Dict[str, Record] = {}

                    for value in result:
                        if not is_object_literal(value):
                            raise ValidationError(
                                error_messages.invalid_value_intercept_provided("load", value)
                            )

                        current = self._batched_item(new_items, value)

                        if current is not None:
                            item = deep_clone({**current, **value})
                            item_id = str(item[self.id_key_name])
                        else:
                            item, item_id = await self._merge_existing_item_with_new_data(value)

                        self._validate_data(item)
                        replaced[item_id] = item

                    new_items = replaced

                saved = list(
                    await asyncio.gather(
                        *(self._driver.set_item(key, item) for key, item in new_items.items())
                    )
                )

                logger.debug("loaded %d item(s) into %s", len(saved), self._name)
                self._broadcast(EventType.LOADED, deep_clone(saved))

                return deep_clone(saved)
            except Exception as error:
                self._broadcast(
                    EventType.ERROR, self._create_event_data(EventType.LOADED, data_list, None, error)
                )
                raise

    async def create_item(self, data: Dict[str, Any]) -> Optional[Record]:
        """create an item from a partial item dict; returns None when aborted"""
        async with self._track_process(EventType.CREATED):
            try:
                await self._ensure_ready()

                if not is_valid_object_literal(data):
                    raise ValidationError(error_messages.invalid_value_provided("create", data))

                item, item_id = await self._merge_existing_item_with_new_data(data)
                self._validate_data(item)

                result = await self._get_with_result(EventType.CREATED, item, item_id)

                if result is ABORT:
                    self._abort(EventType.CREATED, data)
                    return None

                if is_object_literal(result):
                    item = deep_clone({**item, **result})
                    self._validate_data(item)

                saved = await self._driver.set_item(str(item[self.id_key_name]), item)

                logger.debug("created item %s in %s", item[self.id_key_name], self._name)
                self._broadcast(EventType.CREATED, deep_clone(saved))

                return deep_clone(saved)
            except Exception as error:
                self._broadcast(
                    EventType.ERROR, self._create_event_data(EventType.CREATED, data, None, error)
                )
                raise

    async def update_item(self, id: str, data: Dict[str, Any]) -> Optional[Record]:
        """update an existing item; returns None if it does not exist or when aborted"""
        key = str(id)

        async with self._track_process(EventType.UPDATED):
            try:
                await self._ensure_ready()

                if not is_valid_object_literal(data):
                    raise ValidationError(error_messages.invalid_value_provided("update", data))

                existing = await self._driver.get_item(key)

                if existing is None:
                    return None

                item, _ = await self._merge_existing_item_with_new_data(data, deep_clone(existing))
                self._validate_data(item)

                result = await self._get_with_result(EventType.UPDATED, item, key)

                if result is ABORT:
                    self._abort(EventType.UPDATED, data)
                    return None

                if is_object_literal(result):
                    item = deep_clone({**item, **result})
                    self._validate_data(item)

                saved = await self._driver.set_item(key, item)

                logger.debug("updated item %s in %s", key, self._name)
                self._broadcast(EventType.UPDATED, deep_clone(saved))

                return deep_clone(saved)
            except Exception as error:
                self._broadcast(
                    EventType.ERROR, self._create_event_data(EventType.UPDATED, data, key, error)
                )
                raise

    async def remove_item(self, id: str) -> Optional[str]:
        """remove a single item; returns its id, or None if missing or aborted"""
        key = str(id)

        async with self._track_process(EventType.REMOVED):
            try:
                await self._ensure_ready()

                if await self._driver.get_item(key) is None:
                    return None

                result = await self._get_with_result(EventType.REMOVED, key, key)

                if result is ABORT:
                    self._abort(EventType.REMOVED, key)
                    return None

                await self._driver.remove_item(key)

                logger.debug("removed item %s from %s", key, self._name)
                self._broadcast(EventType.REMOVED, key)

                return key
            except Exception as error:
                self._broadcast(
                    EventType.ERROR, self._create_event_data(EventType.REMOVED, key, key, error)
                )
                raise

    async def clear(self) -> Optional[List[str]]:
        """remove every item; returns the removed ids, or None when aborted"""
        async with self._track_process(EventType.CLEARED):
            keys: List[str] = []

            try:
                await self._ensure_ready()

                keys = await self._driver.keys()

                result = await self._get_with_result(EventType.CLEARED, keys)

                if result is ABORT:
                    self._abort(EventType.CLEARED, keys)
                    return None

                await self._driver.clear()

                logger.debug("cleared %d item(s) from %s", len(keys), self._name)
                self._broadcast(EventType.CLEARED, list(keys))

                return list(keys)
            except Exception as error:
                self._broadcast(
                    EventType.ERROR, self._create_event_data(EventType.CLEARED, keys, None, error)
                )
                raise

    # queries
    async def get_item(self, id: str) -> Optional[Record]:
        await self._ensure_ready()
        value = await self._driver.get_item(str(id))
        return deep_clone(value) if value is not None else None

    async def get_items(self) -> List[Record]:
        return await self.find_items(lambda value, key: True)

    async def find_item(self, predicate: Optional[Predicate] = None) -> Optional[Record]:
        """first item for which ``predicate(item, key)`` is truthy"""
        if not callable(predicate):
            return None

        await self._ensure_ready()

        def match(value: Record, key: str, index: int) -> Optional[Record]:
            value = deep_clone(value)
            return value if predicate(value, key) else None

        return await self._driver.iterate(match)

    async def find_items(self, predicate: Optional[Predicate] = None) -> List[Record]:
        """every item for which ``predicate(item, key)`` is truthy"""
        if not callable(predicate):
            return []

        await self._ensure_ready()

        items: List[Record] = []

        def collect(value: Record, key: str, index: int) -> None:
            value = deep_clone(value)
            if value is not None and predicate(value, key):
                items.append(value)

        await self._driver.iterate(collect)

        return items

    # internals
    async def _initialize(self) -> None:
        await self._driver.ready()
        self._ready = True
        logger.info("store %s/%s ready on %s driver", self.app_name, self._name, self.type)
        self._broadcast(EventType.READY, True)

    async def _ensure_ready(self) -> None:
        if self._ready:
            return
        if self._ready_task is None:
            self._ready_task = asyncio.ensure_future(self._initialize())
        await self._ready_task

    def _batched_item(self, batch: Dict[str, Record], data: Dict[str, Any]) -> Optional[Record]:
        item_id = data.get(self.id_key_name)
        return batch.get(str(item_id)) if item_id is not None else None

    async def _merge_existing_item_with_new_data(
        self, data: Dict[str, Any], existing_item: Optional[Record] = None
    ) -> tuple[Record, str]:
        id_key, created_key, updated_key = self._config.default_keys
        default_keys = {id_key, created_key, updated_key}
        now = now_utc()
        item_id = data.get(id_key)
        item = existing_item

        if item is None and item_id is not None:
            stored = await self._driver.get_item(str(item_id))
            item = deep_clone(stored) if stored is not None else None

        if item is not None:
            item[updated_key] = _timestamp(data.get(updated_key), now)
        else:
            item = self._schema.to_value()
            item[id_key] = str(item_id) if item_id is not None else generate_id()
            item[created_key] = _timestamp(data.get(created_key), now)
            item[updated_key] = item[created_key]

        for key, value in data.items():
            if key not in default_keys:
                item[key] = deep_clone(value)

        return item, str(item[id_key])

    def _validate_data(self, data: Record) -> None:
        invalid_fields = self._schema.get_invalid_schema_data_fields(
            data, self._config.default_keys
        )

        if invalid_fields:
            field_types = [self._schema.get_field(name) or "unknown" for name in invalid_fields]
            raise ValidationError(
                error_messages.missing_or_invalid_fields(invalid_fields, field_types)
            )

    async def _get_with_result(self, event: EventType, data: Any, id: Optional[str] = None) -> Any:
        event_data = InterceptData(data=deep_clone(data), id=id)
        handler = self._intercept_handlers.get(event)

        if handler is not None:
            result = handler(event_data)
        elif self._before_change_handler is not None:
            result = self._before_change_handler(event, event_data)
        else:
            return None

        if inspect.isawaitable(result):
            result = await result

        return result

    def _abort(self, action: EventType, data: Any) -> None:
        logger.debug("%s action aborted on %s", action, self._name)
        self._broadcast(EventType.ABORTED, ActionEventData(action=action, data=data))

    def _broadcast(self, event: EventType, data: Any) -> None:
        self._events.emit(event, data)

    @staticmethod
    def _create_event_data(
        action: EventType, data: Any, id: Optional[str] = None, error: Optional[BaseException] = None
    ) -> ActionEventData:
        return ActionEventData(action=action, data=data, id=id, error=error)

    @asynccontextmanager
    async def _track_process(self, event: EventType) -> AsyncIterator[None]:
        process_id = f"{event.value}_{uuid.uuid4().hex}"
        self._processes[process_id] = event

        if len(self._processes) == 1:  # should contain only the newly added one
            self._broadcast(EventType.PROCESSING, True)
            self._broadcast(EventType.PROCESSING_EVENTS, self.processing_events)

        try:
            yield
        finally:
            del self._processes[process_id]

            if not self.processing:
                self._broadcast(EventType.PROCESSING, False)
                self._broadcast(EventType.PROCESSING_EVENTS, self.processing_events)


# helpers
def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:  # not inside a coroutine
        return None


def _timestamp(value: Any, now: dt.datetime) -> dt.datetime:
    return value if isinstance(value, dt.datetime) else now

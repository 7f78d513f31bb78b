"""
AppState – a single schema-validated record kept in a private ClientStore.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Optional

from .config import StoreConfig
from .core.schema import Schema
from .events import ActionEventData, EventType, InterceptData, UnSubscriber
from .persistence.driver import StorageDriver
from .store import ClientStore, Record

StateSubscriber = Callable[[Optional[Dict[str, Any]], Optional[BaseException]], Any]
StateInterceptor = Callable[[Dict[str, Any]], Any]


class AppState:
    def __init__(
        self,
        name: str,
        schema: Schema | Dict[str, Any],
        config: StoreConfig | Dict[str, Any] | None = None,
        driver: StorageDriver | None = None,
    ) -> None:
        self._store = ClientStore(name, schema, config, driver)
        self._item: Record = self._store.schema.to_value()
        self._item_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"AppState({self._store.name!r}, {self.value!r})"

    @property
    def store(self) -> ClientStore:
        return self._store

    @property
    def value(self) -> Dict[str, Any]:
        """current state, without the reserved id and date keys"""
        return self._extract_state(self._item)

    async def update(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create the record on the first call, update it afterwards.
        Returns the new state, or None when an intercept aborted the change.
        """
        if self._item_id is None:
            item = await self._store.create_item({**self.value, **data})
        else:
            item = await self._store.update_item(self._item_id, data)

        if item is None:
            return None

        self._item = item
        self._item_id = str(item[self._store.id_key_name])

        return self._extract_state(item)

    def subscribe(self, handler: StateSubscriber) -> UnSubscriber:
        """``handler(state, None)`` on every change, ``handler(None, error)`` on failures"""

        def on_event(event: EventType, data: Any) -> None:
            if event in (EventType.CREATED, EventType.UPDATED):
                handler(self._extract_state(data), None)
            elif event == EventType.ERROR and isinstance(data, ActionEventData):
                handler(None, data.error)

        return self._store.subscribe(on_event)

    def intercept(self, handler: StateInterceptor) -> UnSubscriber:
        """
        Hook both the first creation and later updates with ``handler(state)``;
        its return value is handled like any store intercept result.
        """

        async def on_change(event_data: InterceptData) -> Any:
            result = handler(self._extract_state(event_data.data))
            if inspect.isawaitable(result):
                result = await result
            return result

        un_create = self._store.intercept(EventType.CREATED, on_change)
        un_update = self._store.intercept(EventType.UPDATED, on_change)

        def unsubscribe() -> None:
            un_create()
            un_update()

        return unsubscribe

    def _extract_state(self, item: Record) -> Dict[str, Any]:
        reserved = set(self._store.config.default_keys) | set(self._store.schema.default_keys)
        return {key: value for key, value in item.items() if key not in reserved}

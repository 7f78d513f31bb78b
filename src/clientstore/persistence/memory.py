"""
In-memory driver backed by a plain dict (insertion ordered).
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..config import MEMORY_STORAGE
from .driver import Iteratee, StorageDriver


class MemoryDriver(StorageDriver):
    name = MEMORY_STORAGE

    def __init__(self, config, store_name: str) -> None:
        super().__init__(config, store_name)
        self._map: Dict[str, Any] = {}

    async def get_item(self, key: str) -> Any:
        return self._map.get(key)

    async def set_item(self, key: str, value: Any) -> Any:
        self._map[key] = value
        return value

    async def remove_item(self, key: str) -> None:
        self._map.pop(key, None)

    async def clear(self) -> None:
        self._map.clear()

    async def keys(self) -> List[str]:
        return list(self._map)

    async def length(self) -> int:
        return len(self._map)

    async def iterate(self, fn: Iteratee) -> Any:
        for index, (key, value) in enumerate(list(self._map.items())):
            result = fn(value, key, index)
            if result is not None:
                return result
        return None

"""
Storage driver contract.

A driver is an asynchronous key/value store owned by exactly one
ClientStore. Values go in and come out as Python objects; the store takes
care of copying them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from ..config import StoreConfig

Iteratee = Callable[[Any, str, int], Any]


class StorageDriver(ABC):
    name: str = ""

    def __init__(self, config: "StoreConfig", store_name: str) -> None:
        self.config = config
        self.store_name = store_name

    @classmethod
    def is_supported(cls, config: "StoreConfig") -> bool:
        return True

    async def ready(self) -> None:
        """Prepare the backing storage; called once before any other method."""

    async def close(self) -> None:
        """Release connections or other resources held by the driver."""

    @abstractmethod
    async def get_item(self, key: str) -> Any: ...

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> Any: ...

    @abstractmethod
    async def remove_item(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...

    @abstractmethod
    async def keys(self) -> List[str]: ...

    @abstractmethod
    async def length(self) -> int: ...

    @abstractmethod
    async def iterate(self, fn: Iteratee) -> Any:
        """Call ``fn(value, key, index)`` per item; stop on the first non-None result."""

    async def key(self, index: int) -> Optional[str]:
        keys = await self.keys()
        return keys[index] if 0 <= index < len(keys) else None

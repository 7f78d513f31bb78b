"""
Single entry-point that turns a StoreConfig into the storage driver a
ClientStore owns. No global registration: every call builds a new driver.
"""

from __future__ import annotations

from typing import Dict, Type

from .config import StoreConfig
from .errors import StoreError, error_messages
from .persistence.driver import StorageDriver
from .persistence.memory import MemoryDriver
from .persistence.store import SQLDriver

DRIVERS: Dict[str, Type[StorageDriver]] = {
    MemoryDriver.name: MemoryDriver,
    SQLDriver.name: SQLDriver,
}


def create_driver(config: StoreConfig, store_name: str) -> StorageDriver:
    """
    Walk ``config.type`` in preference order and build the first driver the
    configuration supports (e.g. ``sql`` needs ``database_url``).
    """
    names = config.driver_names

    for name in names:
        driver_cls = DRIVERS.get(name)
        if driver_cls is None:
            raise StoreError(error_messages.unknown_driver(name))
        if driver_cls.is_supported(config):
            return driver_cls(config, store_name)

    raise StoreError(error_messages.no_supported_driver(names))

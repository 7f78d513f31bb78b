"""
Thin data-access layer around the `store_items` table.
Each driver instance is scoped to one (app name, store name) pair.

Uses the asyncio extension of SQLAlchemy, so the URL needs an async DBAPI
(``sqlite+aiosqlite://``, ``postgresql+asyncpg://`` ...).
"""

from __future__ import annotations

import logging
from typing import Any, List

from sqlalchemy import delete, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..config import SQL_STORAGE
from ..core.types import now_utc
from .driver import Iteratee, StorageDriver
from .models import Base, StoredItem

logger = logging.getLogger(__name__)


def _create_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)

    # an in-memory SQLite database lives as long as its single connection
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(url, pool_pre_ping=True)


class SQLDriver(StorageDriver):
    """SQLAlchemy-backed driver; values are pickled into a single column."""

    name = SQL_STORAGE

    def __init__(self, config, store_name: str, engine: AsyncEngine | None = None) -> None:
        super().__init__(config, store_name)
        self._owns_engine = engine is None
        self.engine = engine if engine is not None else _create_engine(config.database_url)
        self._sessions = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def is_supported(cls, config) -> bool:
        return bool(config.database_url)

    def _scoped(self, stmt):
        return stmt.where(
            StoredItem.app_name == self.config.app_name,
            StoredItem.store_name == self.store_name,
        )

    async def ready(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)  # idempotent
        logger.info(
            "sql storage ready for %s/%s on %s",
            self.config.app_name,
            self.store_name,
            self.engine.url.render_as_string(hide_password=True),
        )

    async def close(self) -> None:
        """Dispose of the engine when this driver created it."""
        if self._owns_engine:
            await self.engine.dispose()

    # ---- reads ---------------------------------------------------------
    async def get_item(self, key: str) -> Any:
        async with self._sessions() as s:
            q = self._scoped(select(StoredItem.value)).where(StoredItem.key == key)
            row = (await s.execute(q)).first()
            return row.value if row else None

    async def keys(self) -> List[str]:
        async with self._sessions() as s:
            q = self._scoped(select(StoredItem.key)).order_by(StoredItem.row_id)
            return list((await s.scalars(q)).all())

    async def length(self) -> int:
        async with self._sessions() as s:
            q = self._scoped(select(func.count(StoredItem.row_id)))
            return (await s.execute(q)).scalar_one()

    async def iterate(self, fn: Iteratee) -> Any:
        async with self._sessions() as s:
            q = self._scoped(select(StoredItem.key, StoredItem.value)).order_by(
                StoredItem.row_id
            )
            rows = (await s.execute(q)).all()

        for index, (key, value) in enumerate(rows):
            result = fn(value, key, index)
            if result is not None:
                return result
        return None

    # ---- writes ---------------------------------------------------------
    async def set_item(self, key: str, value: Any) -> Any:
        async with self._sessions() as s:
            q = self._scoped(select(StoredItem)).where(StoredItem.key == key)
            row = (await s.scalars(q)).first()
            if row is None:
                s.add(
                    StoredItem(
                        app_name=self.config.app_name,
                        store_name=self.store_name,
                        key=key,
                        version=self.config.version,
                        value=value,
                    )
                )
            else:
                row.value = value
                row.version = self.config.version
                row.updated_ts = now_utc()
            await s.commit()
        return value

    async def remove_item(self, key: str) -> None:
        async with self._sessions() as s:
            await s.execute(self._scoped(delete(StoredItem)).where(StoredItem.key == key))
            await s.commit()

    async def clear(self) -> None:
        async with self._sessions() as s:
            await s.execute(self._scoped(delete(StoredItem)))
            await s.commit()

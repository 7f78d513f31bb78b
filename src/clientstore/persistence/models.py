"""
Single-table schema: every item of every SQL-backed store lives here.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    PickleType,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from ..core.types import now_utc

Base = declarative_base()


class StoredItem(Base):
    """One row per (app, store, key); ``row_id`` keeps insertion order."""

    __tablename__ = "store_items"
    __table_args__ = (UniqueConstraint("app_name", "store_name", "key"),)

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    app_name = Column(String, nullable=False, index=True)
    store_name = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)
    version = Column(Float, nullable=False, default=1)
    value = Column(PickleType, nullable=True)
    created_ts = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_ts = Column(DateTime(timezone=True), default=now_utc, nullable=False)

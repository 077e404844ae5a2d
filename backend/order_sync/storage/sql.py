from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import sessionmaker

from ..exceptions import StorageError
from ..logger import logger
from ..models import Base, KeyValueEntry
from .base import KeyValueStorage


class SqlStorage(KeyValueStorage):
    """Key-value storage on top of the `kv_entries` table."""

    def __init__(self, engine: AsyncEngine, session_factory: sessionmaker) -> None:
        self.engine = engine
        self.session_factory = session_factory

    async def init(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Key-value table ready")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize key-value table: {e}")
            raise StorageError(f"Failed to initialize storage: {e}")

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self.session_factory() as db:
                res = await db.execute(select(KeyValueEntry.value).where(KeyValueEntry.key == key))
                return res.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key '{key}': {e}")
            raise StorageError(f"Failed to read key '{key}': {e}")

    async def set(self, key: str, value: str) -> None:
        try:
            async with self.session_factory() as db:
                entry = await db.get(KeyValueEntry, key)
                if entry is None:
                    db.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write key '{key}': {e}")
            raise StorageError(f"Failed to write key '{key}': {e}")

    async def dispose(self) -> None:
        await self.engine.dispose()

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.config import Settings
from services.persistence.base import ChangeFeed, ObjectStore, RelationalStore

logger = logging.getLogger(__name__)


@dataclass
class DataPlatform:
    """Everything the services need from the hosted backend, built once per process."""

    db: RelationalStore
    objects: ObjectStore
    feed: ChangeFeed

    def close(self) -> None:
        self.feed.close()
        close_db = getattr(self.db, "close", None)
        if close_db:
            close_db()


def memory_platform(public_base_url: str = "http://testserver") -> DataPlatform:
    from services.persistence.memory import InProcessChangeFeed, MemoryStore
    from services.persistence.storage import MemoryObjectStore

    feed = InProcessChangeFeed()
    return DataPlatform(
        db=MemoryStore(feed), objects=MemoryObjectStore(public_base_url), feed=feed
    )


def build_platform(settings: Settings) -> DataPlatform:
    if settings.DATA_BACKEND == "memory":
        logger.warning("using in-memory data platform; data is lost on restart")
        return memory_platform(settings.PUBLIC_BASE_URL)

    if settings.DATA_BACKEND != "postgres":
        raise ValueError(f"unknown DATA_BACKEND: {settings.DATA_BACKEND}")

    from services.persistence.postgres import PostgresChangeFeed, PostgresStore
    from services.persistence.storage import FileObjectStore

    db = PostgresStore(settings.DATABASE_URL, max_conn=settings.DB_POOL_MAX)
    db.init_schema()
    return DataPlatform(
        db=db,
        objects=FileObjectStore(settings.STORAGE_ROOT, settings.PUBLIC_BASE_URL),
        feed=PostgresChangeFeed(settings.DATABASE_URL),
    )

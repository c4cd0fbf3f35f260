"""Article cache persisted under a single key in a pluggable key-value backend.

``ArticleStore`` never lets a read or write failure escape: a missing or
unreadable cache loads as an empty list, and a failed write is logged. The
backends only know about string keys and string values.
"""

import asyncio
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, String, Text, delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from src.scout.state import Article
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

STORAGE_KEY = "jctc_articles_cache_v1"


class KeyValueBackend(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryBackend:
    """Process-local backend, used by tests and the ``memory`` setting."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """One ``<key>.json`` file per key inside *directory*."""

    def __init__(self, directory: str | Path = "data") -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)


Base = declarative_base()


class KeyValueEntry(Base):
    """SQLAlchemy model for a single cached value."""

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class SqliteBackend:
    """SQLite-backed key-value table (async engine over aiosqlite)."""

    def __init__(self, db_path: str = "data/jctc_scout.db") -> None:
        self.db_path = db_path
        self._engine: Optional[AsyncEngine] = None
        self._session_factory = None
        self._init_lock: Optional[asyncio.Lock] = None

    async def _get_session(self) -> AsyncSession:
        if self._session_factory is None:
            if self._init_lock is None:
                self._init_lock = asyncio.Lock()
            async with self._init_lock:
                if self._session_factory is None:
                    await self._init_database()
        return self._session_factory()

    async def _init_database(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        engine = create_async_engine(f"sqlite+aiosqlite:///{self.db_path}", echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._engine = engine
        self._session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def get(self, key: str) -> Optional[str]:
        async with await self._get_session() as session:
            entry = await session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: str) -> None:
        async with await self._get_session() as session:
            entry = await session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = datetime.now()
            await session.commit()

    async def delete(self, key: str) -> None:
        async with await self._get_session() as session:
            await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            await session.commit()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


class ArticleStore:
    """Reads and writes the whole article collection as one JSON document."""

    def __init__(self, backend: KeyValueBackend, key: str = STORAGE_KEY) -> None:
        self.backend = backend
        self.key = key

    async def load(self) -> list[Article]:
        """Return the cached articles; never raises."""
        try:
            raw = await self.backend.get(self.key)
        except Exception as e:
            logger.error("Failed to load cache", key=self.key, error=str(e), exc_info=True)
            return []

        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("Cache is not valid JSON, ignoring it", key=self.key, error=str(e))
            return []

        if not isinstance(payload, list):
            logger.error("Cache is not a list, ignoring it", key=self.key, type=type(payload).__name__)
            return []

        articles: list[Article] = []
        seen: set[str] = set()
        skipped = 0
        for item in payload:
            try:
                article = Article.model_validate(item)
            except ValidationError:
                skipped += 1
                continue
            if article.id in seen:
                skipped += 1
                continue
            seen.add(article.id)
            articles.append(article)

        if skipped:
            logger.warning("Skipped unreadable cache records", key=self.key, skipped=skipped)
        return articles

    async def save(self, articles: list[Article]) -> None:
        """Persist *articles*; failures are logged, never raised."""
        try:
            payload = json.dumps(
                [a.model_dump(mode="json") for a in articles],
                ensure_ascii=False,
            )
            await self.backend.set(self.key, payload)
        except Exception as e:
            logger.error("Failed to save cache", key=self.key, count=len(articles), error=str(e), exc_info=True)

    async def clear(self) -> None:
        await self.backend.delete(self.key)
        logger.info("Cache cleared", key=self.key)

    async def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()

"""
Persistent cache tier.

Entries are stored as JSON records (``{value, createdAt, ttl, key}``) under
``<namespace>.<key>`` so that ``clear`` only touches this cache's own data.
Each backend serializes its operations internally: the SQL backend runs
every operation on one dedicated worker thread, the Redis backend holds an
asyncio lock around each command sequence.
"""
import abc
import asyncio
import functools
import json
import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

import redis.asyncio as redis
import structlog
from sqlalchemy import Column, String, Text, create_engine, delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from ..constants import CACHE_NAMESPACE
from .entry import CacheEntry

logger = structlog.get_logger()

Base = declarative_base()


class CacheRow(Base):
    __tablename__ = "cache_entries"

    key = Column(String(512), primary_key=True)
    payload = Column(Text, nullable=False)


def _decode_record(payload: Any, key: str) -> Optional[CacheEntry]:
    """Parse a stored payload, returning None if it is not a valid entry."""
    try:
        return CacheEntry.from_record(json.loads(payload))
    except (ValueError, KeyError, TypeError) as e:
        logger.debug("disk_cache_decode_failed", key=key, error=str(e))
        return None


class DiskCache(abc.ABC):
    """Contract for the persistent cache tier."""

    def __init__(self, namespace: str = CACHE_NAMESPACE):
        self.namespace = namespace

    def full_key(self, key: str) -> str:
        return f"{self.namespace}.{key}"

    def _strip(self, full_key: str) -> str:
        return full_key[len(self.namespace) + 1:]

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry, or None if absent or undecodable."""

    @abc.abstractmethod
    async def set(self, key: str, entry: CacheEntry) -> None:
        """Store the entry, replacing any existing one."""

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        """Remove the entry; no-op if absent."""

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every entry under this cache's namespace."""

    @abc.abstractmethod
    async def keys(self) -> List[str]:
        """Return the (un-namespaced) keys currently stored."""

    async def close(self) -> None:
        """Release backend resources."""


class SQLDiskCache(DiskCache):
    """
    Disk tier backed by a SQLAlchemy database (SQLite by default).

    All database work happens on a single worker thread so the store is
    never accessed by two operations at once.
    """

    def __init__(self, db_url: str, namespace: str = CACHE_NAMESPACE):
        super().__init__(namespace)
        url = make_url(db_url)
        if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
            directory = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(directory, exist_ok=True)

        self.db_url = db_url
        self.engine = create_engine(db_url)
        self.Session = sessionmaker(bind=self.engine)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fx-disk-cache")
        self._schema_ready = False

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    def _ensure_schema(self) -> None:
        # Runs on the worker thread: in-memory SQLite connections are per thread.
        if not self._schema_ready:
            Base.metadata.create_all(self.engine)
            self._schema_ready = True
            logger.info("disk_cache_initialized", db_url=self.db_url, namespace=self.namespace)

    def _get(self, key: str) -> Optional[CacheEntry]:
        self._ensure_schema()
        with self.Session() as session:
            row = session.get(CacheRow, self.full_key(key))
            if row is None:
                return None
            return _decode_record(row.payload, key)

    def _set(self, key: str, payload: str) -> None:
        self._ensure_schema()
        with self.Session() as session:
            session.merge(CacheRow(key=self.full_key(key), payload=payload))
            session.commit()

    def _remove(self, key: str) -> None:
        self._ensure_schema()
        with self.Session() as session:
            session.execute(delete(CacheRow).where(CacheRow.key == self.full_key(key)))
            session.commit()

    def _clear(self) -> None:
        self._ensure_schema()
        prefix = f"{self.namespace}."
        with self.Session() as session:
            session.execute(delete(CacheRow).where(CacheRow.key.startswith(prefix, autoescape=True)))
            session.commit()

    def _keys(self) -> List[str]:
        self._ensure_schema()
        prefix = f"{self.namespace}."
        with self.Session() as session:
            rows = session.execute(
                select(CacheRow.key).where(CacheRow.key.startswith(prefix, autoescape=True))
            )
            return [self._strip(full_key) for (full_key,) in rows]

    async def get(self, key: str) -> Optional[CacheEntry]:
        return await self._run(self._get, key)

    async def set(self, key: str, entry: CacheEntry) -> None:
        payload = json.dumps(entry.to_record())
        await self._run(self._set, key, payload)

    async def remove(self, key: str) -> None:
        await self._run(self._remove, key)

    async def clear(self) -> None:
        await self._run(self._clear)

    async def keys(self) -> List[str]:
        return await self._run(self._keys)

    async def close(self) -> None:
        await self._run(self.engine.dispose)
        self._executor.shutdown(wait=True)


class RedisDiskCache(DiskCache):
    """Disk tier backed by Redis; keys also get a server-side expiry."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        namespace: str = CACHE_NAMESPACE,
        client: Optional[redis.Redis] = None,
    ):
        super().__init__(namespace)
        self.redis_url = redis_url
        self.redis = client
        self._lock = asyncio.Lock()

    async def connect(self) -> redis.Redis:
        """Establish connection to Redis."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connection_established", namespace=self.namespace)
        return self.redis

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("redis_connection_closed")

    async def get(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            client = await self.connect()
            payload = await client.get(self.full_key(key))
        if payload is None:
            return None
        return _decode_record(payload, key)

    async def set(self, key: str, entry: CacheEntry) -> None:
        payload = json.dumps(entry.to_record())
        expire = max(1, math.ceil(entry.ttl))
        async with self._lock:
            client = await self.connect()
            await client.set(self.full_key(key), payload, ex=expire)

    async def remove(self, key: str) -> None:
        async with self._lock:
            client = await self.connect()
            await client.delete(self.full_key(key))

    async def _scan(self, client: redis.Redis) -> List[str]:
        return [k async for k in client.scan_iter(match=f"{self.namespace}.*", count=100)]

    async def clear(self) -> None:
        async with self._lock:
            client = await self.connect()
            full_keys = await self._scan(client)
            if full_keys:
                await client.delete(*full_keys)

    async def keys(self) -> List[str]:
        async with self._lock:
            client = await self.connect()
            full_keys = await self._scan(client)
        return [self._strip(k) for k in full_keys]

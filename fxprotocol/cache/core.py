"""
Two-tier response cache.

CacheManager keeps a bounded in-memory tier in front of a persistent disk
tier. Reads check memory first, then disk (promoting disk hits into
memory); writes go to both tiers. The cache is best-effort: storage and
decoding failures are logged and treated as a miss or a no-op, never
raised to the caller.
"""
import asyncio
import dataclasses
import time
from typing import Any, Callable, Dict, List, Optional, Type

import structlog

from ..constants import DEFAULT_CACHE_URL, DISK_CACHE_TTL, MAX_MEMORY_ENTRIES, MEMORY_CACHE_TTL
from .disk import DiskCache, SQLDiskCache
from .entry import CacheEntry, CacheEnvelope, decode_value
from .monitoring import DISK_TIER, MEMORY_TIER, CacheMonitor, get_monitor
from .stats import CacheStats

logger = structlog.get_logger()

WILDCARD = "*"


def cache_key(*parts: Any) -> str:
    """Join key segments with colons, e.g. ``cache_key("balance", "all", addr)``."""
    return ":".join(str(part) for part in parts)


def matches_pattern(key: str, pattern: str) -> bool:
    """
    Check a colon-delimited key against an invalidation pattern.

    A trailing ``*`` matches one or more remaining segments
    (``balance:*`` matches ``balance:token:0xabc:fxusd``); a ``*`` anywhere
    else matches exactly one segment (``balance:*:0xabc``).
    """
    key_parts = key.split(":")
    pattern_parts = pattern.split(":")

    if pattern_parts[-1] == WILDCARD and len(key_parts) >= len(pattern_parts):
        for pattern_part, key_part in zip(pattern_parts[:-1], key_parts):
            if pattern_part != WILDCARD and pattern_part != key_part:
                return False
        return True

    if len(key_parts) != len(pattern_parts):
        return False

    return all(
        pattern_part == WILDCARD or pattern_part == key_part
        for pattern_part, key_part in zip(pattern_parts, key_parts)
    )


class CacheManager:
    """
    Memory + disk cache with TTL expiry, pattern invalidation and statistics.

    The memory map and the statistics are guarded by an asyncio lock. Disk
    I/O happens outside that lock; the disk tier serializes its own
    operations.
    """

    def __init__(
        self,
        disk_cache: Optional[DiskCache] = None,
        max_memory_entries: int = MAX_MEMORY_ENTRIES,
        memory_ttl: float = MEMORY_CACHE_TTL,
        disk_ttl: float = DISK_CACHE_TTL,
        clock: Callable[[], float] = time.time,
        monitor: Optional[CacheMonitor] = None,
    ):
        """
        Initialize the cache manager.

        Args:
            disk_cache: Persistent tier, defaults to a SQLite file under ~/.fxprotocol
            max_memory_entries: Upper bound on memory tier entries
            memory_ttl: Default memory tier TTL in seconds
            disk_ttl: Default disk tier TTL in seconds
            clock: Source of the current time in seconds
            monitor: Metrics sink, defaults to the global Prometheus monitor
        """
        self.disk_cache = disk_cache if disk_cache is not None else SQLDiskCache(DEFAULT_CACHE_URL)
        self.max_memory_entries = max_memory_entries
        self.memory_ttl = memory_ttl
        self.disk_ttl = disk_ttl
        self._clock = clock
        self._monitor = monitor or get_monitor()
        self._memory: Dict[str, CacheEnvelope] = {}
        self._stats = CacheStats()
        self._lock = asyncio.Lock()

    # Reads

    async def get(self, key: str, as_type: Optional[Type] = None) -> Optional[Any]:
        """
        Get a value, checking memory first and then disk.

        Args:
            key: Cache key
            as_type: Type to decode the value into (a pydantic model, dict, ...);
                the raw JSON value is returned when omitted

        Returns:
            The cached value, or None on a miss, expiry or decode mismatch
        """
        async with self._lock:
            envelope = self._memory.get(key)
            if envelope is not None:
                if envelope.is_expired(self._clock()):
                    del self._memory[key]
                    self._monitor.update_size(len(self._memory))
                else:
                    try:
                        value = envelope.decode(as_type)
                    except ValueError as e:
                        logger.debug("cache_decode_failed", tier=MEMORY_TIER, key=key, error=str(e))
                    else:
                        self._stats.memory_hits += 1
                        self._monitor.record_hit(MEMORY_TIER)
                        return value

        entry = await self._disk_get(key)
        if entry is not None:
            if entry.is_expired(self._clock()):
                await self._disk_remove(key)
            else:
                try:
                    value = decode_value(entry.value, as_type)
                except ValueError as e:
                    logger.debug("cache_decode_failed", tier=DISK_TIER, key=key, error=str(e))
                else:
                    async with self._lock:
                        self._stats.disk_hits += 1
                        self._monitor.record_hit(DISK_TIER)
                        self._promote(entry)
                    return value

        async with self._lock:
            self._stats.misses += 1
            self._monitor.record_miss()
        return None

    def _promote(self, entry: CacheEntry) -> None:
        self._memory.pop(entry.key, None)
        try:
            self._memory[entry.key] = CacheEnvelope.from_entry(entry)
        except (TypeError, ValueError) as e:
            logger.debug("cache_promotion_failed", key=entry.key, error=str(e))
            return
        self._evict_if_needed()

    # Writes

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a value in both tiers.

        Without an explicit ``ttl`` the memory tier uses the shorter memory
        default and the disk tier the longer disk default.
        """
        memory_ttl = ttl if ttl is not None else self.memory_ttl
        disk_ttl = ttl if ttl is not None else self.disk_ttl
        now = self._clock()

        async with self._lock:
            self._memory.pop(key, None)
            try:
                self._memory[key] = CacheEnvelope.from_entry(CacheEntry(value, now, memory_ttl, key))
            except (TypeError, ValueError) as e:
                logger.warning("cache_encode_failed", key=key, error=str(e))
            else:
                self._evict_if_needed()

        try:
            await self.disk_cache.set(key, CacheEntry(value, now, disk_ttl, key))
        except Exception as e:
            logger.warning("disk_cache_set_failed", key=key, error=str(e))

    async def remove(self, key: str) -> None:
        """Remove a key from both tiers; no-op if absent."""
        async with self._lock:
            self._memory.pop(key, None)
            self._monitor.update_size(len(self._memory))
        await self._disk_remove(key)

    async def clear(self) -> None:
        """Empty both tiers and reset statistics."""
        async with self._lock:
            self._memory.clear()
            self._stats = CacheStats()
            self._monitor.update_size(0)
        try:
            await self.disk_cache.clear()
        except Exception as e:
            logger.warning("disk_cache_clear_failed", error=str(e))

    async def invalidate_all(self) -> None:
        await self.clear()

    async def invalidate(self, pattern: str) -> int:
        """
        Remove every key matching ``pattern`` from both tiers.

        Keys are collected from the memory tier and from the disk tier's
        own key listing, so entries that were evicted from memory are
        matched too.

        Returns:
            Number of distinct keys removed
        """
        async with self._lock:
            memory_matches = [key for key in self._memory if matches_pattern(key, pattern)]
            for key in memory_matches:
                del self._memory[key]
            self._monitor.update_size(len(self._memory))

        try:
            disk_keys = await self.disk_cache.keys()
        except Exception as e:
            logger.warning("disk_cache_keys_failed", pattern=pattern, error=str(e))
            disk_keys = []

        matched = set(memory_matches)
        matched.update(key for key in disk_keys if matches_pattern(key, pattern))
        for key in sorted(matched):
            await self._disk_remove(key)

        logger.debug("cache_invalidated", pattern=pattern, count=len(matched))
        return len(matched)

    # Introspection

    async def get_stats(self) -> CacheStats:
        """Return a snapshot of the hit/miss counters."""
        async with self._lock:
            return dataclasses.replace(self._stats)

    def memory_keys(self) -> List[str]:
        return list(self._memory)

    def in_memory(self, key: str) -> bool:
        return key in self._memory

    @property
    def memory_size(self) -> int:
        return len(self._memory)

    async def report(self) -> Dict[str, Any]:
        stats = await self.get_stats()
        return self._monitor.log_metrics(stats, self.memory_size)

    async def close(self) -> None:
        await self.disk_cache.close()

    # Helpers

    async def _disk_get(self, key: str) -> Optional[CacheEntry]:
        try:
            return await self.disk_cache.get(key)
        except Exception as e:
            logger.warning("disk_cache_get_failed", key=key, error=str(e))
            return None

    async def _disk_remove(self, key: str) -> None:
        try:
            await self.disk_cache.remove(key)
        except Exception as e:
            logger.warning("disk_cache_remove_failed", key=key, error=str(e))

    def _evict_if_needed(self) -> None:
        """Drop expired entries, then the oldest ones, until within the bound."""
        if len(self._memory) > self.max_memory_entries:
            now = self._clock()
            for key in [k for k, envelope in self._memory.items() if envelope.is_expired(now)]:
                del self._memory[key]

            overflow = len(self._memory) - self.max_memory_entries
            if overflow > 0:
                oldest = sorted(self._memory.items(), key=lambda item: item[1].created_at)
                for key, _ in oldest[:overflow]:
                    del self._memory[key]
                logger.debug("cache_evicted", count=overflow)

        self._monitor.update_size(len(self._memory))

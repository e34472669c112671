import json
import os
import sys
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fxprotocol.cache import CacheManager, DiskCache, SQLDiskCache
from fxprotocol.cache.entry import CacheEntry

WALLET_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
MARKET_ADDRESS = "0xa87F04c9743Fd1933F82bdDec9692e9D97673769"
TOKEN_ADDRESS = "0x085780639CC2cACd35E474e71f4d000e2405d8f6"
# Well-known test key (hardhat account #0); never holds real funds.
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
PRIVATE_KEY_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryDiskCache(DiskCache):
    """Dict-backed disk tier that can be told to fail; entries go through the JSON record format."""

    def __init__(self, namespace: str = "test_cache"):
        super().__init__(namespace)
        self.entries: Dict[str, CacheEntry] = {}
        self.fail = False
        self.calls: List[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail:
            raise OSError(f"disk unavailable during {op}")

    async def get(self, key: str) -> Optional[CacheEntry]:
        self._check("get")
        return self.entries.get(key)

    async def set(self, key: str, entry: CacheEntry) -> None:
        self._check("set")
        self.entries[key] = CacheEntry.from_record(json.loads(json.dumps(entry.to_record())))

    async def remove(self, key: str) -> None:
        self._check("remove")
        self.entries.pop(key, None)

    async def clear(self) -> None:
        self._check("clear")
        self.entries.clear()

    async def keys(self) -> List[str]:
        self._check("keys")
        return list(self.entries)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def disk_cache():
    return MemoryDiskCache()


@pytest.fixture
def cache_manager(disk_cache, clock):
    """Cache manager over the dict-backed disk tier with a controllable clock."""
    return CacheManager(disk_cache=disk_cache, max_memory_entries=100, clock=clock)


@pytest.fixture
def sql_disk_cache():
    """SQLite in-memory disk tier."""
    return SQLDiskCache("sqlite://", namespace="test_cache")

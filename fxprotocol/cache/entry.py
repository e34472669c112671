"""
Cache entry records.

A CacheEntry is the typed record written to the disk tier. The memory tier
keeps a CacheEnvelope instead: the value serialized to JSON bytes plus the
entry metadata, so a single mapping can hold values of any type and decode
them into whatever type the caller asks for at read time.
"""
import functools
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import pydantic_core
from pydantic import TypeAdapter


@functools.lru_cache(maxsize=256)
def _adapter(as_type: Any) -> TypeAdapter:
    return TypeAdapter(as_type)


def decode_value(value: Any, as_type: Optional[Type] = None) -> Any:
    """Validate JSON-compatible data into ``as_type`` (no-op when no type is given)."""
    if as_type is None:
        return value
    return _adapter(as_type).validate_python(value)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its creation time and time-to-live (seconds)."""

    value: Any
    created_at: float
    ttl: float
    key: str

    def is_expired(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.time()
        return now - self.created_at > self.ttl

    def to_record(self) -> Dict[str, Any]:
        """Persistence format: ``{value, createdAt, ttl, key}``."""
        return {
            "value": pydantic_core.to_jsonable_python(self.value, by_alias=True),
            "createdAt": self.created_at,
            "ttl": self.ttl,
            "key": self.key,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CacheEntry":
        return cls(
            value=record["value"],
            created_at=float(record["createdAt"]),
            ttl=float(record["ttl"]),
            key=str(record["key"]),
        )


@dataclass(frozen=True)
class CacheEnvelope:
    """Type-erased memory tier record."""

    data: bytes
    created_at: float
    ttl: float
    key: str

    def is_expired(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.time()
        return now - self.created_at > self.ttl

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> "CacheEnvelope":
        return cls(
            data=pydantic_core.to_json(entry.value, by_alias=True),
            created_at=entry.created_at,
            ttl=entry.ttl,
            key=entry.key,
        )

    def decode(self, as_type: Optional[Type] = None) -> Any:
        if as_type is None:
            return pydantic_core.from_json(self.data)
        return _adapter(as_type).validate_json(self.data)

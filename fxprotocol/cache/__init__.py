"""
Response caching for the f(x) Protocol client.

A bounded memory tier sits in front of a persistent disk tier (SQLite via
SQLAlchemy, or Redis). Entries expire by TTL and can be invalidated in
bulk with colon-delimited wildcard patterns such as ``balance:*:0xabc``.
"""

from .core import CacheManager, cache_key, matches_pattern
from .disk import DiskCache, RedisDiskCache, SQLDiskCache
from .entry import CacheEntry, CacheEnvelope
from .monitoring import CacheMonitor, get_monitor
from .stats import CacheStats

__all__ = [
    'CacheManager',
    'cache_key',
    'matches_pattern',
    'DiskCache',
    'RedisDiskCache',
    'SQLDiskCache',
    'CacheEntry',
    'CacheEnvelope',
    'CacheMonitor',
    'get_monitor',
    'CacheStats',
]

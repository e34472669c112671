"""Cache statistics."""
from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class CacheStats:
    """Hit and miss counters for the two cache tiers."""

    memory_hits: int = 0
    disk_hits: int = 0
    misses: int = 0

    @property
    def total_requests(self) -> int:
        return self.memory_hits + self.disk_hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        if total == 0:
            return 0.0
        return (self.memory_hits + self.disk_hits) / total

    @property
    def memory_hit_rate(self) -> float:
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.memory_hits / total

    def to_dict(self) -> Dict[str, Any]:
        stats = asdict(self)
        stats.update(
            total_requests=self.total_requests,
            hit_rate=self.hit_rate,
            memory_hit_rate=self.memory_hit_rate,
        )
        return stats

# agencyos/modules/documents/cache.py
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger

from agencyos.core.config import settings


@dataclass
class _CacheEntry:
    value: Any
    stored_at: float


class TemplateCache:
    """Small TTL cache of document templates, keyed by template id.

    When full, the entry stored the longest time ago is evicted.
    """

    def __init__(self, max_size: int, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: Any) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            oldest_key = min(self._entries, key=lambda k: self._entries[k].stored_at)
            del self._entries[oldest_key]
            logger.debug(f"Template cache full; evicted {oldest_key}")
        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "templates": [
                {"id": key, "age_seconds": round(now - entry.stored_at, 1)}
                for key, entry in self._entries.items()
            ],
        }


template_cache = TemplateCache(settings.TEMPLATE_CACHE_SIZE, settings.TEMPLATE_CACHE_TTL_SECONDS)

"""In-process read cache with per-family staleness windows."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from ..config.settings import Settings, get_settings
from ..logging import get_logger

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """Least-recently-used cache whose entries expire after a TTL.

    Keys are grouped into families (``"documents"``, ``"stats"``, ...) so that
    a write can drop every cached read it may have made stale with one
    ``invalidate`` call.

    Args:
        max_entries: Upper bound on stored entries; the least recently used
            entry is evicted first.
        default_ttl: TTL in seconds when ``set`` is not given one.
        enabled: When False every lookup misses and nothing is stored.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        max_entries: int = 2048,
        default_ttl: float = 300,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, Hashable], _Entry]" = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, family: str, key: Hashable, default: Any = None) -> Any:
        if not self.enabled:
            return default

        with self._lock:
            entry = self._entries.get((family, key))
            if entry is None:
                self.misses += 1
                return default
            if entry.expires_at <= self._clock():
                del self._entries[(family, key)]
                self.misses += 1
                return default
            self._entries.move_to_end((family, key))
            self.hits += 1
            return entry.value

    def set(self, family: str, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        if not self.enabled:
            return

        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[(family, key)] = _Entry(value=value, expires_at=self._clock() + ttl)
            self._entries.move_to_end((family, key))
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def contains(self, family: str, key: Hashable) -> bool:
        return self.get(family, key, _MISSING) is not _MISSING

    def delete(self, family: str, key: Hashable) -> None:
        with self._lock:
            self._entries.pop((family, key), None)

    def invalidate(self, *families: str) -> int:
        """Drop every entry in the given families.

        Returns:
            Number of entries removed.
        """
        wanted = set(families)
        with self._lock:
            stale = [k for k in self._entries if k[0] in wanted]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries", extra={"families": sorted(wanted)})
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def info(self) -> Dict[str, Any]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses, "enabled": self.enabled}


def make_key(*parts: Any, **named: Any) -> Hashable:
    """Build a hashable cache key from call arguments."""
    return tuple(parts) + tuple(sorted(named.items()))


_cache: Optional[TTLCache] = None


def get_cache(settings: Optional[Settings] = None) -> TTLCache:
    """Process-wide cache instance built from ``CacheSettings``."""
    global _cache
    if _cache is None:
        settings = settings or get_settings()
        _cache = TTLCache(
            max_entries=settings.CACHE_MAX_ENTRIES,
            default_ttl=settings.CACHE_TTL_DETAIL,
            enabled=settings.CACHE_ENABLED,
        )
    return _cache

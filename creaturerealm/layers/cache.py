"""
Cache Layer for the CreatureRealm extraction toolkit.
Keyed snapshot store with freshness checks and stale-on-error fallback.

One instance is shared by every consumer in the process. Entries are
replaced wholesale, so a reader holding a value never sees it change.
The only suspension point is the awaited fetcher; no locks are needed
under a single-threaded event loop, and concurrent misses for the same
key simply both fetch (last write wins).
"""
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from creaturerealm.models.records import CacheEntry, ResourceKind
from creaturerealm.utils.logger import LayerLogger

Clock = Callable[[], float]
Fetcher = Callable[[], Awaitable[Any]]


def _wall_clock_millis() -> float:
    return time.time() * 1000.0


class ResourceCache:
    """
    In-memory cache of fetched and parsed resources.

    The clock is injectable so freshness can be tested without sleeping.
    """

    def __init__(self, clock: Optional[Clock] = None, logger: Optional[LayerLogger] = None):
        self._clock = clock or _wall_clock_millis
        self._entries: Dict[str, CacheEntry] = {}
        self.logger = logger or LayerLogger("cache")

    def now(self) -> float:
        return self._clock()

    async def get_or_fetch(
        self,
        key: str,
        ttl_ms: float,
        fetcher: Fetcher,
        force: bool = False,
        kind: ResourceKind = ResourceKind.INDEX,
    ) -> Any:
        """
        Return the cached value for `key`, fetching when needed.

        Args:
            key: Cache key (category name or variant key)
            ttl_ms: Freshness window in milliseconds
            fetcher: Zero-argument coroutine function producing the value
            force: Bypass freshness and always call the fetcher
            kind: Resource type, for logging only

        Returns:
            The fresh cached value, the newly fetched value, or a stale
            cached value when the fetch failed.

        Raises:
            Whatever the fetcher raised, when nothing is cached for `key`.
        """
        entry = self._entries.get(key)
        now = self.now()

        if entry is not None and not force and entry.is_fresh(now, ttl_ms):
            self.logger.log_cache("hit", key, kind=kind.value, age_ms=entry.age_millis(now))
            return entry.value

        self.logger.log_cache(
            "miss",
            key,
            kind=kind.value,
            reason="forced" if force else ("expired" if entry is not None else "absent"),
        )

        try:
            value = await fetcher()
        except Exception as e:
            if entry is None:
                raise
            self.logger.log_fallback(
                from_source="upstream",
                to_source="stale_cache",
                reason=str(e) or type(e).__name__,
                key=key,
                kind=kind.value,
                age_ms=entry.age_millis(now),
            )
            return entry.value

        self._entries[key] = CacheEntry(fetched_at_millis=self.now(), value=value)
        self.logger.log_cache("store", key, kind=kind.value)
        return value

    def peek(self, key: str) -> Optional[Any]:
        """Cached value regardless of age, or `None`."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> CacheEntry:
        """Store a value fetched outside `get_or_fetch`."""
        entry = CacheEntry(fetched_at_millis=self.now(), value=value)
        self._entries[key] = entry
        self.logger.log_cache("store", key)
        return entry

    def invalidate(self, key: str) -> bool:
        """Drop one entry; True if it existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

import inspect
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)


class TTLCache:
    """Bounded in-memory cache whose entries expire after a per-entry TTL.

    Entries are evicted least-recently-used first once ``max_entries`` is
    reached. Owned by the application (created at startup, cleared at
    shutdown), never a module global.
    """

    def __init__(self, max_entries: int = 128, default_ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires = item
        if expires <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        self._entries[key] = (value, self._clock() + ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry {evicted}")

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value for key, computing and storing it on a miss.

        ``compute`` may be a plain callable or a coroutine function. A TTL of
        zero disables caching for the call.
        """
        value = self.get(key)
        if value is not None:
            self.hits += 1
            return value
        self.misses += 1
        value = compute()
        if inspect.isawaitable(value):
            value = await value
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def stats(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "max_entries": self.max_entries, "hits": self.hits, "misses": self.misses}

import time
from typing import Any, Callable, Dict, Optional, Tuple


class SimpleCache:
    """Small in-process TTL cache.

    One instance is built by the application lifespan and handed to whoever
    needs it; expired entries are dropped lazily on read or by ``cleanup``.
    """

    def __init__(self, default_ttl: float = 3600, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + (self._default_ttl if ttl is None else ttl)
        self._entries[key] = (value, expires_at)

    def get(self, key: str) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

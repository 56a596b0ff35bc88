# core/cache.py
from typing import Any, Dict, Hashable, Optional, Tuple

from cachetools import TTLCache

from .scheduler import SystemClock


_MISSING = object()


class MemoCache:
    """Never-expiring memo; a stored None is a real value ("not found")."""

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}

    def get(self, key: Hashable) -> Tuple[bool, Any]:
        value = self._data.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


def ttl_cache(ttl_seconds: float, clock: Optional[SystemClock] = None, maxsize: int = 256) -> TTLCache:
    """TTLCache whose expiry follows `clock`, so tests can move time."""
    clock = clock or SystemClock()
    return TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=lambda: clock.now_ms() / 1000.0)

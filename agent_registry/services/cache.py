from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

DEFAULT_TTL_MINUTES = 15.0


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: float


class ExpiringCache(Generic[T]):
    """Key/value store where every entry expires a fixed TTL after it was set.

    Expiry is checked lazily on read; there is no background sweeper. Not
    thread-safe: use it from a single event loop or guard it externally.
    """

    def __init__(self, ttl_minutes: float = DEFAULT_TTL_MINUTES, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = float(ttl_minutes) * 60.0
        self._clock = clock
        self._entries: Dict[str, _Entry[T]] = {}

    def set(self, key: str, value: T) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def values(self) -> List[T]:
        """Live values only; expired entries met along the way are evicted."""
        out: List[T] = []
        for key in list(self._entries):
            value = self.get(key)
            if value is not None:
                out.append(value)
        return out

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        # Counts entries not yet evicted, expired or not.
        return len(self._entries)

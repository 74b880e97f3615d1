from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


class AnalysisCache(Generic[T]):
    """Read-through memo keyed by raw input.

    Values are computed outside the lock. When two callers race on one key the
    first stored value wins and both callers receive it.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, T] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> T | None:
        with self._lock:
            return self._entries.get(key)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T | None]) -> T | None:
        with self._lock:
            if key in self._entries:
                return self._entries[key]

        value = compute()
        if value is None:
            return None

        with self._lock:
            return self._entries.setdefault(key, value)

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

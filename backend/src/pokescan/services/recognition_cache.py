from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Generic, Mapping, TypeVar

from .settings import SettingsProvider

logger = logging.getLogger("pokescan.cache")

DEFAULT_CAPACITY = 200

V = TypeVar("V")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Returned on a cache miss; ``None`` is a valid cached value meaning "no value".
MISSING: Any = _Missing()


class LruCache(Generic[V]):
    """Bounded mapping that evicts the least recently used entry."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, V] = OrderedDict()

    def get(self, key: str) -> V | Any:
        with self._lock:
            if key not in self._entries:
                return MISSING
            self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache evicted key=%s", evicted)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, MISSING) is not MISSING

    def snapshot(self) -> dict[str, V]:
        """Copy of all entries, least recently used first."""
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


class AppraisalCache:
    """LRU cache of appraisal text that mirrors every change to the settings store."""

    def __init__(
        self,
        settings: SettingsProvider,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self._settings = settings
        # Held across mutate, snapshot and save so snapshots persist in order.
        self._write_lock = threading.Lock()
        self._cache: LruCache[str] = LruCache(capacity)
        self._hydrate(settings.load_appraisal_cache())

    def _hydrate(self, stored: Mapping[str, str]) -> None:
        for key, value in stored.items():
            if isinstance(key, str) and isinstance(value, str):
                self._cache.put(key, value)
        logger.info("appraisal cache hydrated entries=%d", len(self._cache))

    def get(self, key: str) -> str | Any:
        return self._cache.get(key)

    def put(self, key: str, text: str) -> None:
        with self._write_lock:
            self._cache.put(key, text)
            self._settings.save_appraisal_cache(self._cache.snapshot())

    def remove(self, key: str) -> bool:
        with self._write_lock:
            removed = self._cache.remove(key)
            self._settings.save_appraisal_cache(self._cache.snapshot())
        return removed

    def snapshot(self) -> dict[str, str]:
        return self._cache.snapshot()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

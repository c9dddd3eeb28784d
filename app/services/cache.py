from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """In-memory result cache: entries expire after ttl_s, least recently used evicted first."""

    def __init__(self, *, ttl_s: float, max_size: int) -> None:
        self.ttl_s = ttl_s
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self._store: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        now = time.monotonic()
        with self._lock:
            entry = self._store.get(key)
            if entry is None or entry.expires_at < now:
                self._store.pop(key, None)
                self.misses += 1
                return None
            self._store.move_to_end(key)
            self.hits += 1
            return entry.value

    def set(self, key: str, value: T) -> None:
        if self.max_size <= 0:
            return
        now = time.monotonic()
        with self._lock:
            self._store.pop(key, None)
            while len(self._store) >= self.max_size:
                self._store.popitem(last=False)
            self._store[key] = CacheEntry(value=value, expires_at=now + self.ttl_s)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._store), "hits": self.hits, "misses": self.misses}


def make_cache_key(params: Mapping[str, Optional[str]], keys: tuple[str, ...]) -> str:
    # absent (null) and blank ("") values stay distinct
    return json.dumps([params.get(k) for k in keys], ensure_ascii=False)

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable


class TTLCache:
    def __init__(self, default_ttl_s: float, max_entries: int = 256, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl_s = max(1.0, float(default_ttl_s))
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._data: dict[Hashable, tuple[float, object]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: Hashable) -> object | None:
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= now:
                self._data.pop(key, None)
                return None
            return value

    def set(self, key: Hashable, value: object, ttl_s: float | None = None) -> None:
        ttl_value = self.default_ttl_s if ttl_s is None else max(1.0, float(ttl_s))
        now = self._clock()
        with self._lock:
            if key not in self._data and len(self._data) >= self.max_entries:
                self._evict(now)
            self._data[key] = (now + ttl_value, value)

    def _evict(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]
        if len(self._data) >= self.max_entries:
            # oldest expiry first
            oldest = min(self._data, key=lambda k: self._data[k][0])
            del self._data[oldest]

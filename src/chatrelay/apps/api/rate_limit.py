from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request

from chatrelay.core.settings import env_int, env_on

EXEMPT_PREFIXES = ("/docs", "/openapi.json", "/redoc", "/health")


@dataclass
class Bucket:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after_s: int = 0


class RateLimiter:
    """Fixed-window request counter per client key."""

    def __init__(self, max_requests: int = 5, window_s: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max(1, int(max_requests))
        self.window_s = max(1.0, float(window_s))
        self._clock = clock
        self._buckets: dict[str, Bucket] = {}
        self._lock = threading.Lock()
        self._next_prune = 0.0

    @classmethod
    def from_env(cls) -> RateLimiter:
        return cls(
            max_requests=env_int("CHATRELAY_RATE_LIMIT_MAX", 5),
            window_s=env_int("CHATRELAY_RATE_LIMIT_WINDOW_S", 60),
        )

    def hit(self, key: str) -> RateDecision:
        now = self._clock()
        with self._lock:
            self._prune(now)
            bucket = self._buckets.get(key)
            if bucket is None or now > bucket.reset_at:
                self._buckets[key] = Bucket(count=1, reset_at=now + self.window_s)
                return RateDecision(allowed=True)

            if bucket.count >= self.max_requests:
                return RateDecision(allowed=False, retry_after_s=max(0, math.ceil(bucket.reset_at - now)))

            bucket.count += 1
            return RateDecision(allowed=True)

    def _prune(self, now: float) -> None:
        if now < self._next_prune:
            return
        expired = [key for key, bucket in self._buckets.items() if now > bucket.reset_at]
        for key in expired:
            del self._buckets[key]
        self._next_prune = now + self.window_s


def is_exempt_path(path: str) -> bool:
    return path == "/" or path.startswith(EXEMPT_PREFIXES)


def client_key(request: Request) -> str:
    if env_on("CHATRELAY_TRUST_PROXY", "off"):
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

"""Fixed-window rate limiting for uploads."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import status

from ..media.media_models import utcnow
from .errors import ApiError


@dataclass
class UploadRateLimiter:
    """Per-key limiter: ``max_attempts`` per ``window_seconds``."""

    max_attempts: int = 60
    window_seconds: int = 60
    enabled: bool = True
    clock: Callable[[], datetime] = utcnow
    buckets: dict[str, tuple[int, datetime]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def check(self, key: str) -> None:
        if not self.enabled:
            return
        now = self.clock()
        with self._lock:
            count, window_start = self.buckets.get(key, (0, now))
            elapsed = (now - window_start).total_seconds()
            if elapsed >= self.window_seconds:
                count, window_start, elapsed = 0, now, 0.0
            if count >= self.max_attempts:
                retry_after = max(1, int(self.window_seconds - elapsed))
                raise ApiError(
                    status.HTTP_429_TOO_MANY_REQUESTS,
                    "Too many uploads, try again later",
                    headers={"Retry-After": str(retry_after)},
                )
            self.buckets[key] = (count + 1, window_start)

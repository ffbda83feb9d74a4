from __future__ import annotations

import threading
import time
from typing import Callable, Dict

from tenant_bot.services.sessions import SessionKey


class RateLimiter:
    """Drops messages that arrive faster than ``min_interval_seconds`` per conversation."""

    def __init__(self, min_interval_seconds: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._min_interval = min_interval_seconds
        self._clock = clock
        self._last_accepted: Dict[SessionKey, float] = {}
        self._lock = threading.Lock()

    def allow(self, tenant_id: str, customer_id: str) -> bool:
        key = (tenant_id, customer_id)
        now = self._clock()
        with self._lock:
            last = self._last_accepted.get(key)
            if last is not None and now - last < self._min_interval:
                return False
            self._last_accepted[key] = now
            return True

    def forget(self, key: SessionKey) -> None:
        with self._lock:
            self._last_accepted.pop(key, None)

    def sweep(self) -> int:
        """Drop entries whose spacing window has passed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, last in self._last_accepted.items() if now - last >= self._min_interval]
            for key in expired:
                del self._last_accepted[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._last_accepted)

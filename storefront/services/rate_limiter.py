# storefront/services/rate_limiter.py
"""
Per-identity fixed-window rate limiter for the cart endpoints.

State lives in process memory only: a restart clears every limit, and entries
for identities that stop calling are never swept. Running more than one
process needs this state moved to a shared store.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from storefront.core.exceptions import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass
class RateWindow:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: float

    def __bool__(self) -> bool:
        return self.allowed


class RateLimiter:
    """
    Allows `capacity` calls per identity per window of `window_seconds`.

    The window starts at the first call and resets lazily on the first call
    after it elapsed.
    """

    def __init__(
        self,
        capacity: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0 or window_seconds <= 0:
            raise ValueError("capacity and window_seconds must be positive")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def try_acquire(self, identity: str) -> RateDecision:
        now = self._clock()
        with self._lock:
            window = self._windows.get(identity)
            if window is None or now >= window.window_reset_at:
                window = RateWindow(count=0, window_reset_at=now + self.window_seconds)
                self._windows[identity] = window

            if window.count >= self.capacity:
                return RateDecision(False, 0, max(0.0, window.window_reset_at - now))

            window.count += 1
            return RateDecision(True, self.capacity - window.count, 0.0)

    def acquire_or_raise(self, identity: str) -> RateDecision:
        decision = self.try_acquire(identity)
        if not decision:
            logger.warning(
                "Rate limit exceeded for identity %s (retry in %.1fs)", identity, decision.retry_after
            )
            raise RateLimitedError("Too many requests, please try again later", decision.retry_after)
        return decision

    def window_for(self, identity: str) -> Optional[RateWindow]:
        with self._lock:
            return self._windows.get(identity)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)

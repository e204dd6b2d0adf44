"""
Rate Limiter for API Calls
Prevents hitting Gemini API quota limits on free tier.

One rolling 60-second window per endpoint identity (the model name).
consume() never sleeps: it either takes a slot or fails fast, and the
caller turns the rejection into a RATE_LIMITED outcome.
"""
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable

from utils import get_logger

logger = get_logger(__name__)


# Gemini free tier RPM, minus headroom so we don't trip real 429s
MODEL_RATE_LIMITS: dict[str, int] = {
    "gemini-2.5-flash": 8,      # Actual limit is 10
    "gemini-2.5-pro": 2,
    "gemini-2.0-flash": 12,     # Actual limit is 15
    "gemini-pro": 50,           # Legacy model, 60 RPM
}
DEFAULT_RATE_LIMIT = 8


class RateLimitExceededError(Exception):
    """Raised when the local per-minute quota is used up"""

    def __init__(self, key: str, retry_after_seconds: float):
        super().__init__(
            f"Local rate limit reached for {key}. Retry in {retry_after_seconds:.1f}s."
        )
        self.key = key
        self.retry_after_seconds = retry_after_seconds


@dataclass
class RateLimiter:
    """
    Rolling-window rate limiter keyed by model name.

    Gemini free tier limits (per model):
    - gemini-2.5-flash: 10 requests per minute (RPM)
    - gemini-2.5-pro: 2 RPM
    - gemini-2.0-flash: 15 RPM
    """
    limits: dict[str, int] = field(default_factory=lambda: dict(MODEL_RATE_LIMITS))
    default_limit: int = DEFAULT_RATE_LIMIT
    window_seconds: float = 60.0
    clock: Callable[[], float] = time.monotonic

    # Request timestamps per key
    windows: dict[str, deque] = field(default_factory=dict)

    # Thread safety
    lock: Lock = field(default_factory=Lock)

    def limit_for(self, key: str) -> int:
        return self.limits.get(key, self.default_limit)

    def consume(self, key: str) -> int:
        """
        Take one slot from the key's window.
        Returns the number of slots left; raises RateLimitExceededError when full.
        """
        with self.lock:
            now = self.clock()
            window = self._prune(key, now)
            limit = self.limit_for(key)

            if len(window) >= limit:
                # Slot frees up when the oldest request leaves the window
                retry_after = max(0.0, window[0] + self.window_seconds - now)
                logger.warning(f"Rate limit: {key} used {len(window)}/{limit} this minute")
                raise RateLimitExceededError(key, retry_after)

            window.append(now)
            return limit - len(window)

    def get_usage_stats(self, key: str) -> dict:
        """Get current usage statistics"""
        with self.lock:
            window = self._prune(key, self.clock())
            used = len(window)

        limit = self.limit_for(key)
        return {
            "key": key,
            "requests_this_minute": used,
            "minute_limit": limit,
            "minute_remaining": max(0, limit - used),
        }

    def reset(self, key: str | None = None) -> None:
        with self.lock:
            if key is None:
                self.windows.clear()
            else:
                self.windows.pop(key, None)

    def _prune(self, key: str, now: float) -> deque:
        # Caller holds the lock
        window = self.windows.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

"""
Backoff Clock
Shared cooldown gate for one generation client.

A 429 from the endpoint tells us how long to stay away. Until that moment
passes every call short-circuits instead of hitting the API again.
Per-attempt exponential delays live in the orchestrator, not here.
"""
import time
from threading import Lock
from typing import Callable

from utils import get_logger

logger = get_logger(__name__)


class BackoffClock:
    """Tracks the 'busy until' timestamp after a rate-limited response"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._busy_until = 0.0
        self._lock = Lock()

    @property
    def busy_until(self) -> float:
        with self._lock:
            return self._busy_until

    def now(self) -> float:
        return self._clock()

    def should_wait(self, now: float | None = None) -> float | None:
        """Seconds left in the active cooldown, or None if calls may proceed"""
        now = self._clock() if now is None else now
        with self._lock:
            if now < self._busy_until:
                return self._busy_until - now
        return None

    def record_rate_limited(self, retry_after_seconds: float, now: float | None = None) -> None:
        now = self._clock() if now is None else now
        with self._lock:
            self._busy_until = now + retry_after_seconds
        logger.warning(f"Rate limited. Backing off for {retry_after_seconds:.0f} seconds.")

    def reset(self) -> None:
        with self._lock:
            self._busy_until = 0.0

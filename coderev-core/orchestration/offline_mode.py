"""
Offline Mode Controller
Decides when to stop calling Gemini altogether.

- QUOTA_EXCEEDED trips offline mode immediately
- Two empty / blocked / rate-limited failures in a row trip it too
- Nothing but reset() brings us back online
"""
from dataclasses import dataclass, replace
from threading import Lock

from utils import get_logger
from .types import ErrorKind

logger = get_logger(__name__)


OFFLINE_FAILURE_THRESHOLD = 2
SATURATED_FAILURE_COUNT = 999   # Pinned after quota exhaustion

STREAK_KINDS = frozenset({
    ErrorKind.EMPTY_RESPONSE,
    ErrorKind.CONTENT_BLOCKED,
    ErrorKind.RATE_LIMITED,
})


@dataclass
class OfflineState:
    offline: bool = False
    consecutive_failures: int = 0


class OfflineModeController:
    """Owns the offline flag and the consecutive failure streak"""

    def __init__(self, threshold: int = OFFLINE_FAILURE_THRESHOLD):
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self._state = OfflineState()
        self._lock = Lock()

    def is_offline(self) -> bool:
        with self._lock:
            return self._state.offline

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._state.consecutive_failures

    def snapshot(self) -> OfflineState:
        with self._lock:
            return replace(self._state)

    def record_failure(self, kind: ErrorKind) -> bool:
        """Update the streak after a failed job. Returns the offline flag."""
        with self._lock:
            state = self._state

            if state.consecutive_failures >= SATURATED_FAILURE_COUNT:
                return state.offline

            if kind == ErrorKind.QUOTA_EXCEEDED:
                state.offline = True
                state.consecutive_failures = SATURATED_FAILURE_COUNT
                logger.error("🚫 Daily quota exceeded - entering offline mode until reset")
                return True

            if kind not in STREAK_KINDS:
                # Terminal errors say nothing about endpoint health
                state.consecutive_failures = 0
                return state.offline

            state.consecutive_failures += 1
            if state.consecutive_failures >= self.threshold and not state.offline:
                state.offline = True
                logger.warning(
                    f"🔌 {state.consecutive_failures} consecutive {kind.value} failures - "
                    "entering offline mode"
                )
            return state.offline

    def record_success(self) -> None:
        with self._lock:
            self._state.consecutive_failures = 0

    def reset(self) -> None:
        """Clear offline mode (operator action or tests)"""
        with self._lock:
            self._state = OfflineState()
        logger.info("Offline mode reset")

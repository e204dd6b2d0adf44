"""
Cooperative cancellation for orchestrated runs.

The token is owned by the caller; the orchestrator only reads it. Work that
is already in flight is not interrupted, its result is just discarded.
"""
from concurrent.futures import Future
from threading import Event, Lock

from utils import get_logger

logger = get_logger(__name__)


class CancelToken:
    """
    Token for cooperative cancellation.

    Usage:
        token = CancelToken()
        report = orchestrator.run(context, jobs, cancel_token=token)

        # from another thread
        token.cancel("user closed the panel")
    """

    def __init__(self):
        self._event = Event()
        self._future: Future = Future()
        self._lock = Lock()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def future(self) -> Future:
        """Resolves when cancel() is called, so it can be raced with other futures"""
        return self._future

    def cancel(self, reason: str = "Analysis cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            self._future.set_result(reason)
        logger.info(f"Cancellation requested: {reason}")

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to timeout seconds; True if cancelled meanwhile"""
        return self._event.wait(timeout)

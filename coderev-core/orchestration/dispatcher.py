"""
Serial Dispatcher
Runs every outbound Gemini call on a single worker, in submission order.

The endpoint tolerates far less concurrency than the UI can generate, so
calls are queued instead of fired in parallel. Queued calls can be
cancelled through their Future; a call that already started runs to the end.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, TypeVar

from utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SerialDispatcher:
    """FIFO queue with exactly one worker"""

    def __init__(self, name: str = "gemini"):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-dispatch")
        self._lock = Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Tasks queued or running"""
        with self._lock:
            return self._pending

    def enqueue(self, task: Callable[[], T]) -> Future:
        with self._lock:
            future = self._executor.submit(task)
            self._pending += 1
        future.add_done_callback(self._on_done)
        logger.debug(f"Queued task on {self.name} dispatcher ({self.pending} pending)")
        return future

    def shutdown(self, cancel_pending: bool = True) -> None:
        self._executor.shutdown(wait=False, cancel_futures=cancel_pending)

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending -= 1

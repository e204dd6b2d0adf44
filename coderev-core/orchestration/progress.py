"""
Progress reporting for orchestrated runs.

Observers get an event before each job starts and one when the run ends.
Delivery is fire-and-forget: a failing observer never breaks a run.
"""
from threading import Lock
from typing import Callable, Protocol

from utils import get_logger
from .types import ProgressEvent, ProgressStatus

logger = get_logger(__name__)


class ProgressObserver(Protocol):
    def on_progress(self, event: ProgressEvent) -> None:
        ...


class CallbackObserver:
    """Adapts a plain callable to the observer interface"""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self.callback = callback

    def on_progress(self, event: ProgressEvent) -> None:
        self.callback(event)


class ProgressRecorder:
    """Keeps every event it receives"""

    def __init__(self):
        self._events: list[ProgressEvent] = []
        self._lock = Lock()

    def on_progress(self, event: ProgressEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[ProgressEvent]:
        with self._lock:
            return list(self._events)

    @property
    def last(self) -> ProgressEvent | None:
        with self._lock:
            return self._events[-1] if self._events else None

    def started_jobs(self) -> list[str]:
        return [e.current_job for e in self.events if e.status == ProgressStatus.RUNNING]


class ProgressTracker:
    """Numbers job starts within one run and forwards events to an observer"""

    def __init__(self, observer: ProgressObserver | None, total: int):
        self.observer = observer
        self.total = total
        self._started = 0
        self._lock = Lock()

    def job_started(self, job_name: str) -> None:
        with self._lock:
            self._started += 1
            current = self._started
        self._emit(ProgressEvent(current, self.total, job_name, ProgressStatus.RUNNING))

    def finished(self, status: ProgressStatus = ProgressStatus.COMPLETED) -> None:
        self._emit(ProgressEvent(self.total, self.total, "", status))

    def _emit(self, event: ProgressEvent) -> None:
        if self.observer is None:
            return
        try:
            self.observer.on_progress(event)
        except Exception:
            logger.exception(f"Progress observer failed on {event.status.value} event")


def as_observer(observer) -> ProgressObserver | None:
    """Accept an observer object or a bare callable"""
    if observer is None or hasattr(observer, "on_progress"):
        return observer
    if callable(observer):
        return CallbackObserver(observer)
    raise TypeError(f"Not a progress observer: {observer!r}")

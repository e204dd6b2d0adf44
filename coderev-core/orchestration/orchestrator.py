"""
Job Orchestrator
Runs a fixed set of independent jobs (e.g. the six code analyzers) against
one input without letting any single failure sink the run.

- Jobs run in batches of max_concurrency; batches run strictly in order
- Each job retries on its own with exponential backoff and a per-attempt timeout
- Every job yields a result: real payload, fallback payload, or offline placeholder
- Failures feed the offline mode controller; success resets its streak
"""
import math
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Any, Callable, Sequence

from utils import get_logger
from .cancellation import CancelToken
from .offline_mode import OfflineModeController
from .progress import ProgressTracker, as_observer
from .types import (
    ErrorKind,
    GenerationError,
    JobDescriptor,
    JobError,
    JobResult,
    OrchestrationReport,
    ProgressStatus,
    RunStatus,
    RunSummary,
)

logger = get_logger(__name__)


# Kinds that end a job's retry loop even when attempts remain
STOP_RETRY_KINDS = frozenset({
    ErrorKind.CANCELLED,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.INVALID_CREDENTIAL,
})

# (job name, input, score, summary) -> payload
FallbackFactory = Callable[[str, Any, int, str], Any]


@dataclass(frozen=True)
class OrchestratorConfig:
    """Per-run knobs. Replace the whole object to change them."""
    max_concurrency: int = 1
    timeout_ms: int = 45_000
    max_retries: int = 2
    backoff_multiplier: float = 1.5
    base_delay_ms: int = 1_000
    max_delay_ms: int = 10_000
    enabled_jobs: tuple[str, ...] | None = None     # None runs every job given
    fallback_score: int = 70
    offline_score: int = 75

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_multiplier <= 1:
            raise ValueError("backoff_multiplier must be > 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")
        if self.enabled_jobs is not None and not isinstance(self.enabled_jobs, tuple):
            object.__setattr__(self, "enabled_jobs", tuple(self.enabled_jobs))

    def retry_delay_ms(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1 = first retry)"""
        delay = self.base_delay_ms * self.backoff_multiplier ** (attempt - 1)
        return min(delay, self.max_delay_ms)

    def replace(self, **changes) -> "OrchestratorConfig":
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, settings) -> "OrchestratorConfig":
        return cls(
            max_concurrency=settings.ANALYSIS_MAX_CONCURRENCY,
            timeout_ms=settings.ANALYSIS_TIMEOUT_MS,
            max_retries=settings.ANALYSIS_MAX_RETRIES,
            backoff_multiplier=settings.ANALYSIS_BACKOFF_MULTIPLIER,
            enabled_jobs=tuple(settings.ANALYSIS_ENABLED) or None,
        )


def default_fallback(job_name: str, input: Any, score: int, summary: str) -> dict:
    return {"score": score, "issues": [], "suggestions": [], "summary": summary}


class _AttemptFailed(Exception):
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class JobOrchestrator:
    """
    Runs jobs in concurrency-bounded batches with per-job retry.

    The offline controller is injected so callers (and tests) decide whether
    it is shared process-wide or fresh per instance.
    """

    def __init__(
        self,
        offline: OfflineModeController,
        config: OrchestratorConfig | None = None,
        fallback_factory: FallbackFactory | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.offline = offline
        self._config = config or OrchestratorConfig()
        self.fallback_factory = fallback_factory or default_fallback
        self._sleep = sleep
        self._clock = clock

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def update_config(self, config: OrchestratorConfig) -> None:
        if not isinstance(config, OrchestratorConfig):
            raise TypeError("config must be an OrchestratorConfig")
        self._config = config

    def run(
        self,
        input: Any,
        jobs: Sequence[JobDescriptor],
        config: OrchestratorConfig | None = None,
        observer=None,
        cancel_token: CancelToken | None = None,
    ) -> OrchestrationReport:
        """
        Run every job against input.

        Returns one result per selected job, in job order. A cancelled run
        still returns a full result set, with CANCELLED entries for the jobs
        that never finished.
        """
        config = config or self._config
        token = cancel_token or CancelToken()
        selected = self._select(jobs, config)
        total = len(selected)
        batches = [selected[i:i + config.max_concurrency] for i in range(0, total, config.max_concurrency)]
        progress = ProgressTracker(as_observer(observer), total)
        started_at = self._clock()

        logger.info(
            f"📊 Running {total} jobs in {len(batches)} batches "
            f"(concurrency: {config.max_concurrency})"
        )

        results: dict[int, JobResult] = {}
        attempt_pool = ThreadPoolExecutor(
            max_workers=max(1, total * (config.max_retries + 1)),
            thread_name_prefix="job-attempt",
        )
        try:
            with ThreadPoolExecutor(
                max_workers=config.max_concurrency,
                thread_name_prefix="job-batch",
            ) as batch_pool:
                offset = 0
                for index, batch in enumerate(batches):
                    if token.cancelled:
                        logger.info(f"Run cancelled before batch {index + 1}/{len(batches)}")
                        break

                    logger.info(
                        f"🔄 Processing batch {index + 1}/{len(batches)}: "
                        f"{', '.join(job.name for job in batch)}"
                    )
                    futures = {
                        offset + position: batch_pool.submit(
                            self._run_job, job, input, config, token, attempt_pool, progress
                        )
                        for position, job in enumerate(batch)
                    }
                    # Next batch waits until this one has fully settled
                    for position, future in futures.items():
                        results[position] = future.result()
                    offset += len(batch)
        finally:
            # Timed-out or cancelled attempts keep running; their results are dropped
            attempt_pool.shutdown(wait=False, cancel_futures=True)

        ordered = [
            results.get(position) or self._cancelled_result(job, input, config, attempts=0)
            for position, job in enumerate(selected)
        ]
        status = (
            RunStatus.CANCELLED
            if any(r.error_kind == ErrorKind.CANCELLED for r in ordered)
            else RunStatus.COMPLETED
        )
        progress.finished(ProgressStatus.ERROR if status == RunStatus.CANCELLED else ProgressStatus.COMPLETED)

        report = OrchestrationReport(
            results=ordered,
            errors=[
                JobError(r.name, r.error_kind, r.message, fallback=r.fallback)
                for r in ordered if not r.succeeded
            ],
            summary=self._summarize(ordered, started_at),
            status=status,
            metadata={"batches": len(batches), "offline": self.offline.is_offline()},
        )
        logger.info(
            f"Run {status.value}: score {report.summary.overall_score}, "
            f"{len(report.errors)} failed of {total}"
        )
        return report

    def _select(self, jobs: Sequence[JobDescriptor], config: OrchestratorConfig) -> list[JobDescriptor]:
        if config.enabled_jobs is None:
            return list(jobs)
        return [job for job in jobs if job.name in config.enabled_jobs]

    def _run_job(
        self,
        job: JobDescriptor,
        input: Any,
        config: OrchestratorConfig,
        token: CancelToken,
        pool: ThreadPoolExecutor,
        progress: ProgressTracker,
    ) -> JobResult:
        if token.cancelled:
            return self._cancelled_result(job, input, config, attempts=0)

        progress.job_started(job.name)

        if self.offline.is_offline():
            logger.info(f"📱 {job.name} skipped (offline mode)")
            return JobResult(
                name=job.name,
                succeeded=True,
                payload=self.fallback_factory(
                    job.name, input, config.offline_score, f"{job.name} analysis (offline mode)"
                ),
                fallback=True,
                offline=True,
            )

        attempts = 0
        kind, message = ErrorKind.UNKNOWN, ""
        for attempt in range(config.max_retries + 1):
            if token.cancelled:
                kind, message = ErrorKind.CANCELLED, token.reason or "Analysis cancelled"
                break

            if attempt > 0:
                delay = config.retry_delay_ms(attempt) / 1000
                logger.info(
                    f"🔄 Retrying {job.name} (attempt {attempt + 1}/{config.max_retries + 1}) "
                    f"after {delay:.1f}s"
                )
                if self._wait(delay, token):
                    kind, message = ErrorKind.CANCELLED, token.reason or "Analysis cancelled"
                    break

            attempts += 1
            try:
                payload = self._attempt(job, input, config, token, pool)
            except _AttemptFailed as e:
                kind, message = e.kind, e.message
                logger.warning(f"{job.name} attempt {attempts} failed ({kind.value}): {message}")
                if kind in STOP_RETRY_KINDS:
                    break
                continue

            self.offline.record_success()
            return JobResult(name=job.name, succeeded=True, payload=payload, attempts=attempts)

        if kind == ErrorKind.CANCELLED:
            return self._cancelled_result(job, input, config, attempts=attempts, message=message)

        offline = self.offline.record_failure(kind)
        score = config.offline_score if offline else config.fallback_score
        summary = (
            f"{job.name} analysis (offline mode)"
            if offline
            else f"{job.name} analysis encountered an error"
        )
        logger.error(f"{job.name} failed after {attempts} attempt(s): {message}")
        return JobResult(
            name=job.name,
            succeeded=False,
            payload=self.fallback_factory(job.name, input, score, summary),
            error_kind=kind,
            message=message,
            fallback=True,
            offline=offline,
            attempts=attempts,
        )

    def _attempt(
        self,
        job: JobDescriptor,
        input: Any,
        config: OrchestratorConfig,
        token: CancelToken,
        pool: ThreadPoolExecutor,
    ) -> Any:
        """Race the job body against the timeout and the cancel signal"""
        future = pool.submit(job.run, input)
        done, _ = wait([future, token.future], timeout=config.timeout_ms / 1000, return_when=FIRST_COMPLETED)

        if future in done:
            try:
                return future.result()
            except GenerationError as e:
                raise _AttemptFailed(e.kind, str(e)) from e
            except Exception as e:
                logger.exception(f"{job.name} raised an unexpected error")
                raise _AttemptFailed(ErrorKind.UNKNOWN, str(e) or type(e).__name__) from e

        future.cancel()
        if token.cancelled:
            raise _AttemptFailed(ErrorKind.CANCELLED, token.reason or "Analysis cancelled")
        raise _AttemptFailed(ErrorKind.UNKNOWN, f"Analysis timeout after {config.timeout_ms}ms")

    def _wait(self, seconds: float, token: CancelToken) -> bool:
        """Backoff sleep; True if the run was cancelled meanwhile"""
        if self._sleep is not None:
            self._sleep(seconds)
            return token.cancelled
        return token.wait(seconds)

    def _cancelled_result(
        self,
        job: JobDescriptor,
        input: Any,
        config: OrchestratorConfig,
        attempts: int,
        message: str = "Analysis cancelled",
    ) -> JobResult:
        return JobResult(
            name=job.name,
            succeeded=False,
            payload=self.fallback_factory(
                job.name, input, config.fallback_score, f"{job.name} analysis cancelled"
            ),
            error_kind=ErrorKind.CANCELLED,
            message=message,
            fallback=True,
            attempts=attempts,
        )

    def _summarize(self, results: list[JobResult], started_at: float) -> RunSummary:
        scores = [_field(r.payload, "score", 0) for r in results]
        overall = math.floor(sum(scores) / len(scores) + 0.5) if scores else 0
        return RunSummary(
            overall_score=int(overall),
            total_issues=sum(len(_field(r.payload, "issues", [])) for r in results),
            total_suggestions=sum(len(_field(r.payload, "suggestions", [])) for r in results),
            duration_ms=int((self._clock() - started_at) * 1000),
        )


def _field(payload: Any, name: str, default: Any) -> Any:
    if isinstance(payload, dict):
        value = payload.get(name, default)
    else:
        value = getattr(payload, name, default)
    return default if value is None else value

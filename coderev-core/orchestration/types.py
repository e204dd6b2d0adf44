"""
Orchestration Types
Value objects shared by the generation client and the job orchestrator.

Outcomes of a generation call are plain values (text OR a classified failure),
so callers never have to catch endpoint exceptions.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class ErrorKind(Enum):
    """Classified generation failures"""
    RATE_LIMITED = "rate_limited"               # Per-minute limit, short cooldown
    QUOTA_EXCEEDED = "quota_exceeded"           # Daily quota / billing, stop calling
    INVALID_REQUEST = "invalid_request"
    INVALID_CREDENTIAL = "invalid_credential"
    ENDPOINT_NOT_FOUND = "endpoint_not_found"   # Unknown model name
    CONTENT_BLOCKED = "content_blocked"         # Safety filter
    EMPTY_RESPONSE = "empty_response"
    SERVER_ERROR = "server_error"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS


RETRYABLE_KINDS = frozenset({
    ErrorKind.RATE_LIMITED,
    ErrorKind.SERVER_ERROR,
    ErrorKind.EMPTY_RESPONSE,
    ErrorKind.UNKNOWN,
})


@dataclass(frozen=True)
class Prompt:
    """Prompt text plus an optional output token limit override"""
    text: str
    max_tokens: int | None = None


@dataclass(frozen=True)
class GenerationOutcome:
    """Either generated text or a classified failure, never both"""
    text: str | None = None
    error_kind: ErrorKind | None = None
    message: str = ""
    retry_after_seconds: float | None = None

    def __post_init__(self):
        if (self.text is None) == (self.error_kind is None):
            raise ValueError("GenerationOutcome needs exactly one of text or error_kind")

    @classmethod
    def success(cls, text: str) -> "GenerationOutcome":
        return cls(text=text)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        retry_after_seconds: float | None = None
    ) -> "GenerationOutcome":
        return cls(error_kind=kind, message=message, retry_after_seconds=retry_after_seconds)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def unwrap(self) -> str:
        """Return the generated text, raising GenerationError for failures"""
        if self.error_kind is not None:
            raise GenerationError(self)
        return self.text

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "text": self.text}
        return {
            "ok": False,
            "error_kind": self.error_kind.value,
            "message": self.message,
            "retry_after_seconds": self.retry_after_seconds,
        }


class GenerationError(Exception):
    """Raised by job bodies to hand a classified failure to the orchestrator"""

    def __init__(self, outcome: GenerationOutcome):
        super().__init__(outcome.message or outcome.error_kind.value)
        self.outcome = outcome

    @property
    def kind(self) -> ErrorKind:
        return self.outcome.error_kind


@dataclass(frozen=True)
class JobDescriptor:
    """A named job; run(input) returns a payload or raises"""
    name: str
    run: Callable[[Any], Any]


@dataclass
class JobResult:
    """Result of one job in a run; payload is always filled in"""
    name: str
    succeeded: bool
    payload: Any
    error_kind: ErrorKind | None = None
    message: str = ""
    fallback: bool = False          # Payload was synthesized, not generated
    offline: bool = False           # Produced while offline mode was active
    attempts: int = 0

    def to_dict(self) -> dict:
        payload = self.payload.to_dict() if hasattr(self.payload, "to_dict") else self.payload
        return {
            "name": self.name,
            "succeeded": self.succeeded,
            "payload": payload,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "fallback": self.fallback,
            "offline": self.offline,
            "attempts": self.attempts,
        }


@dataclass
class JobError:
    """One entry per failed job"""
    job: str
    kind: ErrorKind
    message: str
    fallback: bool = True

    def to_dict(self) -> dict:
        return {
            "job": self.job,
            "kind": self.kind.value,
            "message": self.message,
            "fallback": self.fallback,
        }


class ProgressStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    current_job: str
    status: ProgressStatus


class RunStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class RunSummary:
    overall_score: int
    total_issues: int
    total_suggestions: int
    duration_ms: int


@dataclass
class OrchestrationReport:
    """Everything a run hands back: one result per requested job"""
    results: list[JobResult]
    errors: list[JobError]
    summary: RunSummary
    status: RunStatus = RunStatus.COMPLETED
    metadata: dict = field(default_factory=dict)

    @property
    def cancelled(self) -> bool:
        return self.status == RunStatus.CANCELLED

    def result_for(self, name: str) -> JobResult | None:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
            "summary": {
                "overall_score": self.summary.overall_score,
                "total_issues": self.summary.total_issues,
                "total_suggestions": self.summary.total_suggestions,
                "duration_ms": self.summary.duration_ms,
            },
            "metadata": self.metadata,
        }

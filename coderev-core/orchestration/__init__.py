"""
Orchestration Module - AI request orchestration core

This module keeps calls to the generation endpoint bounded and failure-aware:
- ErrorClassifier: Maps endpoint failures to a fixed set of error kinds
- BackoffClock: Shared cooldown after rate-limited responses
- RateLimiter: Per-model requests-per-minute quota
- SerialDispatcher: One outbound call at a time, FIFO
- JobOrchestrator: Batched, retried, timed-out jobs with fallbacks
- OfflineModeController: Stops calling the endpoint after sustained failures
"""
from .types import (
    ErrorKind,
    GenerationError,
    GenerationOutcome,
    JobDescriptor,
    JobError,
    JobResult,
    OrchestrationReport,
    ProgressEvent,
    ProgressStatus,
    Prompt,
    RunStatus,
    RunSummary,
)
from .classifier import Classification, EndpointFailure, ErrorClassifier
from .backoff import BackoffClock
from .rate_limiter import RateLimiter, RateLimitExceededError
from .dispatcher import SerialDispatcher
from .offline_mode import OfflineModeController, OfflineState
from .cancellation import CancelToken
from .progress import CallbackObserver, ProgressObserver, ProgressRecorder
from .orchestrator import JobOrchestrator, OrchestratorConfig

__all__ = [
    # Outcomes and results
    "ErrorKind",
    "GenerationError",
    "GenerationOutcome",
    "JobDescriptor",
    "JobError",
    "JobResult",
    "OrchestrationReport",
    "ProgressEvent",
    "ProgressStatus",
    "Prompt",
    "RunStatus",
    "RunSummary",
    # Classification
    "Classification",
    "EndpointFailure",
    "ErrorClassifier",
    # Rate limiting
    "BackoffClock",
    "RateLimiter",
    "RateLimitExceededError",
    "SerialDispatcher",
    # Orchestration
    "OfflineModeController",
    "OfflineState",
    "CancelToken",
    "CallbackObserver",
    "ProgressObserver",
    "ProgressRecorder",
    "JobOrchestrator",
    "OrchestratorConfig",
]

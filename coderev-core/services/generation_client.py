"""
Generation Client
The single entry point for "generate text from this prompt".

Wraps the Gemini endpoint with, in order:
1. the shared backoff gate (fail fast during a 429 cooldown)
2. prompt validation
3. the per-model rate limiter
4. the serial dispatcher (one call in flight at a time)
5. one doubled-token retry when the output was truncated
6. error classification

Endpoint failures always come back as GenerationOutcome values.
"""
from concurrent.futures import CancelledError

from orchestration.backoff import BackoffClock
from orchestration.classifier import Classification, EndpointFailure, ErrorClassifier
from orchestration.dispatcher import SerialDispatcher
from orchestration.rate_limiter import RateLimiter, RateLimitExceededError
from orchestration.types import ErrorKind, GenerationOutcome, Prompt
from utils import get_logger
from .gemini_endpoint import EndpointError, GenerationEndpoint

logger = get_logger(__name__)


DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_OUTPUT_TOKENS = 4096


class GenerationClient:
    """
    Rate-limited, serialized, failure-classifying client for one model.

    Backoff, rate limiter and dispatcher can be injected so several clients
    share them, or left out to get private instances.
    """

    def __init__(
        self,
        endpoint: GenerationEndpoint,
        model_name: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        rate_limiter: RateLimiter | None = None,
        dispatcher: SerialDispatcher | None = None,
        backoff: BackoffClock | None = None,
        classifier: ErrorClassifier | None = None,
    ):
        if max_output_tokens < 1:
            raise ValueError("max_output_tokens must be >= 1")
        self.endpoint = endpoint
        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.rate_limiter = rate_limiter or RateLimiter()
        self.dispatcher = dispatcher or SerialDispatcher()
        self.backoff = backoff or BackoffClock()
        self.classifier = classifier or ErrorClassifier()

    def generate(
        self,
        prompt: Prompt | str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> GenerationOutcome:
        """Generate text; blocks until the queued call has run"""
        if isinstance(prompt, str):
            prompt = Prompt(prompt, max_tokens)
        elif max_tokens is not None:
            prompt = Prompt(prompt.text, max_tokens)

        cooldown = self.backoff.should_wait()
        if cooldown is not None:
            logger.warning(f"Rate limited. {cooldown:.0f}s of backoff left, skipping call")
            return self._cooldown_outcome(cooldown)

        if not prompt.text or not prompt.text.strip():
            logger.error("Empty prompt provided")
            return GenerationOutcome.failure(ErrorKind.INVALID_REQUEST, "Empty prompt provided")

        rejected = self._take_slot()
        if rejected is not None:
            return rejected

        token_limit = prompt.max_tokens or self.max_output_tokens
        temperature = self.temperature if temperature is None else temperature
        future = self.dispatcher.enqueue(lambda: self._dispatch(prompt.text, token_limit, temperature))
        try:
            return future.result()
        except CancelledError:
            return GenerationOutcome.failure(ErrorKind.CANCELLED, "Queued request was cancelled")

    def usage_stats(self) -> dict:
        stats = self.rate_limiter.get_usage_stats(self.model_name)
        stats["backoff_seconds"] = self.backoff.should_wait() or 0.0
        stats["queued"] = self.dispatcher.pending
        return stats

    def close(self) -> None:
        self.dispatcher.shutdown()

    def _dispatch(self, text: str, token_limit: int, temperature: float) -> GenerationOutcome:
        # Runs on the dispatcher worker; a 429 may have landed while we were queued
        cooldown = self.backoff.should_wait()
        if cooldown is not None:
            return self._cooldown_outcome(cooldown)

        result = self._call(text, token_limit, temperature)

        if isinstance(result, Classification) and result.truncated:
            escalated = token_limit * 2
            logger.warning(
                f"⚠️ Response truncated at {token_limit} tokens, retrying once with {escalated}"
            )
            rejected = self._take_slot()
            if rejected is not None:
                return rejected
            result = self._call(text, escalated, temperature)

        if isinstance(result, str):
            return GenerationOutcome.success(result)

        if result.kind == ErrorKind.RATE_LIMITED and result.retry_after_seconds:
            self.backoff.record_rate_limited(result.retry_after_seconds)
        return result.to_outcome()

    def _call(self, text: str, token_limit: int, temperature: float) -> str | Classification:
        """One endpoint call: the text, or the classified failure"""
        try:
            response = self.endpoint.call(text, self.model_name, temperature, token_limit)
        except EndpointError as e:
            classification = self.classifier.classify(e.to_failure())
        except Exception as e:
            logger.exception("Unexpected error from the generation endpoint")
            classification = self.classifier.classify(EndpointFailure(message=str(e) or type(e).__name__))
        else:
            if response.usable:
                return response.text
            classification = self.classifier.classify(response.to_failure())

        logger.warning(f"Gemini call failed: {classification.kind.value} - {classification.message}")
        return classification

    def _take_slot(self) -> GenerationOutcome | None:
        try:
            self.rate_limiter.consume(self.model_name)
        except RateLimitExceededError as e:
            return GenerationOutcome.failure(
                ErrorKind.RATE_LIMITED,
                "Local rate limiter triggered. Wait a moment before making more requests.",
                retry_after_seconds=e.retry_after_seconds,
            )
        return None

    @staticmethod
    def _cooldown_outcome(cooldown: float) -> GenerationOutcome:
        return GenerationOutcome.failure(
            ErrorKind.RATE_LIMITED,
            f"Rate limited. Wait {cooldown:.0f}s before trying again.",
            retry_after_seconds=cooldown,
        )

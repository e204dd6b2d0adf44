"""
Error Classifier
Maps a failed Gemini call onto a fixed set of error kinds.

The input is structured (HTTP status, error details, response flags) rather
than a free-text message, so every failure lands in exactly one kind:
- 4xx auth/quota problems are terminal
- 429 per-minute limits carry a retry delay for the backoff clock
- empty / truncated / blocked responses are told apart by the response flags
"""
from dataclasses import dataclass, field

from utils import get_logger
from .types import ErrorKind, GenerationOutcome

logger = get_logger(__name__)


DEFAULT_RETRY_AFTER_SECONDS = 60.0
DEFAULT_DAILY_QUOTA = "250"
TRUNCATION_FINISH_REASON = "MAX_TOKENS"


@dataclass(frozen=True)
class EndpointFailure:
    """Structured view of a failed (or unusable) endpoint call"""
    http_status: int | None = None
    details: tuple[dict, ...] = field(default_factory=tuple)
    message: str = ""
    response_present: bool = False  # The endpoint answered, but the answer is unusable
    text: str | None = None
    finish_reason: str | None = None
    blocked: bool = False
    block_reason: str | None = None


@dataclass(frozen=True)
class Classification:
    """Result of classifying an endpoint failure"""
    kind: ErrorKind
    message: str
    retry_after_seconds: float | None = None
    truncated: bool = False         # Output hit the token limit, worth one bigger retry

    def to_outcome(self) -> GenerationOutcome:
        return GenerationOutcome.failure(self.kind, self.message, self.retry_after_seconds)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retry_after_seconds": self.retry_after_seconds,
            "truncated": self.truncated,
            "retryable": self.kind.retryable,
        }


class ErrorClassifier:
    """
    Classifies endpoint failures. Stateless; first matching rule wins.
    """

    CREDENTIAL_MARKERS = (
        "api_key_invalid",
        "api key not valid",
        "invalid api key",
        "api key expired",
        "api_key_expired",
    )

    def classify(self, failure: EndpointFailure) -> Classification:
        status = failure.http_status
        message = failure.message or ""

        if status == 400:
            if self._has_credential_marker(failure):
                return Classification(
                    ErrorKind.INVALID_CREDENTIAL,
                    "Your Gemini API key is invalid. Check it at https://aistudio.google.com/app/apikey",
                )
            return Classification(
                ErrorKind.INVALID_REQUEST,
                f"Invalid request to Gemini API: {message or 'no details'}",
            )

        if status == 404:
            return Classification(
                ErrorKind.ENDPOINT_NOT_FOUND,
                f"Model or endpoint not found: {message or 'check the model name'}",
            )

        if status == 403:
            return Classification(
                ErrorKind.QUOTA_EXCEEDED,
                "API access forbidden. Check your billing status and quota at https://ai.google.dev/",
            )

        if status == 429:
            quota_failure = self._find_detail(failure.details, "QuotaFailure")
            if quota_failure is not None:
                limit = self._quota_limit(quota_failure)
                logger.error(f"Daily quota exceeded ({limit} requests/day)")
                return Classification(
                    ErrorKind.QUOTA_EXCEEDED,
                    f"You've exceeded your daily API quota ({limit} requests/day). "
                    "It resets in ~24 hours.",
                )

            retry_after = self._retry_delay(failure.details)
            return Classification(
                ErrorKind.RATE_LIMITED,
                f"Too many requests per minute. Wait {retry_after:.0f}s before trying again.",
                retry_after_seconds=retry_after,
            )

        if status is not None and status >= 500:
            return Classification(
                ErrorKind.SERVER_ERROR,
                f"Gemini API server error ({status}). Try again later.",
            )

        if failure.response_present:
            empty = not (failure.text or "").strip()

            if empty and failure.finish_reason == TRUNCATION_FINISH_REASON:
                return Classification(
                    ErrorKind.EMPTY_RESPONSE,
                    "Response was truncated by the output token limit",
                    truncated=True,
                )

            if failure.blocked:
                return Classification(
                    ErrorKind.CONTENT_BLOCKED,
                    f"Response blocked by safety filter: {failure.block_reason or 'unspecified'}",
                )

            if empty:
                return Classification(
                    ErrorKind.EMPTY_RESPONSE,
                    "API returned an empty response",
                )

        return Classification(
            ErrorKind.UNKNOWN,
            f"Failed to generate completion: {message or 'unknown error'}",
        )

    def _has_credential_marker(self, failure: EndpointFailure) -> bool:
        haystack = failure.message.lower()
        for detail in failure.details:
            reason = detail.get("reason")
            if isinstance(reason, str):
                haystack += " " + reason.lower()
        return any(marker in haystack for marker in self.CREDENTIAL_MARKERS)

    @staticmethod
    def _find_detail(details: tuple[dict, ...], type_marker: str) -> dict | None:
        for detail in details:
            if type_marker in str(detail.get("@type", "")):
                return detail
        return None

    @staticmethod
    def _quota_limit(quota_failure: dict) -> str:
        violations = quota_failure.get("violations") or [{}]
        return str(violations[0].get("quotaValue") or DEFAULT_DAILY_QUOTA)

    def _retry_delay(self, details: tuple[dict, ...]) -> float:
        retry_info = self._find_detail(details, "RetryInfo")
        if retry_info is None:
            return DEFAULT_RETRY_AFTER_SECONDS

        raw = retry_info.get("retryDelay")
        try:
            # "23s" / "1.5s" over the REST API
            delay = float(str(raw).strip().rstrip("s"))
        except ValueError:
            logger.warning(f"Unparseable retryDelay {raw!r}, using default")
            return DEFAULT_RETRY_AFTER_SECONDS

        return delay if delay > 0 else DEFAULT_RETRY_AFTER_SECONDS

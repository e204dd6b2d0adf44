"""
Tests for the error classifier: one failure in, exactly one kind out.
"""
import pytest

from orchestration import EndpointFailure, ErrorClassifier, ErrorKind
from services import EndpointError, EndpointResponse

QUOTA_FAILURE = "type.googleapis.com/google.rpc.QuotaFailure"
RETRY_INFO = "type.googleapis.com/google.rpc.RetryInfo"


@pytest.fixture
def classifier():
    return ErrorClassifier()


def test_bad_api_key_is_invalid_credential(classifier):
    result = classifier.classify(EndpointFailure(http_status=400, message="API key not valid. Please pass a valid API key."))
    assert result.kind == ErrorKind.INVALID_CREDENTIAL


def test_credential_marker_in_details(classifier):
    failure = EndpointFailure(
        http_status=400,
        message="Bad request",
        details=({"@type": "type.googleapis.com/google.rpc.ErrorInfo", "reason": "API_KEY_INVALID"},),
    )
    assert classifier.classify(failure).kind == ErrorKind.INVALID_CREDENTIAL


def test_other_400_is_invalid_request(classifier):
    result = classifier.classify(EndpointFailure(http_status=400, message="contents is required"))
    assert result.kind == ErrorKind.INVALID_REQUEST
    assert "contents is required" in result.message


@pytest.mark.parametrize("status, kind", [
    (404, ErrorKind.ENDPOINT_NOT_FOUND),
    (403, ErrorKind.QUOTA_EXCEEDED),
    (500, ErrorKind.SERVER_ERROR),
    (503, ErrorKind.SERVER_ERROR),
])
def test_status_codes(classifier, status, kind):
    assert classifier.classify(EndpointFailure(http_status=status)).kind == kind


def test_429_with_quota_failure_is_quota_exceeded(classifier):
    failure = EndpointFailure(
        http_status=429,
        details=({"@type": QUOTA_FAILURE, "violations": [{"quotaValue": "50"}]},),
    )
    result = classifier.classify(failure)
    assert result.kind == ErrorKind.QUOTA_EXCEEDED
    assert "50 requests/day" in result.message
    assert result.retry_after_seconds is None


def test_quota_limit_defaults_when_missing(classifier):
    failure = EndpointFailure(http_status=429, details=({"@type": QUOTA_FAILURE},))
    assert "250 requests/day" in classifier.classify(failure).message


def test_429_uses_retry_delay(classifier):
    failure = EndpointFailure(http_status=429, details=({"@type": RETRY_INFO, "retryDelay": "23s"},))
    result = classifier.classify(failure)
    assert result.kind == ErrorKind.RATE_LIMITED
    assert result.retry_after_seconds == 23.0


@pytest.mark.parametrize("details", [
    (),
    ({"@type": RETRY_INFO, "retryDelay": "soon"},),
    ({"@type": RETRY_INFO, "retryDelay": "0s"},),
])
def test_429_retry_delay_defaults_to_60(classifier, details):
    result = classifier.classify(EndpointFailure(http_status=429, details=details))
    assert result.kind == ErrorKind.RATE_LIMITED
    assert result.retry_after_seconds == 60.0


def test_truncated_empty_response(classifier):
    failure = EndpointFailure(response_present=True, text="", finish_reason="MAX_TOKENS")
    result = classifier.classify(failure)
    assert result.kind == ErrorKind.EMPTY_RESPONSE
    assert result.truncated


def test_plain_empty_response(classifier):
    result = classifier.classify(EndpointFailure(response_present=True, text="  ", finish_reason="STOP"))
    assert result.kind == ErrorKind.EMPTY_RESPONSE
    assert not result.truncated


def test_blocked_wins_over_empty(classifier):
    failure = EndpointFailure(response_present=True, text=None, finish_reason="SAFETY", blocked=True)
    assert classifier.classify(failure).kind == ErrorKind.CONTENT_BLOCKED


def test_prompt_blocked_without_candidates(classifier):
    response = EndpointResponse(text=None, block_reason="SAFETY")
    result = classifier.classify(response.to_failure())
    assert result.kind == ErrorKind.CONTENT_BLOCKED
    assert not result.kind.retryable


def test_truncation_wins_over_blocked(classifier):
    failure = EndpointFailure(response_present=True, text="", finish_reason="MAX_TOKENS", blocked=True)
    assert classifier.classify(failure).truncated


def test_blocked_response_with_text(classifier):
    failure = EndpointFailure(response_present=True, text="I cannot", finish_reason="SAFETY", blocked=True, block_reason="SAFETY")
    result = classifier.classify(failure)
    assert result.kind == ErrorKind.CONTENT_BLOCKED
    assert "SAFETY" in result.message


def test_unrecognized_failure_is_unknown(classifier):
    result = classifier.classify(EndpointFailure(message="connection reset"))
    assert result.kind == ErrorKind.UNKNOWN
    assert "connection reset" in result.message


def test_classification_to_outcome(classifier):
    failure = EndpointFailure(http_status=429, details=({"@type": RETRY_INFO, "retryDelay": "5s"},))
    outcome = classifier.classify(failure).to_outcome()
    assert not outcome.ok
    assert outcome.error_kind == ErrorKind.RATE_LIMITED
    assert outcome.retry_after_seconds == 5.0


def test_endpoint_types_convert_to_failures(classifier):
    blocked = EndpointResponse(text="I cannot help", finish_reason="SAFETY").to_failure()
    assert classifier.classify(blocked).kind == ErrorKind.CONTENT_BLOCKED

    prompt_blocked = EndpointResponse(text="partial", block_reason="OTHER")
    assert not prompt_blocked.usable
    assert classifier.classify(prompt_blocked.to_failure()).kind == ErrorKind.CONTENT_BLOCKED

    error = EndpointError("Model not found", http_status=404)
    assert classifier.classify(error.to_failure()).kind == ErrorKind.ENDPOINT_NOT_FOUND


def test_retryable_kinds():
    assert ErrorKind.RATE_LIMITED.retryable
    assert ErrorKind.SERVER_ERROR.retryable
    assert not ErrorKind.QUOTA_EXCEEDED.retryable
    assert not ErrorKind.INVALID_CREDENTIAL.retryable
    assert not ErrorKind.CANCELLED.retryable

"""
Tests for the generation client: backoff gate, rate limiting, truncation
retry and classification, all against a scripted endpoint.
"""
import pytest

from conftest import rate_limited_error
from orchestration import ErrorKind, Prompt, RateLimiter
from services import EndpointError, EndpointResponse


def test_successful_generation(endpoint, make_client):
    endpoint.queue(EndpointResponse(text="def add(a, b): return a + b"))
    client = make_client(endpoint, model_name="gemini-2.5-flash", temperature=0.2)

    outcome = client.generate("write add")

    assert outcome.ok
    assert outcome.text == "def add(a, b): return a + b"
    assert endpoint.calls[0]["model"] == "gemini-2.5-flash"
    assert endpoint.calls[0]["temperature"] == 0.2
    assert endpoint.calls[0]["max_output_tokens"] == 4096


def test_per_call_overrides(endpoint, make_client):
    client = make_client(endpoint)

    client.generate("hi", max_tokens=512, temperature=0.7)
    client.generate(Prompt("hi", max_tokens=256))

    assert [c["max_output_tokens"] for c in endpoint.calls] == [512, 256]
    assert [c["temperature"] for c in endpoint.calls] == [0.7, 0.2]


def test_empty_prompt_is_rejected_without_a_call(endpoint, make_client):
    client = make_client(endpoint)

    outcome = client.generate("   ")

    assert outcome.error_kind == ErrorKind.INVALID_REQUEST
    assert endpoint.calls == []
    assert client.usage_stats()["requests_this_minute"] == 0


def test_active_cooldown_short_circuits(endpoint, make_client, clock):
    client = make_client(endpoint)
    client.backoff.record_rate_limited(30)

    outcome = client.generate("hello")

    assert outcome.error_kind == ErrorKind.RATE_LIMITED
    assert outcome.retry_after_seconds == pytest.approx(30.0)
    assert endpoint.calls == []

    clock.advance(30)
    assert client.generate("hello").ok
    assert len(endpoint.calls) == 1


def test_429_starts_a_shared_cooldown(endpoint, make_client):
    endpoint.queue(rate_limited_error("23s"))
    client = make_client(endpoint)

    first = client.generate("one")
    second = client.generate("two")

    assert first.error_kind == ErrorKind.RATE_LIMITED
    assert first.retry_after_seconds == 23.0
    assert second.error_kind == ErrorKind.RATE_LIMITED
    assert len(endpoint.calls) == 1
    assert client.backoff.should_wait() == pytest.approx(23.0)


def test_truncated_response_is_retried_once_with_double_tokens(endpoint, make_client):
    endpoint.queue(
        EndpointResponse(text=None, finish_reason="MAX_TOKENS"),
        EndpointResponse(text="the full answer"),
    )
    client = make_client(endpoint, max_output_tokens=100)

    outcome = client.generate("explain")

    assert outcome.text == "the full answer"
    assert [c["max_output_tokens"] for c in endpoint.calls] == [100, 200]
    assert client.usage_stats()["requests_this_minute"] == 2


def test_second_truncation_is_empty_response(endpoint, make_client):
    endpoint.queue(
        EndpointResponse(text=None, finish_reason="MAX_TOKENS"),
        EndpointResponse(text="", finish_reason="MAX_TOKENS"),
    )
    client = make_client(endpoint, max_output_tokens=100)

    outcome = client.generate("explain")

    assert outcome.error_kind == ErrorKind.EMPTY_RESPONSE
    assert len(endpoint.calls) == 2


def test_local_rate_limit_fails_fast(endpoint, make_client, clock):
    client = make_client(endpoint, rate_limiter=RateLimiter(limits={"test-model": 1}, clock=clock))

    assert client.generate("one").ok
    outcome = client.generate("two")

    assert outcome.error_kind == ErrorKind.RATE_LIMITED
    assert "Local rate limiter" in outcome.message
    assert outcome.retry_after_seconds == pytest.approx(60.0)
    assert len(endpoint.calls) == 1


@pytest.mark.parametrize("error, kind", [
    (EndpointError("API key not valid", http_status=400), ErrorKind.INVALID_CREDENTIAL),
    (EndpointError("Internal error", http_status=500), ErrorKind.SERVER_ERROR),
    (EndpointError("Network error: timed out"), ErrorKind.UNKNOWN),
])
def test_endpoint_errors_become_outcomes(endpoint, make_client, error, kind):
    endpoint.queue(error)
    client = make_client(endpoint)

    outcome = client.generate("hello")

    assert not outcome.ok
    assert outcome.error_kind == kind


def test_blocked_response(endpoint, make_client):
    endpoint.queue(EndpointResponse(text="partial", finish_reason="SAFETY"))
    client = make_client(endpoint)

    assert client.generate("hello").error_kind == ErrorKind.CONTENT_BLOCKED


def test_invalid_max_output_tokens(endpoint, make_client):
    with pytest.raises(ValueError):
        make_client(endpoint, max_output_tokens=0)


class RaisingEndpoint:
    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    def call(self, prompt_text, model, temperature, max_output_tokens):
        self.calls += 1
        raise self.error


def test_unexpected_endpoint_exception_is_unknown(make_client):
    endpoint = RaisingEndpoint(RuntimeError("socket closed"))
    client = make_client(endpoint)

    outcome = client.generate("hello")

    assert outcome.error_kind == ErrorKind.UNKNOWN
    assert "socket closed" in outcome.message
    assert endpoint.calls == 1
    assert client.backoff.should_wait() is None

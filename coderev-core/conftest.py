"""
Shared pytest fixtures: a scripted Gemini endpoint and a manual clock,
so nothing here touches the network or waits on wall-clock time.
"""
import os
import sys
import time
from threading import Lock

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from orchestration import BackoffClock, RateLimiter
from services import EndpointError, EndpointResponse, GenerationClient


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEndpoint:
    """Replays scripted responses; an EndpointError in the script is raised"""

    def __init__(self, default_text: str = "ok"):
        self.default_text = default_text
        self.script: list = []
        self.calls: list[dict] = []
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = Lock()

    def queue(self, *items) -> "FakeEndpoint":
        self.script.extend(items)
        return self

    def call(self, prompt_text, model, temperature, max_output_tokens):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.calls.append({
                "prompt": prompt_text,
                "model": model,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            })
            item = self.script.pop(0) if self.script else EndpointResponse(text=self.default_text)
        try:
            if self.delay:
                time.sleep(self.delay)
            if isinstance(item, EndpointError):
                raise item
            return item
        finally:
            with self._lock:
                self.in_flight -= 1


def rate_limited_error(retry_delay: str = "23s") -> EndpointError:
    return EndpointError(
        "Resource has been exhausted",
        http_status=429,
        details=({"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": retry_delay},),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def endpoint():
    return FakeEndpoint()


@pytest.fixture
def make_client(clock):
    """Factory for GenerationClients on a fake endpoint; closes them afterwards"""
    clients = []

    def factory(endpoint, model_name="test-model", limit=100, **kwargs):
        kwargs.setdefault("rate_limiter", RateLimiter(default_limit=limit, clock=clock))
        kwargs.setdefault("backoff", BackoffClock(clock=clock))
        client = GenerationClient(endpoint, model_name, **kwargs)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()

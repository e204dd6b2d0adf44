"""
Tests for the completion and chat services on top of a scripted endpoint.
"""
import pytest

from analyzers import AnalysisResult
from conftest import rate_limited_error
from orchestration import ErrorKind, OfflineModeController
from services import (
    ChatContext,
    ChatMessage,
    ChatService,
    CompletionService,
    EndpointError,
    EndpointResponse,
    fallback_completion,
    offline_suggestions,
)
from services.chat_service import OFFLINE_MESSAGE


@pytest.fixture
def offline():
    return OfflineModeController()


# ==================== COMPLETION ====================

def test_completion_is_cleaned(endpoint, make_client):
    endpoint.queue(EndpointResponse(text="```python\nreturn a + b\n```"))
    service = CompletionService(make_client(endpoint))

    result = service.complete("def add(a, b):\n    ", 19, "python")

    assert result.suggestions[0]["insert_text"] == "return a + b"
    assert not result.fallback
    assert "[CURSOR]" in endpoint.calls[0]["prompt"]
    assert endpoint.calls[0]["max_output_tokens"] == 1024


def test_completion_is_truncated(endpoint, make_client):
    endpoint.queue(EndpointResponse(text="x" * 300))
    service = CompletionService(make_client(endpoint))

    result = service.complete("x = ", 4, "python")

    assert len(result.suggestions[0]["insert_text"]) == 100


def test_completion_offline_uses_templates(endpoint, make_client, offline):
    offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    service = CompletionService(make_client(endpoint), offline)

    result = service.complete("console.log(", 12, "javascript")

    assert result.fallback
    assert result.suggestions[0]["insert_text"] == ");"
    assert endpoint.calls == []


def test_completion_failure_falls_back(endpoint, make_client):
    endpoint.queue(EndpointError("Internal error", http_status=500))
    service = CompletionService(make_client(endpoint))

    result = service.complete("print(", 6, "python")

    assert result.fallback
    assert result.error_kind == ErrorKind.SERVER_ERROR
    assert result.suggestions[0]["insert_text"] == ")"


def test_completion_failure_without_template(endpoint, make_client):
    endpoint.queue(EndpointError("Internal error", http_status=500))
    service = CompletionService(make_client(endpoint))

    result = service.complete("x = 1", 5, "rust")

    assert result.fallback
    assert result.suggestions == []


def test_completion_rejects_bad_cursor(endpoint, make_client):
    service = CompletionService(make_client(endpoint))
    with pytest.raises(ValueError):
        service.complete("abc", 10, "python")


@pytest.mark.parametrize("code, language, expected", [
    ("function ", "javascript", "() {\n  \n}"),
    ("if (", "typescript", ") {\n  \n}"),
    ("const ", "javascript", "= "),
    ("def ", "python", "():\n    pass"),
    ("   ", "python", None),
    ("x", "go", None),
])
def test_fallback_completion(code, language, expected):
    assert fallback_completion(code, language) == expected


# ==================== CHAT ====================

def test_chat_reply_with_follow_ups(endpoint, make_client):
    endpoint.queue(EndpointResponse(text="You should add a test and handle the error case.\n"))
    service = ChatService(make_client(endpoint))

    reply = service.reply([ChatMessage("user", "How do I make this safer?")])

    assert reply.message == "You should add a test and handle the error case."
    assert reply.suggestions == ["Add unit tests", "Consider integration tests", "Add error handling"]
    assert not reply.fallback
    assert endpoint.calls[0]["temperature"] == 0.7


def test_chat_prompt_includes_context(endpoint, make_client):
    service = ChatService(make_client(endpoint))
    context = ChatContext(
        file_path="src/app.js",
        language="javascript",
        code="let x = 1;",
        analysis_results=[AnalysisResult(type="security", score=90, issues=[{"id": "a"}])],
    )

    service.reply([ChatMessage("user", "Any issues?")], context)

    prompt = endpoint.calls[0]["prompt"]
    assert "File: src/app.js" in prompt
    assert "- security: 1 issues, score: 90/100" in prompt
    assert "user: Any issues?" in prompt


def test_chat_offline(endpoint, make_client, offline):
    offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    service = ChatService(make_client(endpoint), offline)

    reply = service.reply([ChatMessage("user", "hi")], ChatContext(code="function f() { if (x) {} }"))

    assert reply.message == OFFLINE_MESSAGE
    assert reply.fallback
    assert "function body with return statement" in reply.suggestions
    assert endpoint.calls == []


def test_chat_failure_is_friendly(endpoint, make_client):
    endpoint.queue(rate_limited_error("10s"))
    service = ChatService(make_client(endpoint))

    reply = service.reply([ChatMessage("user", "hi")])

    assert reply.fallback
    assert reply.error_kind == ErrorKind.RATE_LIMITED
    assert "try again" in reply.message.lower()


def test_chat_requires_messages(endpoint, make_client):
    with pytest.raises(ValueError):
        ChatService(make_client(endpoint)).reply([])


def test_offline_suggestions_patterns():
    assert offline_suggestions(None) == []
    suggestions = offline_suggestions(ChatContext(code="for i in range(3):\n    print(i)"))
    assert "loop body" in suggestions
    assert "log statement with message" in suggestions

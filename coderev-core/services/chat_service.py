"""
Chat Service
One assistant reply per request, optionally grounded in the open file and
its latest analysis results.
"""
from dataclasses import dataclass, field

from orchestration.offline_mode import OfflineModeController
from orchestration.types import ErrorKind
from utils import get_logger
from .generation_client import GenerationClient

logger = get_logger(__name__)


CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 2048
CODE_PREVIEW_CHARS = 500
MAX_SUGGESTIONS = 3

# Reply keywords -> follow-up suggestions
SUGGESTION_RULES = [
    (("test", "testing"), ["Add unit tests", "Consider integration tests"]),
    (("error", "exception"), ["Add error handling", "Implement proper logging"]),
    (("performance", "slow"), ["Profile the code", "Consider optimization techniques"]),
    (("security", "vulnerable"), ["Review input validation", "Implement security best practices"]),
    (("refactor", "improve"), ["Extract methods", "Improve variable names"]),
]

FAILURE_MESSAGES = {
    ErrorKind.RATE_LIMITED: "I'm taking a short break to avoid overwhelming the API. Please try again in a minute! ⏳",
    ErrorKind.QUOTA_EXCEEDED: "The daily AI quota is used up, so I'm working offline until it resets.",
    ErrorKind.INVALID_CREDENTIAL: "The Gemini API key looks invalid. Check your settings and try again.",
    ErrorKind.CONTENT_BLOCKED: "That request was blocked by the safety filter. Try rephrasing it.",
}
DEFAULT_FAILURE_MESSAGE = "I had trouble thinking about that. Could you try asking again?"
OFFLINE_MESSAGE = "I'm in offline mode right now, so I can only offer basic suggestions."


@dataclass
class ChatMessage:
    role: str               # "user" | "assistant"
    content: str


@dataclass
class ChatContext:
    file_path: str | None = None
    language: str | None = None
    code: str | None = None
    analysis_results: list = field(default_factory=list)


@dataclass
class ChatReply:
    message: str
    suggestions: list[str] = field(default_factory=list)
    fallback: bool = False
    error_kind: ErrorKind | None = None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "suggestions": self.suggestions,
            "fallback": self.fallback,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


def offline_suggestions(context: ChatContext | None) -> list[str]:
    """Pattern-based hints for when we can't reach the model"""
    if context is None or not context.code:
        return []

    code = context.code.lower()
    suggestions = []
    if "function" in code or "def " in code:
        suggestions.append("function body with return statement")
    if "if" in code:
        suggestions.append("if block with braces")
    if "for" in code or "while" in code:
        suggestions.append("loop body")
    if "console" in code or "print(" in code:
        suggestions.append("log statement with message")
    return suggestions


def suggest_follow_ups(reply: str) -> list[str]:
    lowered = reply.lower()
    suggestions: list[str] = []
    for keywords, follow_ups in SUGGESTION_RULES:
        if any(keyword in lowered for keyword in keywords):
            suggestions.extend(follow_ups)
    return suggestions[:MAX_SUGGESTIONS]


class ChatService:
    """Builds the conversation prompt and asks the shared client for a reply"""

    def __init__(self, client: GenerationClient, offline: OfflineModeController | None = None):
        self.client = client
        self.offline = offline

    def build_prompt(self, messages: list[ChatMessage], context: ChatContext | None = None) -> str:
        history = "\n".join(f"{m.role}: {m.content}" for m in messages)

        if context is None:
            return f"""You are a helpful coding assistant.

Conversation history:
{history}

Assistant:"""

        code_line = ""
        if context.code:
            preview = context.code[:CODE_PREVIEW_CHARS]
            ellipsis = "..." if len(context.code) > CODE_PREVIEW_CHARS else ""
            code_line = f"- Code snippet: {preview}{ellipsis}\n"

        if context.analysis_results:
            analysis = "\n".join(
                f"- {r.type}: {len(r.issues)} issues, score: {r.score}/100"
                for r in context.analysis_results
            )
        else:
            analysis = "No analysis results available yet."

        return f"""You are a helpful coding assistant. The user is working on code and has analysis results available.

Current context:
- File: {context.file_path or 'Unknown'}
- Language: {context.language or 'Unknown'}
{code_line}
Analysis results summary:
{analysis}

Conversation history:
{history}

Assistant:"""

    def reply(self, messages: list[ChatMessage], context: ChatContext | None = None) -> ChatReply:
        if not messages:
            raise ValueError("messages must not be empty")

        if self.offline is not None and self.offline.is_offline():
            return ChatReply(OFFLINE_MESSAGE, offline_suggestions(context), fallback=True)

        outcome = self.client.generate(
            self.build_prompt(messages, context),
            max_tokens=CHAT_MAX_TOKENS,
            temperature=CHAT_TEMPERATURE,
        )
        if not outcome.ok:
            logger.warning(f"Chat reply failed: {outcome.error_kind.value} - {outcome.message}")
            return ChatReply(
                FAILURE_MESSAGES.get(outcome.error_kind, DEFAULT_FAILURE_MESSAGE),
                offline_suggestions(context),
                fallback=True,
                error_kind=outcome.error_kind,
            )

        return ChatReply(outcome.text.strip(), suggest_follow_ups(outcome.text))

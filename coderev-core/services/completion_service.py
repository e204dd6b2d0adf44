"""
Completion Service
Inline code completion at the cursor.

A failed or offline call never surfaces as an error to the editor: we fall
back to a handful of syntax templates, or return no suggestion at all.
"""
import re
from dataclasses import dataclass, field

from orchestration.offline_mode import OfflineModeController
from orchestration.types import ErrorKind
from utils import get_logger
from .generation_client import GenerationClient

logger = get_logger(__name__)


COMPLETION_MAX_TOKENS = 1024
COMPLETION_TEMPERATURE = 0.3
MAX_COMPLETION_CHARS = 100

JS_LANGUAGES = {"javascript", "typescript", "javascriptreact", "typescriptreact"}

# (language group, code ends with, insert text)
FALLBACK_COMPLETIONS = {
    "js": [
        ("console.log(", ");"),
        ("function ", "() {\n  \n}"),
        ("if (", ") {\n  \n}"),
        ("for (", "let i = 0; i < ; i++) {\n  \n}"),
        ("const ", "= "),
        ("let ", "= "),
        ("var ", "= "),
    ],
    "python": [
        ("print(", ")"),
        ("def ", "():\n    pass"),
        ("if ", ":\n    pass"),
        ("for ", "in :\n    pass"),
    ],
}

_UNWANTED_PREFIXES = [
    re.compile(r"^```[\w]*\n?"),
    re.compile(r"\n```$"),
    re.compile(r"^Completion:\s*", re.IGNORECASE),
    re.compile(r"^Answer:\s*", re.IGNORECASE),
]


@dataclass
class CompletionResult:
    suggestions: list[dict] = field(default_factory=list)
    fallback: bool = False
    error_kind: ErrorKind | None = None

    def to_dict(self) -> dict:
        return {
            "suggestions": self.suggestions,
            "is_incomplete": False,
            "fallback": self.fallback,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


def fallback_completion(code_before_cursor: str, language: str) -> str | None:
    """Template completion for a few common openings, or None"""
    trimmed = code_before_cursor.rstrip()
    if not trimmed:
        return None

    group = "js" if language in JS_LANGUAGES else language
    for ending, insert_text in FALLBACK_COMPLETIONS.get(group, []):
        # Keywords are typed with a trailing space, so match against the raw text for those
        target = code_before_cursor if ending.endswith(" ") else trimmed
        if target.endswith(ending):
            return insert_text
    return None


def clean_completion(text: str) -> str:
    cleaned = text.strip()
    for pattern in _UNWANTED_PREFIXES:
        cleaned = pattern.sub("", cleaned)
    return cleaned[:MAX_COMPLETION_CHARS]


class CompletionService:
    """Generates one completion per request through the shared client"""

    def __init__(self, client: GenerationClient, offline: OfflineModeController | None = None):
        self.client = client
        self.offline = offline

    def build_prompt(self, code: str, cursor_position: int, language: str) -> str:
        before, after = code[:cursor_position], code[cursor_position:]
        return f"""You are an AI code completion assistant. Complete the following {language} code at the cursor position.

Current code:
```{language}
{before}[CURSOR]{after}
```

Provide a short, relevant completion that would naturally follow the code before the cursor. Return only the text to insert, no explanations or markdown formatting.

Completion:"""

    def complete(self, code: str, cursor_position: int, language: str) -> CompletionResult:
        if cursor_position < 0 or cursor_position > len(code):
            raise ValueError(f"cursor_position {cursor_position} outside code of length {len(code)}")

        before = code[:cursor_position]

        if self.offline is not None and self.offline.is_offline():
            logger.info("Offline mode: using template completion")
            return self._fallback(before, language, error_kind=None)

        outcome = self.client.generate(
            self.build_prompt(code, cursor_position, language),
            max_tokens=COMPLETION_MAX_TOKENS,
            temperature=COMPLETION_TEMPERATURE,
        )
        if not outcome.ok:
            logger.warning(f"Completion failed ({outcome.error_kind.value}), using fallback")
            return self._fallback(before, language, error_kind=outcome.error_kind)

        completion = clean_completion(outcome.text)
        if not completion:
            return CompletionResult()
        return CompletionResult(suggestions=[_suggestion(completion, "AI completion")])

    def _fallback(self, before: str, language: str, error_kind: ErrorKind | None) -> CompletionResult:
        template = fallback_completion(before, language)
        suggestions = [_suggestion(template, "Template completion")] if template else []
        return CompletionResult(suggestions=suggestions, fallback=True, error_kind=error_kind)


def _suggestion(insert_text: str, detail: str) -> dict:
    return {"insert_text": insert_text, "kind": "text", "detail": detail}

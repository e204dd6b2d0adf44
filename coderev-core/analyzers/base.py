"""
Code Analyzers
One Analyzer = one focused review prompt plus the logic to turn the model's
answer into an AnalysisResult.

Analyzers don't swallow generation failures: a failed outcome is raised as
GenerationError so the orchestrator can retry, classify and fall back.
"""
import re
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from orchestration.types import JobDescriptor
from utils import get_logger
from .json_parser import JsonResponseError, UnsafeJsonError, fallback_response, parse_json_response

logger = get_logger(__name__)


ANALYSIS_MAX_TOKENS = 4096
SUMMARY_PREVIEW_CHARS = 200

_SCORE_PATTERN = re.compile(r"score[:\s]*(\d+)", re.IGNORECASE)
_BULLET_PREFIX = re.compile(r"^[-•*]\s*")


@dataclass
class CodeContext:
    """The file being analyzed"""
    file_path: str
    content: str
    language: str
    framework: str | None = None

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))


@dataclass
class AnalysisResult:
    """What one analyzer reports about a file"""
    type: str
    score: int                      # 0-100
    issues: list[dict] = field(default_factory=list)
    suggestions: list[dict] = field(default_factory=list)
    summary: str = ""
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "score": self.score,
            "issues": self.issues,
            "suggestions": self.suggestions,
            "summary": self.summary,
            "metadata": self.metadata,
        }


def clamp_score(value: Any, default: int) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, min(100, score))


@dataclass(frozen=True)
class Analyzer:
    """A single review dimension (security, performance, ...)"""
    name: str
    topic: str                              # "security vulnerabilities"
    focus: tuple[str, ...]
    default_score: int
    issue_keywords: tuple[str, ...] = ()
    suggestion_keywords: tuple[str, ...] = ()
    include_framework: bool = False

    def build_prompt(self, context: CodeContext) -> str:
        focus = "\n".join(f"- {item}" for item in self.focus)
        framework = ""
        if self.include_framework and context.framework:
            framework = f"Framework: {context.framework}\n"

        return f"""Analyze the following code for {self.topic}. Focus on:
{focus}

Code file: {context.file_path}
Language: {context.language}
{framework}
Code:
{context.content}

IMPORTANT: Respond ONLY with a valid JSON object in this exact structure (no markdown, no explanations, just JSON):
{{
  "score": 0-100,
  "issues": [
    {{
      "id": "unique_id",
      "severity": "low|medium|high|critical",
      "title": "Short issue title",
      "description": "Detailed description",
      "location": {{"line": number, "column": number}},
      "fix": "How to fix it",
      "category": "{self.name}",
      "confidence": 0.0-1.0
    }}
  ],
  "suggestions": [
    {{
      "id": "unique_id",
      "title": "Improvement title",
      "description": "What to change",
      "impact": "low|medium|high",
      "effort": "low|medium|high",
      "code": "Example code",
      "explanation": "Why this helps"
    }}
  ],
  "summary": "One paragraph assessment"
}}"""

    def analyze(self, context: CodeContext, client) -> AnalysisResult:
        """Run the analysis; raises GenerationError if the call fails"""
        started = time.monotonic()
        outcome = client.generate(self.build_prompt(context), max_tokens=ANALYSIS_MAX_TOKENS)
        text = outcome.unwrap()

        parsed = self.parse_response(text)
        return AnalysisResult(
            type=self.name,
            score=clamp_score(parsed.get("score"), self.default_score),
            issues=_as_list(parsed.get("issues")),
            suggestions=_as_list(parsed.get("suggestions")),
            summary=parsed.get("summary") or f"{self.name} analysis completed",
            metadata={
                "analysis_time_ms": int((time.monotonic() - started) * 1000),
                "lines_analyzed": context.line_count,
                "language": context.language,
            },
        )

    def parse_response(self, text: str) -> dict:
        try:
            parsed = parse_json_response(text)
        except UnsafeJsonError as e:
            logger.error(f"{self.name}: rejected response JSON ({e}), using safe fallback")
            return fallback_response(self.name, e)
        except JsonResponseError as e:
            logger.warning(f"{self.name}: response is not JSON ({e}), parsing as text")
            return self.parse_text(text)

        if not isinstance(parsed, dict):
            logger.warning(f"{self.name}: JSON response is not an object, parsing as text")
            return self.parse_text(text)
        return parsed

    def parse_text(self, text: str) -> dict:
        """Best-effort extraction from a prose answer"""
        score = self.default_score
        match = _SCORE_PATTERN.search(text)
        if match:
            score = clamp_score(match.group(1), self.default_score)

        issues: list[dict] = []
        current: dict | None = None
        lines = [line.strip() for line in text.split("\n")]

        for line in lines:
            lowered = line.lower()
            if line.startswith("-") or any(keyword in lowered for keyword in self.issue_keywords):
                if current:
                    issues.append(current)
                current = {
                    "id": f"{self.name}-issue-{len(issues) + 1}",
                    "severity": "medium",
                    "title": _BULLET_PREFIX.sub("", line)[:50],
                    "description": line,
                    "category": self.name,
                    "confidence": 0.7,
                }
            elif current and line:
                current["description"] += " " + line
        if current:
            issues.append(current)

        suggestion_lines = [
            line for line in lines
            if any(keyword in line.lower() for keyword in self.suggestion_keywords)
        ]
        suggestions = [
            {
                "id": f"{self.name}-suggestion-{index + 1}",
                "title": line[:50],
                "description": line,
                "impact": "medium",
                "effort": "medium",
                "explanation": line,
            }
            for index, line in enumerate(suggestion_lines)
        ]

        summary = text[:SUMMARY_PREVIEW_CHARS] + ("..." if len(text) > SUMMARY_PREVIEW_CHARS else "")
        return {"score": score, "issues": issues, "suggestions": suggestions, "summary": summary}

    def as_job(self, client) -> JobDescriptor:
        return JobDescriptor(name=self.name, run=partial(self.analyze, client=client))


def analysis_fallback(job_name: str, context: Any, score: int, summary: str) -> AnalysisResult:
    """Placeholder result for failed, cancelled or offline analyzers"""
    metadata = {"analysis_time_ms": 0, "fallback": True}
    if isinstance(context, CodeContext):
        metadata["lines_analyzed"] = context.line_count
        metadata["language"] = context.language
    return AnalysisResult(type=job_name, score=score, summary=summary, metadata=metadata)


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    return []

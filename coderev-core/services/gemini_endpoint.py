"""
Gemini Endpoint
Thin adapter over the google-genai SDK. The only code that talks to Gemini.

Turns SDK responses and errors into EndpointResponse / EndpointError so the
rest of the core never sees SDK types.
"""
from dataclasses import dataclass
from typing import Protocol

import httpx
from google import genai
from google.genai import errors, types

from orchestration.classifier import EndpointFailure
from utils import get_logger

logger = get_logger(__name__)


# Finish reasons that mean the candidate was withheld by a filter
BLOCKED_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}

# Analysis prompts contain arbitrary user code; don't let the filters eat it
SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


@dataclass(frozen=True)
class EndpointResponse:
    """What came back from one generate call"""
    text: str | None
    finish_reason: str | None = None
    block_reason: str | None = None

    @property
    def blocked(self) -> bool:
        return bool(self.block_reason) or self.finish_reason in BLOCKED_FINISH_REASONS

    @property
    def usable(self) -> bool:
        return bool(self.text and self.text.strip()) and not self.blocked

    def to_failure(self) -> EndpointFailure:
        return EndpointFailure(
            response_present=True,
            text=self.text,
            finish_reason=self.finish_reason,
            blocked=self.blocked,
            block_reason=self.block_reason or (self.finish_reason if self.blocked else None),
            message="Unusable response from Gemini",
        )


class EndpointError(Exception):
    """The endpoint call failed before producing a response"""

    def __init__(self, message: str, http_status: int | None = None, details: tuple[dict, ...] = ()):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.details = tuple(details)

    def to_failure(self) -> EndpointFailure:
        return EndpointFailure(
            http_status=self.http_status,
            details=self.details,
            message=self.message,
        )


class GenerationEndpoint(Protocol):
    def call(
        self,
        prompt_text: str,
        model: str,
        temperature: float,
        max_output_tokens: int,
    ) -> EndpointResponse:
        ...


class GeminiEndpoint:
    """GenerationEndpoint backed by google.genai.Client"""

    def __init__(self, api_key: str, client: genai.Client | None = None):
        if client is None and not api_key:
            raise ValueError("GEMINI_API_KEY not configured")
        self.client = client or genai.Client(api_key=api_key)

    def call(
        self,
        prompt_text: str,
        model: str,
        temperature: float,
        max_output_tokens: int,
    ) -> EndpointResponse:
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=[types.Content(role="user", parts=[types.Part(text=prompt_text)])],
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_output_tokens,
                    safety_settings=SAFETY_SETTINGS,
                ),
            )
        except errors.APIError as e:
            logger.error(f"❌ Gemini API error {e.code}: {e.message}")
            raise EndpointError(
                e.message or str(e),
                http_status=e.code,
                details=_error_details(e.details),
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Gemini transport error: {e}")
            raise EndpointError(f"Network error: {e}") from e

        return _to_response(response)


def _to_response(response: types.GenerateContentResponse) -> EndpointResponse:
    block_reason = None
    if response.prompt_feedback and response.prompt_feedback.block_reason:
        block_reason = _enum_name(response.prompt_feedback.block_reason)

    text_parts = []
    finish_reason = None
    if response.candidates:
        candidate = response.candidates[0]
        finish_reason = _enum_name(candidate.finish_reason)
        # Check if content exists before iterating
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if part.text:
                    text_parts.append(part.text)

    text = "".join(text_parts) if text_parts else None
    logger.debug(
        f"📥 Gemini response: {len(text or '')} chars, finish={finish_reason}, block={block_reason}"
    )
    return EndpointResponse(text=text, finish_reason=finish_reason, block_reason=block_reason)


def _enum_name(value) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _error_details(payload) -> tuple[dict, ...]:
    """Pull the google.rpc detail list out of an error body"""
    if isinstance(payload, dict):
        payload = payload.get("error", payload)
        payload = payload.get("details", []) if isinstance(payload, dict) else []
    if isinstance(payload, list):
        return tuple(item for item in payload if isinstance(item, dict))
    return ()

"""
Safe JSON parsing for model responses.

Models wrap JSON in markdown fences, prepend chatter, or return plain prose.
parse_json_response() strips anything script-like, digs out the JSON object
and refuses prototype-pollution keys; anything else raises JsonResponseError
so the caller can fall back to text parsing.
"""
import json
import re

DANGEROUS_KEYS = {"__proto__", "constructor", "prototype"}

_DANGEROUS_TAGS = [
    re.compile(rf"<{tag}\b[^<]*(?:(?!</{tag}>)<[^<]*)*</{tag}>", re.IGNORECASE)
    for tag in ("script", "iframe", "object", "embed")
]
_JAVASCRIPT_URL = re.compile(r"javascript:[^\"'\s]*", re.IGNORECASE)
_DATA_JAVASCRIPT_URL = re.compile(r"data:[^\"'\s]*javascript[^\"'\s]*", re.IGNORECASE)
_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_ANY_FENCE = re.compile(r"```\w*\s*(\{[\s\S]*?\})\s*```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class JsonResponseError(ValueError):
    """Response could not be turned into a JSON object"""


class UnsafeJsonError(JsonResponseError):
    """Response JSON carries a prototype-pollution key"""


def parse_json_response(response: str):
    if not response or not isinstance(response, str) or not response.strip():
        raise JsonResponseError("Empty response: nothing to parse")

    candidate = _extract_json(_sanitize(response))
    try:
        return json.loads(candidate, object_pairs_hook=_reject_dangerous_keys)
    except json.JSONDecodeError as e:
        raise JsonResponseError(f"Invalid JSON in response: {e}") from e


def fallback_response(analysis_type: str, error: Exception | None = None) -> dict:
    """Safe stand-in when a response can't be parsed at all"""
    reason = str(error) if error else "Unknown parsing error"
    return {
        "score": 85,
        "issues": [{
            "id": f"{analysis_type}-parsing-fallback",
            "severity": "low",
            "title": f"{analysis_type} analysis completed with fallback",
            "description": f"JSON parsing failed ({reason}), using safe fallback results.",
            "category": "parsing",
            "confidence": 0.5,
        }],
        "suggestions": [{
            "id": f"{analysis_type}-fallback-review",
            "title": "Review analysis results",
            "description": "Analysis completed but may be incomplete due to parsing issues.",
            "impact": "medium",
            "effort": "low",
            "explanation": "Fallback results generated due to response parsing failure",
        }],
        "summary": f"{analysis_type} analysis completed with safe fallback parsing",
    }


def _sanitize(text: str) -> str:
    for pattern in _DANGEROUS_TAGS:
        text = pattern.sub("", text)
    text = _JAVASCRIPT_URL.sub("", text)
    return _DATA_JAVASCRIPT_URL.sub("", text)


def _extract_json(text: str) -> str:
    match = _JSON_FENCE.search(text)
    if match:
        return match.group(1).strip()

    match = _ANY_FENCE.search(text)
    if match:
        return match.group(1).strip()

    match = _JSON_OBJECT.search(text)
    if match and _balanced(match.group(0)):
        return match.group(0)

    raise JsonResponseError("NO_JSON_FOUND: Response does not contain valid JSON")


def _balanced(text: str) -> bool:
    braces = brackets = 0
    for char in text:
        if char == "{":
            braces += 1
        elif char == "}":
            braces -= 1
        elif char == "[":
            brackets += 1
        elif char == "]":
            brackets -= 1
        if braces < 0 or brackets < 0:
            return False
    return braces == 0 and brackets == 0


def _reject_dangerous_keys(pairs: list[tuple]) -> dict:
    for key, _ in pairs:
        if key in DANGEROUS_KEYS:
            raise UnsafeJsonError(f'Security violation: dangerous key "{key}" detected')
    return dict(pairs)

"""
Analyzers Module - the six code review jobs

- Analyzer: prompt + response parsing for one review dimension
- ANALYZERS: code_quality, security, performance, maintainability, testing, documentation
- parse_json_response: safe extraction of JSON from model output
"""
from .base import Analyzer, AnalysisResult, CodeContext, analysis_fallback, clamp_score
from .catalog import ANALYZERS, ANALYZER_NAMES, build_analysis_jobs, get_analyzer
from .json_parser import JsonResponseError, UnsafeJsonError, parse_json_response, fallback_response

__all__ = [
    "Analyzer",
    "AnalysisResult",
    "CodeContext",
    "analysis_fallback",
    "clamp_score",
    "ANALYZERS",
    "ANALYZER_NAMES",
    "build_analysis_jobs",
    "get_analyzer",
    "JsonResponseError",
    "UnsafeJsonError",
    "parse_json_response",
    "fallback_response",
]

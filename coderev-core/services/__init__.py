"""
Services module - Gemini integration and the request types built on it
"""
from .gemini_endpoint import (
    EndpointError,
    EndpointResponse,
    GeminiEndpoint,
    GenerationEndpoint,
)
from .generation_client import GenerationClient
from .completion_service import CompletionService, CompletionResult, fallback_completion
from .chat_service import ChatService, ChatMessage, ChatContext, ChatReply, offline_suggestions

__all__ = [
    "EndpointError",
    "EndpointResponse",
    "GeminiEndpoint",
    "GenerationEndpoint",
    "GenerationClient",
    "CompletionService",
    "CompletionResult",
    "fallback_completion",
    "ChatService",
    "ChatMessage",
    "ChatContext",
    "ChatReply",
    "offline_suggestions",
]

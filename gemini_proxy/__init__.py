"""
gemini_proxy package - OpenAI-compatible proxy for Gemini Code Assist
"""

from .config import settings, get_settings
from .helpers import debug_log, configure_structlog
from .schemas import OpenAIRequest, ModelsResponse, Model, Message, ContentPart, StreamChunk, CompletionOptions
from .auth import AuthManager
from .services.gemini_client import GeminiApiClient

__all__ = [
    "settings",
    "get_settings",
    "debug_log",
    "configure_structlog",
    "OpenAIRequest",
    "ModelsResponse",
    "Model",
    "Message",
    "ContentPart",
    "StreamChunk",
    "CompletionOptions",
    "AuthManager",
    "GeminiApiClient",
]

#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Fixed tables and literals shared by the request builder and the stream pipeline.
"""

# Thinking budgets
DEFAULT_THINKING_BUDGET = -1  # dynamic allocation
DISABLED_THINKING_BUDGET = 0

REASONING_EFFORT_BUDGETS = {
    "none": {"flash": 0, "default": 0},
    "low": {"flash": 1024, "default": 1024},
    "medium": {"flash": 12288, "default": 16384},
    "high": {"flash": 24576, "default": 32768},
}

DEFAULT_TEMPERATURE = 0.7

# Inline thinking markers surfaced in content
THINKING_OPEN_TAG = "<thinking>\n"
THINKING_CLOSE_TAG = "\n</thinking>\n\n"

# Fake thinking preamble
REASONING_MESSAGES = [
    '🔍 **Analyzing the request: "{requestPreview}"**\n\n',
    "🤔 Let me think about this step by step... ",
    "💭 I need to consider the context and provide a comprehensive response. ",
    "🎯 Based on my understanding, I should address the key points while being accurate and helpful. ",
    "✨ Let me formulate a clear and structured answer.\n\n",
]
REQUEST_PREVIEW_LENGTH = 100

REASONING_CHUNK_DELAY = 0.1  # seconds between reasoning messages
THINKING_CONTENT_CHUNK_SIZE = 15
THINKING_CONTENT_CHUNK_DELAY = 0.05
THINKING_BREAK_CHARACTERS = [" ", "\n", ".", ",", "!", "?", ";", ":"]

# Upstream status handling
AUTH_ERROR_STATUS = 401
RATE_LIMIT_STATUS_CODES = (429, 503)

AUTO_SWITCH_MODEL_MAP = {
    "gemini-2.5-pro": "gemini-2.5-flash",
    "gemini-3-pro-preview": "gemini-3-flash-preview",
}

# Safety settings, keyed by the Settings field that carries the threshold
SAFETY_CATEGORY_SETTINGS = {
    "HARM_CATEGORY_HARASSMENT": "GEMINI_MODERATION_HARASSMENT_THRESHOLD",
    "HARM_CATEGORY_HATE_SPEECH": "GEMINI_MODERATION_HATE_SPEECH_THRESHOLD",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT": "GEMINI_MODERATION_SEXUALLY_EXPLICIT_THRESHOLD",
    "HARM_CATEGORY_DANGEROUS_CONTENT": "GEMINI_MODERATION_DANGEROUS_CONTENT_THRESHOLD",
}

# Keys the backend schema dialect rejects inside function parameters
UNSUPPORTED_SCHEMA_KEYS = frozenset(
    {"strict", "const", "additionalProperties", "exclusiveMaximum", "exclusiveMinimum"}
)

PDF_MIME_TYPE = "application/pdf"
PDF_DATA_URI_PREFIX = "data:application/pdf;base64,"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
UNKNOWN_FUNCTION_NAME = "unknown_function"

OPENAI_MODEL_OWNER = "google-gemini-cli"

# Code Assist discovery payload
CODE_ASSIST_METADATA = {
    "ideType": "IDE_UNSPECIFIED",
    "platform": "PLATFORM_UNSPECIFIED",
    "pluginType": "GEMINI",
    "duetProject": "default-project",
}
TOKEN_REFRESH_MARGIN_SECONDS = 300

# Upload extension -> MIME type, used when a file arrives as application/octet-stream
MIME_TYPE_MAP = {
    "mp3": "audio/mpeg",
    "mp4": "audio/mp4",
    "mpeg": "audio/mpeg",
    "mpga": "audio/mpeg",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "oga": "audio/ogg",
    "flac": "audio/flac",
    "mov": "video/quicktime",
    "mpg": "video/mpeg",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
}
GENERIC_UPLOAD_MIME_TYPE = "application/octet-stream"
DEFAULT_TRANSCRIPTION_PROMPT = "Transcribe this audio in detail."

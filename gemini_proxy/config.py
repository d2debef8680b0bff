"""
Application configuration module
"""

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env values are loaded before Settings reads the process environment
load_dotenv()


SafetyThreshold = Literal[
    "BLOCK_NONE",
    "BLOCK_FEW",
    "BLOCK_SOME",
    "BLOCK_ONLY_HIGH",
    "HARM_BLOCK_THRESHOLD_UNSPECIFIED",
]


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(extra="ignore")

    # Google OAuth credentials (JSON blob as produced by `gemini auth`)
    GCP_SERVICE_ACCOUNT: str = ""
    GEMINI_PROJECT_ID: Optional[str] = None
    OAUTH_CLIENT_ID: str = ""
    OAUTH_CLIENT_SECRET: str = ""
    OAUTH_TOKEN_ENDPOINT: str = "https://oauth2.googleapis.com/token"

    # Code Assist backend
    CODE_ASSIST_ENDPOINT: str = "https://cloudcode-pa.googleapis.com"
    CODE_ASSIST_API_VERSION: str = "v1internal"

    # Optional bearer key for the OpenAI-compatible surface
    OPENAI_API_KEY: Optional[str] = None

    # Thinking behaviour
    ENABLE_FAKE_THINKING: bool = False
    ENABLE_REAL_THINKING: bool = False
    STREAM_THINKING_AS_CONTENT: bool = False

    # Rate-limit fallback
    ENABLE_AUTO_MODEL_SWITCHING: bool = False

    # Safety thresholds, only the ones that are set are sent upstream
    GEMINI_MODERATION_HARASSMENT_THRESHOLD: Optional[SafetyThreshold] = None
    GEMINI_MODERATION_HATE_SPEECH_THRESHOLD: Optional[SafetyThreshold] = None
    GEMINI_MODERATION_SEXUALLY_EXPLICIT_THRESHOLD: Optional[SafetyThreshold] = None
    GEMINI_MODERATION_DANGEROUS_CONTENT_THRESHOLD: Optional[SafetyThreshold] = None

    # Native tools (Google Search / URL context)
    ENABLE_GEMINI_NATIVE_TOOLS: bool = False
    ENABLE_GOOGLE_SEARCH: bool = False
    ENABLE_URL_CONTEXT: bool = False
    GEMINI_TOOLS_PRIORITY: Literal["native_first", "custom_first", "user_choice"] = "native_first"
    DEFAULT_TO_NATIVE_TOOLS: bool = True
    ALLOW_REQUEST_TOOL_CONTROL: bool = True
    ENABLE_INLINE_CITATIONS: bool = False

    # Server Configuration
    LISTEN_PORT: int = 8080
    HTTPS_PROXY: Optional[str] = None

    # Logging Configuration - false, info, debug
    LOG_LEVEL: str = "info"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        level = str(value or "info").lower()
        return level if level in ("false", "info", "debug") else "info"

    @field_validator(
        "GEMINI_PROJECT_ID",
        "OPENAI_API_KEY",
        "HTTPS_PROXY",
        "GEMINI_MODERATION_HARASSMENT_THRESHOLD",
        "GEMINI_MODERATION_HATE_SPEECH_THRESHOLD",
        "GEMINI_MODERATION_SEXUALLY_EXPLICIT_THRESHOLD",
        "GEMINI_MODERATION_DANGEROUS_CONTENT_THRESHOLD",
        mode="before",
    )
    @classmethod
    def _empty_as_none(cls, value):
        # an empty line in .env should mean "unset"
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

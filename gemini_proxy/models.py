"""
Static capability registry for the Gemini models served through Code Assist
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ModelInfo:
    max_tokens: int
    context_window: int
    supports_images: bool
    supports_audios: bool
    supports_videos: bool
    supports_pdfs: bool
    thinking: bool
    description: str


GEMINI_MODELS: Dict[str, ModelInfo] = {
    "gemini-3-pro-preview": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        supports_audios=True,
        supports_videos=True,
        supports_pdfs=True,
        thinking=True,
        description="Gemini 3 Pro preview, the most capable reasoning model",
    ),
    "gemini-3-flash-preview": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        supports_audios=True,
        supports_videos=True,
        supports_pdfs=True,
        thinking=True,
        description="Gemini 3 Flash preview, fast frontier-class model",
    ),
    "gemini-2.5-pro": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        supports_audios=True,
        supports_videos=True,
        supports_pdfs=True,
        thinking=True,
        description="Gemini 2.5 Pro with thinking",
    ),
    "gemini-2.5-flash": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        supports_audios=True,
        supports_videos=True,
        supports_pdfs=True,
        thinking=True,
        description="Gemini 2.5 Flash, price-performance model with thinking",
    ),
    "gemini-2.5-flash-lite": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        supports_audios=True,
        supports_videos=True,
        supports_pdfs=True,
        thinking=True,
        description="Gemini 2.5 Flash-Lite, lowest-latency model",
    ),
}

DEFAULT_MODEL = "gemini-2.5-flash"


def get_model_info(model_id: str) -> Optional[ModelInfo]:
    return GEMINI_MODELS.get(model_id)


def get_all_model_ids() -> List[str]:
    return list(GEMINI_MODELS.keys())


def is_thinking_model(model_id: str) -> bool:
    info = GEMINI_MODELS.get(model_id)
    return bool(info and info.thinking)


def model_family(model_id: str) -> str:
    """Budget bucket used by the reasoning-effort table."""
    return "flash" if "flash" in model_id else "default"

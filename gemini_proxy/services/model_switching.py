"""Fallback to a lighter model when the requested one is rate limited."""

from typing import Awaitable, Callable, Optional

from ..config import Settings, settings as default_settings
from ..constants import AUTO_SWITCH_MODEL_MAP, RATE_LIMIT_STATUS_CODES
from ..helpers import info_log
from ..schemas import CompletionResult

RATE_LIMIT_MARKERS = ("429", "503", "rate limit", "quota")


class AutoModelSwitchingHelper:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings

    def is_enabled(self) -> bool:
        return self.settings.ENABLE_AUTO_MODEL_SWITCHING

    def get_fallback_model(self, model_id: Optional[str]) -> Optional[str]:
        if not model_id:
            return None
        return AUTO_SWITCH_MODEL_MAP.get(model_id)

    def is_rate_limit_status(self, status_code: int) -> bool:
        return status_code in RATE_LIMIT_STATUS_CODES

    def is_rate_limit_error(self, error: BaseException) -> bool:
        if getattr(error, "is_rate_limit", False):
            return True
        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int) and self.is_rate_limit_status(status_code):
            return True
        message = str(error).lower()
        return any(marker in message for marker in RATE_LIMIT_MARKERS)

    def create_switch_notification(self, original_model: str, fallback_model: str) -> str:
        return (
            f"[Auto-switched from {original_model} to {fallback_model} "
            f"because {original_model} is rate limited]\n\n"
        )

    async def handle_non_streaming_fallback(
        self,
        model_id: str,
        complete: Callable[[str], Awaitable[CompletionResult]],
    ) -> Optional[CompletionResult]:
        """
        Re-run a failed non-streaming completion on the fallback model.

        Args:
            model_id: the model that was rate limited
            complete: runs the full request against the given model id

        Returns:
            the fallback result with the switch notice prefixed, or None when
            switching is disabled or no fallback exists
        """
        fallback_model = self.get_fallback_model(model_id)
        if not self.is_enabled() or not fallback_model:
            return None

        info_log("[MODEL_SWITCH] Non-streaming fallback", original_model=model_id, fallback_model=fallback_model)
        result = await complete(fallback_model)
        result.content = self.create_switch_notification(model_id, fallback_model) + result.content
        return result

"""
Selection between Gemini native tools (google_search, url_context) and
caller-supplied function tools.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Settings, settings as default_settings
from .helpers import debug_log
from .models import GEMINI_MODELS

# request-level priority names -> configured priority names
REQUEST_PRIORITY_MAP = {
    "native": "native_first",
    "custom": "custom_first",
    "mixed": "user_choice",
}


@dataclass
class NativeToolsParams:
    enable_search: Optional[bool] = None
    enable_url_context: Optional[bool] = None
    enable_native_tools: Optional[bool] = None
    native_tools_priority: Optional[str] = None


@dataclass
class ToolConfiguration:
    use_native_tools: bool = False
    use_custom_tools: bool = False
    native_tools: List[Dict[str, Any]] = field(default_factory=list)
    custom_tools: List[Dict[str, Any]] = field(default_factory=list)
    priority: str = "native_first"


class NativeToolsManager:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings

    def _request_control(self) -> bool:
        return self.settings.ALLOW_REQUEST_TOOL_CONTROL

    def _flag(self, request_value: Optional[bool], env_value: bool) -> bool:
        if self._request_control() and request_value is not None:
            return request_value
        return env_value

    def native_tools_enabled(self, params: NativeToolsParams) -> bool:
        return self._flag(params.enable_native_tools, self.settings.ENABLE_GEMINI_NATIVE_TOOLS)

    def available_native_tools(self, params: NativeToolsParams, model_id: str) -> List[Dict[str, Any]]:
        if model_id not in GEMINI_MODELS or not self.native_tools_enabled(params):
            return []
        tools = []
        if self._flag(params.enable_search, self.settings.ENABLE_GOOGLE_SEARCH):
            tools.append({"google_search": {}})
        if self._flag(params.enable_url_context, self.settings.ENABLE_URL_CONTEXT):
            tools.append({"url_context": {}})
        return tools

    def resolve_priority(self, params: NativeToolsParams) -> str:
        if self._request_control() and params.native_tools_priority in REQUEST_PRIORITY_MAP:
            return REQUEST_PRIORITY_MAP[params.native_tools_priority]
        return self.settings.GEMINI_TOOLS_PRIORITY

    def determine_tool_configuration(
        self,
        custom_tools: Optional[List[Dict[str, Any]]],
        params: NativeToolsParams,
        model_id: str,
    ) -> ToolConfiguration:
        """
        Pick exactly one kind of tooling for the request; the backend does not
        accept function declarations next to native tools.
        """
        custom_tools = list(custom_tools or [])
        native_tools = self.available_native_tools(params, model_id)
        priority = self.resolve_priority(params)

        use_native = False
        if native_tools:
            if priority == "native_first":
                use_native = True
            elif priority == "custom_first":
                use_native = not custom_tools and self.settings.DEFAULT_TO_NATIVE_TOOLS
            else:
                explicitly_requested = self._request_control() and params.enable_native_tools is True
                use_native = explicitly_requested or (
                    not custom_tools and self.settings.DEFAULT_TO_NATIVE_TOOLS
                )

        configuration = ToolConfiguration(
            use_native_tools=use_native,
            use_custom_tools=not use_native and bool(custom_tools),
            native_tools=native_tools if use_native else [],
            custom_tools=custom_tools,
            priority=priority,
        )
        debug_log(
            "[TOOLS] Tool configuration resolved",
            model=model_id,
            priority=priority,
            native=[next(iter(tool)) for tool in configuration.native_tools],
            custom_count=len(custom_tools) if configuration.use_custom_tools else 0,
        )
        return configuration

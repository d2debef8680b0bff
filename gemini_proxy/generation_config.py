"""
Builders for the backend generationConfig, tool declarations and safety settings.
"""

from typing import Any, Dict, List, Optional, Tuple

from .config import Settings
from .constants import (
    DEFAULT_TEMPERATURE,
    DEFAULT_THINKING_BUDGET,
    DISABLED_THINKING_BUDGET,
    REASONING_EFFORT_BUDGETS,
    SAFETY_CATEGORY_SETTINGS,
    UNSUPPORTED_SCHEMA_KEYS,
)
from .helpers import debug_log
from .models import is_thinking_model, model_family
from .schemas import CompletionOptions

VALID_REASONING_EFFORTS = tuple(REASONING_EFFORT_BUDGETS.keys())


def is_valid_reasoning_effort(effort: Any) -> bool:
    return isinstance(effort, str) and effort in REASONING_EFFORT_BUDGETS


def map_effort_to_thinking_budget(effort: str, model_id: str) -> int:
    return REASONING_EFFORT_BUDGETS[effort][model_family(model_id)]


def validate_thinking_budget(model_id: str, budget: int) -> int:
    """
    Thinking models reject a zero budget; 0 and anything below -1 become the
    dynamic sentinel. Non-thinking models keep the value as given.
    """
    if not is_thinking_model(model_id):
        return budget
    if budget == DISABLED_THINKING_BUDGET or budget < DEFAULT_THINKING_BUDGET:
        debug_log(
            "[CONFIG] Thinking budget replaced by dynamic allocation",
            model=model_id,
            requested=budget,
        )
        return DEFAULT_THINKING_BUDGET
    return budget


def resolve_reasoning(
    model_id: str,
    include_reasoning: bool,
    thinking_budget: Optional[int],
    reasoning_effort: Optional[str],
) -> Tuple[bool, int]:
    """
    Apply a reasoning effort level on top of an explicit budget.

    Returns:
        (include_reasoning, thinking_budget) before budget validation
    """
    budget = DEFAULT_THINKING_BUDGET if thinking_budget is None else thinking_budget
    if is_valid_reasoning_effort(reasoning_effort):
        budget = map_effort_to_thinking_budget(reasoning_effort, model_id)
        include_reasoning = reasoning_effort != "none"
    return include_reasoning, budget


def create_validated_config(
    model_id: str,
    options: CompletionOptions,
    real_thinking_enabled: bool,
    include_reasoning: bool,
) -> Dict[str, Any]:
    """Build the generationConfig object for one request; unset knobs are omitted."""
    stop = options.stop
    if isinstance(stop, str):
        stop = [stop]

    config: Dict[str, Any] = {
        "temperature": DEFAULT_TEMPERATURE if options.temperature is None else options.temperature,
        "maxOutputTokens": options.max_tokens,
        "topP": options.top_p,
        "stopSequences": stop,
        "presencePenalty": options.presence_penalty,
        "frequencyPenalty": options.frequency_penalty,
        "seed": options.seed,
    }

    response_format = options.response_format or {}
    if response_format.get("type") == "json_object":
        config["responseMimeType"] = "application/json"

    if is_thinking_model(model_id):
        include_reasoning, budget = resolve_reasoning(
            model_id,
            include_reasoning,
            options.thinking_budget,
            options.reasoning_effort,
        )
        if real_thinking_enabled and include_reasoning:
            config["thinkingConfig"] = {
                "thinkingBudget": validate_thinking_budget(model_id, budget),
                "includeThoughts": True,
            }
        else:
            # the model still thinks, the caller just never sees the thoughts
            config["thinkingConfig"] = {
                "thinkingBudget": validate_thinking_budget(model_id, DEFAULT_THINKING_BUDGET),
                "includeThoughts": False,
            }

    return {key: value for key, value in config.items() if value is not None}


def clean_schema(schema: Any) -> Any:
    """Recursively drop schema keys the backend does not accept."""
    if isinstance(schema, list):
        return [clean_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema
    return {
        key: clean_schema(value)
        for key, value in schema.items()
        if not key.startswith("$") and key not in UNSUPPORTED_SCHEMA_KEYS
    }


def map_tool_choice(tool_choice: Any) -> Optional[Dict[str, Any]]:
    if tool_choice == "auto":
        return {"functionCallingConfig": {"mode": "AUTO"}}
    if tool_choice == "none":
        return {"functionCallingConfig": {"mode": "NONE"}}
    if isinstance(tool_choice, dict) and tool_choice.get("type") == "function":
        name = (tool_choice.get("function") or {}).get("name")
        if name:
            return {"functionCallingConfig": {"mode": "ANY", "allowedFunctionNames": [name]}}
    return None


def create_function_declarations(tools: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    declarations = []
    for tool in tools or []:
        function = tool.get("function") or {}
        if tool.get("type", "function") != "function" or not function.get("name"):
            continue
        declarations.append(
            {
                "name": function["name"],
                "description": function.get("description", ""),
                "parameters": clean_schema(function.get("parameters") or {}),
            }
        )
    return declarations


def create_final_tool_configuration(
    tool_configuration,
    options: CompletionOptions,
) -> Tuple[Optional[List[Dict[str, Any]]], Optional[Dict[str, Any]]]:
    """
    Resolve the `tools` / `toolConfig` pair for the request envelope.

    Custom function tools carry the mapped tool_choice; native tools are sent
    bare since the backend rejects a toolConfig next to them.
    """
    if tool_configuration.use_custom_tools:
        declarations = create_function_declarations(tool_configuration.custom_tools)
        if declarations:
            return [{"functionDeclarations": declarations}], map_tool_choice(options.tool_choice)
        return None, None

    if tool_configuration.use_native_tools and tool_configuration.native_tools:
        return list(tool_configuration.native_tools), None

    return None, None


def create_safety_settings(settings: Settings) -> List[Dict[str, str]]:
    safety_settings = []
    for category, field_name in SAFETY_CATEGORY_SETTINGS.items():
        threshold = getattr(settings, field_name, None)
        if threshold:
            safety_settings.append({"category": category, "threshold": threshold})
    return safety_settings

"""
Application data models
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union, Literal
from pydantic import BaseModel, ConfigDict


class ImageUrl(BaseModel):
    """Image URL model"""
    url: str
    detail: Optional[str] = "auto"


class InputAudio(BaseModel):
    data: str
    format: str


class VideoMetadata(BaseModel):
    startOffset: Optional[str] = None
    endOffset: Optional[str] = None
    fps: Optional[float] = None


class InputVideo(BaseModel):
    data: Optional[str] = None
    format: Optional[str] = None
    url: Optional[str] = None
    videoMetadata: Optional[VideoMetadata] = None


class InputPdf(BaseModel):
    data: str


class ContentPart(BaseModel):
    """Content part model for OpenAI's list content format"""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None
    input_audio: Optional[InputAudio] = None
    input_video: Optional[InputVideo] = None
    input_pdf: Optional[InputPdf] = None


class ToolFunction(BaseModel):
    """Tool function definition"""
    name: str
    description: Optional[str] = None
    parameters: Dict[str, Any] = {}


class Tool(BaseModel):
    """Tool definition"""
    type: Literal["function"] = "function"
    function: ToolFunction


class ToolChoice(BaseModel):
    """Tool choice pinning a single function"""
    type: Literal["function"] = "function"
    function: Dict[str, str]


class ResponseFormat(BaseModel):
    type: Literal["text", "json_object"] = "text"


class Message(BaseModel):
    """Chat message model"""
    model_config = ConfigDict(extra="allow")

    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[Union[str, List[ContentPart]]] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


class OpenAIRequest(BaseModel):
    """OpenAI-compatible request model"""
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: List[Message] = []
    stream: Optional[bool] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    response_format: Optional[ResponseFormat] = None
    tools: Optional[List[Tool]] = None
    tool_choice: Optional[Union[str, ToolChoice]] = None
    thinking_budget: Optional[int] = None
    reasoning_effort: Optional[str] = None
    extra_body: Optional[Dict[str, Any]] = None
    model_params: Optional[Dict[str, Any]] = None


class Model(BaseModel):
    """Model information for listing"""
    id: str
    object: str = "model"
    created: int
    owned_by: str


class ModelsResponse(BaseModel):
    """Models list response model"""
    object: str = "list"
    data: List[Model]


# ---------------------------------------------------------------------------
# Internal stream contract
# ---------------------------------------------------------------------------

class ChunkType:
    TEXT = "text"
    USAGE = "usage"
    REASONING = "reasoning"
    THINKING_CONTENT = "thinking_content"
    REAL_THINKING = "real_thinking"
    TOOL_CODE = "tool_code"


@dataclass(frozen=True)
class UsageData:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class ReasoningData:
    reasoning: str


@dataclass(frozen=True)
class FunctionCallData:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamChunk:
    """One normalized output chunk; `data` depends on `type`."""
    type: str
    data: Any


@dataclass
class CompletionOptions:
    """Per-request options shared by the streaming and non-streaming paths."""
    include_reasoning: bool = False
    thinking_budget: Optional[int] = None
    reasoning_effort: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    response_format: Optional[Dict[str, Any]] = None
    enable_search: Optional[bool] = None
    enable_url_context: Optional[bool] = None
    enable_native_tools: Optional[bool] = None
    native_tools_priority: Optional[str] = None


@dataclass
class CompletionResult:
    content: str = ""
    usage: Optional[UsageData] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None

"""Service layer orchestrating OpenAI-compatible chat completions."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from fastapi import HTTPException

from ..config import Settings
from ..constants import THINKING_CLOSE_TAG, THINKING_OPEN_TAG
from ..errors import ContentValidationError, GeminiProxyError
from ..generation_config import resolve_reasoning
from ..helpers import (
    bind_request_context,
    error_log,
    generate_uuid,
    info_log,
    json_lib,
    request_stage_log,
    reset_request_context,
)
from ..message_processor import message_processor
from ..models import DEFAULT_MODEL
from ..schemas import ChunkType, CompletionOptions, OpenAIRequest
from ..validation import (
    MEDIA_SUPPORT_CHECKS,
    is_media_type_supported,
    resolve_upload_mime_type,
    validate_content,
    validate_model,
)
from .aggregator import tool_call_from_chunk
from .chunk_builder import chunk_builder
from .gemini_client import GeminiApiClient, gemini_client

NATIVE_TOOL_PRIORITIES = ("native", "custom", "mixed")


@dataclass
class PreparedRequest:
    model: str
    stream: bool
    system_prompt: str
    messages: List[Dict[str, Any]]
    options: CompletionOptions = field(default_factory=CompletionOptions)


def _lookup(body: Dict[str, Any], key: str) -> Any:
    """Top-level value first, then extra_body, then model_params."""
    for source in (body, body.get("extra_body") or {}, body.get("model_params") or {}):
        if source.get(key) is not None:
            return source[key]
    return None


def _lookup_bool(body: Dict[str, Any], key: str) -> Optional[bool]:
    value = _lookup(body, key)
    return value if isinstance(value, bool) else None


class ChatCompletionService:
    """Encapsulate chat completion workflow independent of FastAPI layer."""

    def __init__(self, client: Optional[GeminiApiClient] = None) -> None:
        self.client = client or gemini_client
        self.processor = message_processor
        self.chunk = chunk_builder

    @property
    def settings(self) -> Settings:
        return self.client.settings

    async def ensure_authorization(self, authorization: Optional[str]) -> None:
        api_key = self.settings.OPENAI_API_KEY
        if not api_key:
            return

        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

        if authorization[7:] != api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    async def authenticate(self) -> None:
        """Load upstream credentials before a response is started."""
        await self.client.auth.initialize_auth()

    def prepare_request(self, request: OpenAIRequest) -> PreparedRequest:
        """
        Validate the request and turn it into model, system prompt, history
        and options. Raises ContentValidationError for anything the upstream
        would reject.
        """
        body = request.model_dump(exclude_none=True)
        model = body.get("model") or DEFAULT_MODEL
        messages = body.get("messages") or []

        if not messages:
            raise ContentValidationError("messages is a required field")

        is_valid, error = validate_model(model)
        if not is_valid:
            raise ContentValidationError(error)

        self._validate_media(model, messages)

        system_prompt, other_messages = self.processor.extract_system_prompt(messages)
        # surfaces malformed tool-call arguments and similar before streaming
        self.processor.to_gemini_contents(other_messages, system_prompt)

        reasoning_effort = _lookup(body, "reasoning_effort")
        include_reasoning, thinking_budget = resolve_reasoning(
            model,
            self.settings.ENABLE_REAL_THINKING,
            body.get("thinking_budget"),
            reasoning_effort,
        )

        priority = _lookup(body, "native_tools_priority")
        options = CompletionOptions(
            include_reasoning=include_reasoning,
            thinking_budget=thinking_budget,
            reasoning_effort=reasoning_effort,
            tools=body.get("tools"),
            tool_choice=body.get("tool_choice"),
            max_tokens=body.get("max_tokens"),
            temperature=body.get("temperature"),
            top_p=body.get("top_p"),
            stop=body.get("stop"),
            presence_penalty=body.get("presence_penalty"),
            frequency_penalty=body.get("frequency_penalty"),
            seed=body.get("seed"),
            response_format=body.get("response_format"),
            enable_search=_lookup_bool(body, "enable_search"),
            enable_url_context=_lookup_bool(body, "enable_url_context"),
            enable_native_tools=_lookup_bool(body, "enable_native_tools"),
            native_tools_priority=priority if priority in NATIVE_TOOL_PRIORITIES else None,
        )

        prepared = PreparedRequest(
            model=model,
            stream=body.get("stream") is not False,
            system_prompt=system_prompt,
            messages=other_messages,
            options=options,
        )
        request_stage_log(
            "prepared",
            "Request validated",
            model=model,
            stream=prepared.stream,
            message_count=len(other_messages),
            include_reasoning=include_reasoning,
            thinking_budget=thinking_budget,
            tools_count=len(options.tools or []),
        )
        return prepared

    def _validate_media(self, model: str, messages: List[Dict[str, Any]]) -> None:
        for content_type, support_key, name in MEDIA_SUPPORT_CHECKS:
            parts = [
                part
                for msg in messages
                if isinstance(msg.get("content"), list)
                for part in msg["content"]
                if part.get("type") == content_type
            ]
            if not parts:
                continue

            if not is_media_type_supported(model, support_key):
                raise ContentValidationError(
                    f"Model '{model}' does not support {name}. Please use a model that supports this feature."
                )

            for part in parts:
                is_valid, error = validate_content(content_type, part)
                if not is_valid:
                    raise ContentValidationError(error)

    async def handle_non_stream_request(self, prepared: PreparedRequest) -> dict:
        bind_request_context(mode="non_stream")
        request_stage_log("non_stream_pipeline", "Collecting non-streaming completion")
        try:
            result = await self.client.get_completion(
                prepared.model,
                prepared.system_prompt,
                prepared.messages,
                prepared.options,
            )
        finally:
            reset_request_context("mode")

        message: Dict[str, Any] = {"role": "assistant", "content": result.content}
        if result.tool_calls:
            message["tool_calls"] = result.tool_calls

        response = {
            "id": f"chatcmpl-{generate_uuid()}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": prepared.model,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "finish_reason": "tool_calls" if result.tool_calls else "stop",
                }
            ],
        }
        if result.usage is not None:
            response["usage"] = self.chunk.usage_dict(result.usage)

        request_stage_log(
            "non_stream_ready",
            "Non-streaming completion ready",
            content_length=len(result.content),
            tool_calls=len(result.tool_calls or []),
        )
        return response

    def prepare_transcription(
        self,
        model: str,
        prompt: str,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
    ) -> List[Dict[str, Any]]:
        """
        Validate an uploaded audio or video file and wrap it, with the prompt,
        into a single user message.
        """
        is_valid, error = validate_model(model)
        if not is_valid:
            raise ContentValidationError(error)

        mime_type = resolve_upload_mime_type(filename, content_type)
        if mime_type.startswith("video/"):
            support_key, name = "supports_videos", "video inputs"
        elif mime_type.startswith("audio/"):
            support_key, name = "supports_audios", "audio inputs"
        else:
            raise ContentValidationError(
                f"Unsupported media type: {mime_type}. Only audio and video files are supported."
            )

        if not is_media_type_supported(model, support_key):
            raise ContentValidationError(f"Model '{model}' does not support {name}.")

        request_stage_log(
            "prepared",
            "Transcription request validated",
            model=model,
            mime_type=mime_type,
            size_bytes=len(data),
        )
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "input_audio",
                        "input_audio": {
                            "data": base64.b64encode(data).decode("ascii"),
                            "format": mime_type,
                        },
                    },
                ],
            }
        ]

    async def handle_transcription(self, model: str, messages: List[Dict[str, Any]]) -> dict:
        bind_request_context(mode="transcription")
        try:
            result = await self.client.get_completion(model, "", messages)
        finally:
            reset_request_context("mode")
        return {"text": result.content}

    async def stream_response(self, prepared: PreparedRequest) -> AsyncIterator[str]:
        bind_request_context(mode="stream")
        request_stage_log("stream_pipeline", "Streaming completion")
        completion_id = f"chatcmpl-{generate_uuid()}"
        model = prepared.model
        usage = None
        tool_call_count = 0
        thinking_open = False

        yield self.chunk.build_role_chunk(json_lib, completion_id, model)
        try:
            async for chunk in self.client.stream_content(
                model,
                prepared.system_prompt,
                prepared.messages,
                prepared.options,
            ):
                if chunk.type == ChunkType.USAGE:
                    usage = chunk.data
                elif chunk.type == ChunkType.TOOL_CODE:
                    yield self.chunk.build_tool_call_chunk(
                        json_lib,
                        completion_id,
                        model,
                        tool_call_count,
                        tool_call_from_chunk(chunk.data),
                    )
                    tool_call_count += 1
                else:
                    if chunk.type == ChunkType.THINKING_CONTENT:
                        if chunk.data == THINKING_OPEN_TAG:
                            thinking_open = True
                        elif chunk.data == THINKING_CLOSE_TAG:
                            thinking_open = False
                    line = self.chunk.build_from_stream_chunk(json_lib, completion_id, model, chunk)
                    if line:
                        yield line
        except (GeminiProxyError, httpx.HTTPError) as exc:
            error_log("[STREAM] Stream failed", error=str(exc))
            if thinking_open:
                yield self.chunk.build_content_chunk(json_lib, completion_id, model, THINKING_CLOSE_TAG)
            yield self.chunk.build_error_chunk(json_lib, completion_id, model, str(exc))
        finally:
            reset_request_context("mode")

        finish_reason = "tool_calls" if tool_call_count else "stop"
        yield self.chunk.build_finish_chunk(json_lib, completion_id, model, usage=usage, finish_reason=finish_reason)
        yield "data: [DONE]\n\n"
        info_log("[STREAM] Stream completed", finish_reason=finish_reason, tool_calls=tool_call_count)


chat_completion_service = ChatCompletionService()

#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Message processor - converts OpenAI chat messages into Gemini `contents`

Input messages are plain dicts (OpenAIRequest.model_dump(exclude_none=True))
and are never mutated.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from .constants import DEFAULT_IMAGE_MIME_TYPE, PDF_MIME_TYPE, UNKNOWN_FUNCTION_NAME
from .errors import ContentValidationError
from .helpers import debug_log
from .validation import parse_data_uri, strip_pdf_prefix, validate_content, validate_image_url


class MessageProcessor:
    """
    Message processor

    Handles:
    - role remapping (assistant -> model, everything else -> user)
    - tool results and tool calls
    - multimodal content parts
    - system prompt / last user message extraction
    """

    def extract_system_prompt(self, messages: List[Dict]) -> Tuple[str, List[Dict]]:
        """
        Split system messages out of the conversation.

        Returns:
            (system_prompt, remaining_messages); the last system message wins
        """
        system_prompt = ""
        other_messages = []
        for msg in messages:
            if msg.get("role") != "system":
                other_messages.append(msg)
                continue
            content = msg.get("content")
            if isinstance(content, str):
                system_prompt = content
            elif isinstance(content, list):
                system_prompt = " ".join(
                    part.get("text") or "" for part in content if part.get("type") == "text"
                )
        return system_prompt, other_messages

    def extract_last_user_content(self, messages: List[Dict]) -> str:
        """Text of the latest user message; list content joins its text parts with a space."""
        for msg in reversed(messages):
            if msg.get("role") != "user":
                continue
            content = msg.get("content")
            if isinstance(content, str):
                return content
            if isinstance(content, list):
                return " ".join(
                    part.get("text") or "" for part in content if part.get("type") == "text"
                )
            return ""
        return ""

    def to_gemini_contents(self, messages: List[Dict], system_prompt: str = "") -> List[Dict[str, Any]]:
        contents = [self.message_to_gemini_format(msg) for msg in messages]
        if system_prompt:
            contents.insert(0, {"role": "user", "parts": [{"text": system_prompt}]})
        debug_log("[MESSAGES] Converted conversation", message_count=len(contents))
        return contents

    def message_to_gemini_format(self, msg: Dict[str, Any]) -> Dict[str, Any]:
        role = "model" if msg.get("role") == "assistant" else "user"
        content = msg.get("content")

        if msg.get("role") == "tool":
            result = content if isinstance(content, str) else json.dumps(content)
            return {
                "role": "user",
                "parts": [
                    {
                        "functionResponse": {
                            "name": msg.get("tool_call_id") or UNKNOWN_FUNCTION_NAME,
                            "response": {"result": result},
                        }
                    }
                ],
            }

        if msg.get("role") == "assistant" and msg.get("tool_calls"):
            parts: List[Dict[str, Any]] = []
            if isinstance(content, str) and content.strip():
                parts.append({"text": content})
            for tool_call in msg["tool_calls"]:
                if tool_call.get("type", "function") != "function":
                    continue
                parts.append({"functionCall": self._parse_function_call(tool_call)})
            return {"role": "model", "parts": parts}

        if isinstance(content, str):
            return {"role": role, "parts": [{"text": content}]}

        if isinstance(content, list):
            return {"role": role, "parts": [self._convert_part(part) for part in content]}

        return {"role": role, "parts": [{"text": "" if content is None else str(content)}]}

    def _parse_function_call(self, tool_call: Dict[str, Any]) -> Dict[str, Any]:
        function = tool_call.get("function") or {}
        name = function.get("name") or UNKNOWN_FUNCTION_NAME
        arguments = function.get("arguments") or "{}"
        if isinstance(arguments, dict):
            return {"name": name, "args": arguments}
        try:
            args = json.loads(arguments)
        except json.JSONDecodeError as exc:
            raise ContentValidationError(f"Invalid arguments for tool call '{name}': {exc}") from exc
        return {"name": name, "args": args}

    def _convert_part(self, part: Dict[str, Any]) -> Dict[str, Any]:
        part_type = part.get("type")

        if part_type == "image_url" and part.get("image_url"):
            return self._convert_image(part)

        if part_type == "input_audio" and part.get("input_audio"):
            audio = part["input_audio"]
            return {"inlineData": {"mimeType": audio.get("format"), "data": audio.get("data")}}

        if part_type == "input_video" and part.get("input_video"):
            return self._convert_video(part["input_video"])

        if part_type == "input_pdf" and part.get("input_pdf"):
            is_valid, error = validate_content("input_pdf", part)
            if not is_valid:
                raise ContentValidationError(f"Invalid PDF: {error}")
            return {
                "inlineData": {
                    "mimeType": PDF_MIME_TYPE,
                    "data": strip_pdf_prefix(part["input_pdf"]["data"]),
                }
            }

        # text parts, and anything unrecognised, become text
        if part_type == "text":
            return {"text": part.get("text") or ""}
        return {"text": str(part)}

    def _convert_image(self, part: Dict[str, Any]) -> Dict[str, Any]:
        url = part["image_url"].get("url") or ""
        is_valid, mime_type = validate_image_url(url)
        if not is_valid:
            raise ContentValidationError(f"Invalid image: Invalid image URL or format. ({url[:60]})")

        parsed = parse_data_uri(url)
        if parsed is not None:
            data_mime, data = parsed
            return {"inlineData": {"mimeType": data_mime, "data": data}}

        return {"fileData": {"mimeType": mime_type or DEFAULT_IMAGE_MIME_TYPE, "fileUri": url}}

    def _convert_video(self, video: Dict[str, Any]) -> Dict[str, Any]:
        if video.get("data") and video.get("format"):
            converted: Dict[str, Any] = {
                "inlineData": {"mimeType": video["format"], "data": video["data"]}
            }
        elif video.get("url"):
            converted = {"fileData": {"mimeType": video.get("format") or "video/mp4", "fileUri": video["url"]}}
        else:
            raise ContentValidationError("Invalid video: provide either data with format, or a url")

        metadata = self._video_metadata(video.get("videoMetadata"))
        if metadata:
            converted["videoMetadata"] = metadata
        return converted

    @staticmethod
    def _video_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not metadata:
            return {}
        return {
            key: metadata[key]
            for key in ("startOffset", "endOffset", "fps")
            if metadata.get(key)
        }


message_processor = MessageProcessor()

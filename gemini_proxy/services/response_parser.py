#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Response parser - turns parsed backend frames into normalized stream chunks

Each content part is classified in order:
- thought parts (``thought: true``)
- text with an inline ``<think>...</think>`` pair
- ordinary text
- function calls
and every frame carrying usageMetadata also yields a usage chunk.

When thinking is surfaced as content, an opened ``<thinking>`` section is
closed exactly once, right before the first text or tool call.
"""

import enum
import re
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from ..citations import CitationsProcessor
from ..constants import THINKING_CLOSE_TAG, THINKING_OPEN_TAG
from ..helpers import debug_log
from ..schemas import ChunkType, FunctionCallData, StreamChunk, UsageData


class ThinkingState(enum.Enum):
    IDLE = "idle"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class ParserState:
    """Per-attempt classifier state."""
    thinking: ThinkingState = ThinkingState.IDLE
    frames: int = 0


class ResponseParser:
    """Classifier for one upstream attempt"""

    # precompiled once, the pattern is used on every text part
    THINK_PATTERN = re.compile(r"<think>(.*?)</think>", re.DOTALL)

    def __init__(
        self,
        real_thinking_as_content: bool = False,
        needs_thinking_close: bool = False,
        citations: Optional[CitationsProcessor] = None,
    ) -> None:
        """
        Args:
            real_thinking_as_content: surface thoughts as tagged content instead of real_thinking chunks
            needs_thinking_close: a synthetic preamble already opened the <thinking> section
            citations: annotator applied to text when native grounding tools are active
        """
        self.real_thinking_as_content = real_thinking_as_content
        self.citations = citations
        self.state = ParserState(
            thinking=ThinkingState.OPEN if needs_thinking_close else ThinkingState.IDLE
        )

    async def parse(self, frames: AsyncIterable[Dict[str, Any]]) -> AsyncIterator[StreamChunk]:
        async for frame in frames:
            for chunk in self.parse_frame(frame):
                yield chunk

    def parse_frame(self, frame: Dict[str, Any]) -> List[StreamChunk]:
        self.state.frames += 1
        response = frame.get("response") or {}
        candidates = response.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        parts = (candidate.get("content") or {}).get("parts") or []
        grounding_metadata = candidate.get("groundingMetadata")

        chunks: List[StreamChunk] = []
        for part in parts:
            text = part.get("text")
            if part.get("thought") is True and text:
                chunks.extend(self._thinking_chunks(text))
            elif text and self.THINK_PATTERN.search(text):
                chunks.extend(self._delimited_chunks(text))
            elif text:
                chunks.extend(self._text_chunks(text, grounding_metadata))
            elif part.get("functionCall"):
                call = part["functionCall"]
                chunks.extend(self._close_thinking())
                chunks.append(
                    StreamChunk(
                        ChunkType.TOOL_CODE,
                        FunctionCallData(name=call.get("name", ""), args=call.get("args") or {}),
                    )
                )

        usage = response.get("usageMetadata")
        if usage:
            chunks.append(
                StreamChunk(
                    ChunkType.USAGE,
                    UsageData(
                        input_tokens=usage.get("promptTokenCount") or 0,
                        output_tokens=usage.get("candidatesTokenCount") or 0,
                    ),
                )
            )
        return chunks

    def _close_thinking(self) -> List[StreamChunk]:
        if self.state.thinking is not ThinkingState.OPEN:
            return []
        self.state.thinking = ThinkingState.CLOSED
        return [StreamChunk(ChunkType.THINKING_CONTENT, THINKING_CLOSE_TAG)]

    def _thinking_chunks(self, text: str) -> List[StreamChunk]:
        if not self.real_thinking_as_content:
            return [StreamChunk(ChunkType.REAL_THINKING, text)]

        chunks = []
        if self.state.thinking is ThinkingState.IDLE:
            self.state.thinking = ThinkingState.OPEN
            chunks.append(StreamChunk(ChunkType.THINKING_CONTENT, THINKING_OPEN_TAG))
        chunks.append(StreamChunk(ChunkType.THINKING_CONTENT, text))
        return chunks

    def _delimited_chunks(self, text: str) -> List[StreamChunk]:
        chunks = []
        for segment in self.THINK_PATTERN.findall(text):
            if segment:
                chunks.extend(self._thinking_chunks(segment))

        remainder = self.THINK_PATTERN.sub("", text).strip()
        if remainder:
            chunks.extend(self._close_thinking())
            chunks.append(StreamChunk(ChunkType.TEXT, remainder))
        return chunks

    def _text_chunks(self, text: str, grounding_metadata: Optional[Dict[str, Any]]) -> List[StreamChunk]:
        chunks = self._close_thinking()
        if self.citations is not None:
            text = self.citations.process_chunk(text, grounding_metadata)
        chunks.append(StreamChunk(ChunkType.TEXT, text))
        return chunks

    def log_summary(self) -> None:
        debug_log(
            "[PARSER] Upstream response classified",
            frames=self.state.frames,
            thinking_state=self.state.thinking.value,
        )

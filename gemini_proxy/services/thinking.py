#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Synthetic reasoning preamble for thinking models whose real thoughts are not
surfaced to the caller.
"""

import asyncio
from typing import AsyncIterator, Dict, List

from ..constants import (
    REASONING_CHUNK_DELAY,
    REASONING_MESSAGES,
    REQUEST_PREVIEW_LENGTH,
    THINKING_BREAK_CHARACTERS,
    THINKING_CONTENT_CHUNK_DELAY,
    THINKING_CONTENT_CHUNK_SIZE,
    THINKING_OPEN_TAG,
)
from ..helpers import debug_log
from ..message_processor import message_processor
from ..schemas import ChunkType, ReasoningData, StreamChunk


def build_request_preview(messages: List[Dict]) -> str:
    content = message_processor.extract_last_user_content(messages)
    if len(content) > REQUEST_PREVIEW_LENGTH:
        return content[:REQUEST_PREVIEW_LENGTH] + "..."
    return content


def build_reasoning_messages(messages: List[Dict]) -> List[str]:
    preview = build_request_preview(messages)
    return [template.replace("{requestPreview}", preview) for template in REASONING_MESSAGES]


def split_thinking_text(text: str, chunk_size: int = THINKING_CONTENT_CHUNK_SIZE) -> List[str]:
    """
    Cut text into roughly chunk_size pieces, preferring to end a piece right
    after whitespace or punctuation found past 70% of the target size.
    """
    chunks = []
    remaining = text
    while remaining:
        if len(remaining) <= chunk_size:
            chunks.append(remaining)
            break

        chunk_end = chunk_size
        search_space = remaining[:chunk_size + 10]
        for break_char in THINKING_BREAK_CHARACTERS:
            position = search_space.rfind(break_char)
            if position > chunk_size * 0.7:
                chunk_end = position + 1
                break

        chunks.append(remaining[:chunk_end])
        remaining = remaining[chunk_end:]
    return chunks


class FakeThinkingGenerator:
    def __init__(
        self,
        reasoning_delay: float = REASONING_CHUNK_DELAY,
        content_chunk_delay: float = THINKING_CONTENT_CHUNK_DELAY,
    ) -> None:
        self.reasoning_delay = reasoning_delay
        self.content_chunk_delay = content_chunk_delay

    async def generate(self, messages: List[Dict], stream_as_content: bool) -> AsyncIterator[StreamChunk]:
        """
        Emit the canned preamble, either as `reasoning` chunks or as
        `thinking_content` inside an opened <thinking> tag. The tag is left
        open; the response parser closes it when real content starts.
        """
        reasoning_messages = build_reasoning_messages(messages)
        debug_log("[THINKING] Emitting synthetic preamble", as_content=stream_as_content)

        if not stream_as_content:
            for text in reasoning_messages:
                yield StreamChunk(ChunkType.REASONING, ReasoningData(reasoning=text))
                await asyncio.sleep(self.reasoning_delay)
            return

        yield StreamChunk(ChunkType.THINKING_CONTENT, THINKING_OPEN_TAG)
        await asyncio.sleep(self.reasoning_delay)

        for piece in split_thinking_text("".join(reasoning_messages)):
            yield StreamChunk(ChunkType.THINKING_CONTENT, piece)
            await asyncio.sleep(self.content_chunk_delay)

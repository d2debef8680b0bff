"""Collapse a normalized chunk stream into a single completion."""

import json
from typing import AsyncIterable

from ..helpers import generate_uuid
from ..schemas import ChunkType, CompletionResult, StreamChunk


def tool_call_from_chunk(data) -> dict:
    return {
        "id": f"call_{generate_uuid()}",
        "type": "function",
        "function": {
            "name": data.name,
            "arguments": json.dumps(data.args),
        },
    }


async def aggregate_chunks(chunks: AsyncIterable[StreamChunk]) -> CompletionResult:
    """
    Concatenate text, keep the last usage report and collect tool calls.
    Reasoning and thinking chunks are dropped.
    """
    content_parts = []
    usage = None
    tool_calls = []

    async for chunk in chunks:
        if chunk.type == ChunkType.TEXT:
            content_parts.append(chunk.data)
        elif chunk.type == ChunkType.USAGE:
            usage = chunk.data
        elif chunk.type == ChunkType.TOOL_CODE:
            tool_calls.append(tool_call_from_chunk(chunk.data))

    return CompletionResult(
        content="".join(content_parts),
        usage=usage,
        tool_calls=tool_calls or None,
    )

#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Chunk builder - OpenAI `chat.completion.chunk` SSE lines built from
normalized stream chunks
"""

import time
from typing import Any, Dict, Optional

from ..schemas import ChunkType, StreamChunk, UsageData


class ChunkBuilder:
    """Builds every SSE line of an OpenAI streaming response"""

    def _envelope(self, completion_id: str, model: str, delta: Dict[str, Any], finish_reason=None) -> Dict[str, Any]:
        return {
            'id': completion_id,
            'object': 'chat.completion.chunk',
            'created': int(time.time()),
            'model': model,
            'choices': [{
                'index': 0,
                'delta': delta,
                'logprobs': None,
                'finish_reason': finish_reason,
            }],
        }

    def to_sse(self, json_lib, payload: Dict[str, Any]) -> str:
        return f"data: {json_lib.dumps(payload)}\n\n"

    def build_role_chunk(self, json_lib, completion_id: str, model: str) -> str:
        """First chunk of the stream, announcing the assistant role"""
        return self.to_sse(json_lib, self._envelope(completion_id, model, {'role': 'assistant', 'content': ''}))

    def build_content_chunk(self, json_lib, completion_id: str, model: str, content: str) -> str:
        return self.to_sse(json_lib, self._envelope(completion_id, model, {'content': content}))

    def build_reasoning_chunk(self, json_lib, completion_id: str, model: str, reasoning_content: str) -> str:
        """Reasoning text goes to `reasoning_content`, outside the answer"""
        return self.to_sse(json_lib, self._envelope(completion_id, model, {'reasoning_content': reasoning_content}))

    def build_tool_call_chunk(
            self,
            json_lib,
            completion_id: str,
            model: str,
            index: int,
            tool_call: Dict[str, Any],
    ) -> str:
        delta = {'tool_calls': [{'index': index, **tool_call}]}
        return self.to_sse(json_lib, self._envelope(completion_id, model, delta))

    def build_finish_chunk(
            self,
            json_lib,
            completion_id: str,
            model: str,
            usage: Optional[UsageData] = None,
            finish_reason: str = 'stop',
    ) -> str:
        """Final chunk, carrying finish_reason and usage when it is known"""
        payload = self._envelope(completion_id, model, {}, finish_reason=finish_reason)
        if usage is not None:
            payload['usage'] = self.usage_dict(usage)
        return self.to_sse(json_lib, payload)

    def build_error_chunk(self, json_lib, completion_id: str, model: str, message: str) -> str:
        return self.build_content_chunk(json_lib, completion_id, model, f"Error: {message}")

    @staticmethod
    def usage_dict(usage: UsageData) -> Dict[str, int]:
        return {
            'prompt_tokens': usage.input_tokens,
            'completion_tokens': usage.output_tokens,
            'total_tokens': usage.input_tokens + usage.output_tokens,
        }

    def build_from_stream_chunk(self, json_lib, completion_id: str, model: str, chunk: StreamChunk) -> Optional[str]:
        """
        Map text-like chunks to their SSE line; usage and tool calls are
        handled by the caller, which tracks state across the stream.
        """
        if chunk.type in (ChunkType.TEXT, ChunkType.THINKING_CONTENT):
            return self.build_content_chunk(json_lib, completion_id, model, chunk.data)
        if chunk.type == ChunkType.REASONING:
            return self.build_reasoning_chunk(json_lib, completion_id, model, chunk.data.reasoning)
        if chunk.type == ChunkType.REAL_THINKING:
            return self.build_reasoning_chunk(json_lib, completion_id, model, chunk.data)
        return None


chunk_builder = ChunkBuilder()

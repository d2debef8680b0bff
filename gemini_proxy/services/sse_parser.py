"""
Incremental parser for the backend's server-sent-event stream.

Network reads never line up with line or event boundaries, so the parser
keeps the trailing partial line between reads and only parses a payload
once its event is terminated by a blank line or the stream ends.
"""

import codecs
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional

import orjson

from ..helpers import debug_log, error_log, json_lib

DATA_PREFIX = "data: "


class SSEFrameParser:
    """Stateful line/event accumulator; feed text, collect parsed frames."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line_buffer = ""
        self._payload_buffer = ""
        self.malformed_frames = 0

    def feed(self, raw: bytes, final: bool = False) -> list:
        self._line_buffer += self._decoder.decode(raw, final=final)
        *lines, self._line_buffer = self._line_buffer.split("\n")
        if final:
            lines.append(self._line_buffer)
            self._line_buffer = ""

        frames = []
        for line in lines:
            if not line.strip():
                frame = self._commit()
                if frame is not None:
                    frames.append(frame)
            elif line.startswith(DATA_PREFIX):
                self._payload_buffer += line[len(DATA_PREFIX):].rstrip("\r")

        if final:
            frame = self._commit()
            if frame is not None:
                frames.append(frame)
        return frames

    def _commit(self) -> Optional[Dict[str, Any]]:
        payload, self._payload_buffer = self._payload_buffer, ""
        if not payload:
            return None
        try:
            frame = json_lib.loads(payload)
        except orjson.JSONDecodeError as exc:
            self.malformed_frames += 1
            error_log("[SSE] Skipping malformed frame", error=str(exc), payload=payload[:200])
            return None
        if not isinstance(frame, dict):
            self.malformed_frames += 1
            error_log("[SSE] Skipping non-object frame", payload=payload[:200])
            return None
        return frame


async def parse_sse_stream(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[Dict[str, Any]]:
    """Yield one parsed JSON object per complete SSE event."""
    parser = SSEFrameParser()
    async for raw in byte_stream:
        for frame in parser.feed(raw):
            yield frame
    for frame in parser.feed(b"", final=True):
        yield frame
    if parser.malformed_frames:
        debug_log("[SSE] Stream finished with skipped frames", skipped=parser.malformed_frames)

"""Inline citation markers for grounded (google_search) responses."""

from typing import Any, Dict, List, Optional

from .config import Settings, settings as default_settings
from .helpers import debug_log


class CitationsProcessor:
    """
    Appends ``[n]`` markers after grounded segments.

    One instance lives for one response so source numbering stays stable
    across chunks.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings
        self.sources: List[str] = []

    def _source_number(self, uri: str) -> int:
        if uri not in self.sources:
            self.sources.append(uri)
        return self.sources.index(uri) + 1

    def process_chunk(self, text: str, grounding_metadata: Optional[Dict[str, Any]]) -> str:
        if not self.settings.ENABLE_INLINE_CITATIONS or not grounding_metadata or not text:
            return text

        chunks = grounding_metadata.get("groundingChunks") or []
        supports = grounding_metadata.get("groundingSupports") or []
        if not chunks or not supports:
            return text

        annotated = text
        for support in supports:
            segment_text = (support.get("segment") or {}).get("text")
            if not segment_text or segment_text not in annotated:
                continue

            markers = []
            for index in support.get("groundingChunkIndices") or []:
                if not 0 <= index < len(chunks):
                    continue
                uri = (chunks[index].get("web") or {}).get("uri")
                if not uri:
                    continue
                marker = f"[{self._source_number(uri)}]"
                if marker not in markers:
                    markers.append(marker)

            if markers:
                position = annotated.index(segment_text) + len(segment_text)
                annotated = annotated[:position] + " " + "".join(markers) + annotated[position:]

        if annotated != text:
            debug_log("[CITATIONS] Annotated chunk", sources=len(self.sources))
        return annotated

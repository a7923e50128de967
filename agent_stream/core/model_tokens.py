"""ModelTokenProcessor: model stream events -> text deltas and the transcript."""

from __future__ import annotations

from typing import Any

from ..types import FilterConfig, Outcome, StreamEvent, TagKind
from .processor import Emit, FrameProcessor


def chunk_text(event: dict) -> str:
    """Text carried by ``data.chunk.content``.

    Content is either a plain string or a list of content blocks, in which
    case the ``text`` blocks are concatenated.
    """
    data = event.get("data")
    chunk = data.get("chunk") if isinstance(data, dict) else None
    content = chunk.get("content") if isinstance(chunk, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
        return "".join(parts)
    return ""


class ModelTokenProcessor(FrameProcessor):
    kind = TagKind.MODEL

    def __init__(
        self,
        emit: Emit,
        transcript: list[str] | None = None,
        filters: FilterConfig | None = None,
    ) -> None:
        super().__init__(emit)
        self.transcript = transcript if transcript is not None else []
        self.filters = filters or FilterConfig()

    def accepts(self, event: Any) -> bool:
        """True for token events produced by the generation node."""
        if not isinstance(event, dict) or event.get("event") != self.filters.stream_event:
            return False
        metadata = event.get("metadata")
        return (
            isinstance(metadata, dict)
            and metadata.get("langgraph_node") == self.filters.generation_node
        )

    def handle(self, value: Any) -> Outcome:
        # Decoded frames are consumed whether or not they pass the filter.
        if not self.accepts(value):
            return Outcome.EMITTED
        text = chunk_text(value)
        if text:
            self.transcript.append(text)
            self._emit(StreamEvent.delta(text))
        return Outcome.EMITTED

"""MockAgentClient: offline stand-in that speaks the upstream framing."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from ..tags import DEFAULT_TAGS, TagTable
from ..types import FilterConfig, TagKind

MOCK_RESPONSES = {
    "default": "I apologize, but I don't have enough context to provide a specific answer.",
    "greeting": "Hello! How can I assist you today?",
    "help": "I can help you with various tasks. What would you like to know?",
    "code": (
        "Here's an example code:\n```python\ndef hello():\n"
        "    print('Hello world')\n```"
    ),
}


def mock_answer(question: str) -> str:
    return MOCK_RESPONSES.get(question.strip().lower(), MOCK_RESPONSES["default"])


class MockStream:
    def __init__(self, chunks: list[bytes], delay: float) -> None:
        self._chunks = chunks
        self._delay = delay
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            for chunk in self._chunks:
                if self.closed:
                    return
                if self._delay:
                    await asyncio.sleep(self._delay)
                yield chunk
        finally:
            self.closed = True

    async def aclose(self) -> None:
        self.closed = True


class MockAgentClient:
    """Streams a canned answer one word per model frame.

    The raw stream is cut into ``chunk_size``-byte pieces regardless of frame
    boundaries, so consumers see the same fragmentation as with the real
    service.
    """

    def __init__(
        self,
        *,
        tags: TagTable | None = None,
        filters: FilterConfig | None = None,
        chunk_size: int = 16,
        delay: float = 0.0,
        tool_notice: dict | None = None,
    ) -> None:
        self.tags = tags or DEFAULT_TAGS
        self.filters = filters or FilterConfig()
        self.chunk_size = max(chunk_size, 1)
        self.delay = delay
        self.tool_notice = tool_notice  # sent ahead of the answer when set

    def render(self, question: str) -> str:
        """The full raw stream the mock would send for *question*."""
        words = mock_answer(question).split(" ")
        frames = []
        if self.tool_notice is not None:
            frames.append(self.tags.encode(TagKind.TOOL, self.tool_notice))
        for i, word in enumerate(words):
            token = word if i == len(words) - 1 else word + " "
            frames.append(self.tags.encode(TagKind.MODEL, {
                "event": self.filters.stream_event,
                "metadata": {"langgraph_node": self.filters.generation_node},
                "data": {"chunk": {"content": token}},
            }))
        return "".join(frames)

    async def open_stream(
        self, question: str, thread_id: int | str | None = None,
    ) -> MockStream:
        raw = self.render(question).encode("utf-8")
        chunks = [raw[i:i + self.chunk_size] for i in range(0, len(raw), self.chunk_size)]
        return MockStream(chunks, self.delay)

    async def ask(self, question: str, thread_id: int | str | None = None) -> dict:
        return {"result": mock_answer(question), "thread_id": thread_id}

    async def aclose(self) -> None:
        return None

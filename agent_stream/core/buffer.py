"""StreamBuffer: raw text accumulator with an incremental tag index."""

from __future__ import annotations

from bisect import bisect_left, bisect_right

from ..types import TagKind, TagMatch
from .scanner import TagScanner


class StreamBuffer:
    """Append-only text buffer that indexes tags as text arrives.

    Offsets are absolute stream offsets. ``consume()`` drops a prefix without
    renumbering anything, so tag offsets stay valid for the buffer's lifetime.

    Each ``append()`` scans only the new region (plus the last
    ``tag_length - 1`` characters, where a tag split across chunks may start).
    """

    def __init__(self, scanner: TagScanner) -> None:
        self._scanner = scanner
        self._text = ""
        self._base = 0        # absolute offset of _text[0]
        self._scan_from = 0   # absolute offset where the next scan starts
        self._tags: list[TagMatch] = []
        self._offsets: list[int] = []

    def __len__(self) -> int:
        return len(self._text)

    @property
    def start(self) -> int:
        return self._base

    @property
    def end(self) -> int:
        return self._base + len(self._text)

    @property
    def text(self) -> str:
        return self._text

    @property
    def tags(self) -> list[TagMatch]:
        return list(self._tags)

    @property
    def watermark(self) -> int:
        """Everything before this offset has been scanned for tags."""
        return self._scan_from

    def append(self, chunk: str) -> list[TagMatch]:
        """Add *chunk* and return the tags it completed."""
        if not chunk:
            return []
        self._text += chunk
        length = self._scanner.tag_length
        resume = self._scan_from
        found = list(self._scanner.scan(self._text, self._scan_from - self._base, self._base))
        for match in found:
            self._tags.append(match)
            self._offsets.append(match.offset)
            resume = match.offset + length
        self._scan_from = max(resume, self.end - length + 1, self._scan_from)
        return found

    def slice(self, start: int, end: int) -> str:
        return self._text[start - self._base:end - self._base]

    def next_tag(self, after: int) -> TagMatch | None:
        """First indexed tag starting strictly after *after*."""
        i = bisect_right(self._offsets, after)
        if i < len(self._tags):
            return self._tags[i]
        return None

    def tags_of(self, kind: TagKind) -> list[TagMatch]:
        return [t for t in self._tags if t.kind is kind]

    def consume(self, offset: int) -> None:
        """Drop everything before absolute *offset*."""
        offset = min(max(offset, self._base), self._scan_from, self.end)
        if offset == self._base:
            return
        self._text = self._text[offset - self._base:]
        self._base = offset
        cut = bisect_left(self._offsets, offset)
        if cut:
            del self._tags[:cut]
            del self._offsets[:cut]

    def clear(self) -> None:
        """Release all buffered text and the tag index."""
        self._base = self.end
        self._scan_from = max(self._scan_from, self._base)
        self._text = ""
        self._tags.clear()
        self._offsets.clear()

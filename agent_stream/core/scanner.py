"""TagScanner: two-symbol lexer over the raw stream text."""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..tags import DEFAULT_TAGS, TagTable
from ..types import TagKind, TagMatch


class TagScanner:
    """Locate tag literals in buffered text.

    Both literals are compiled into a single alternation, so one left-to-right
    pass finds every occurrence of either tag without overlaps.
    """

    def __init__(self, tags: TagTable | None = None) -> None:
        self.tags = tags or DEFAULT_TAGS
        self._kinds: dict[str, TagKind] = {lit: kind for lit, kind in self.tags.items()}
        self._pattern = re.compile(
            "|".join(re.escape(lit) for lit, _ in self.tags.items())
        )

    @property
    def tag_length(self) -> int:
        return self.tags.length

    def scan(self, text: str, start: int = 0, base: int = 0) -> Iterator[TagMatch]:
        """Yield every tag in ``text[start:]``.

        ``base`` is added to each offset so callers holding a trimmed buffer
        get absolute stream offsets back.
        """
        for m in self._pattern.finditer(text, start):
            yield TagMatch(offset=base + m.start(), kind=self._kinds[m.group()])

    def find_next(self, text: str, from_offset: int) -> TagMatch | None:
        """Earliest tag of either kind after the tag that starts at *from_offset*.

        The search begins at ``from_offset + tag_length`` so the tag sitting at
        *from_offset* is never matched again. Returns None when neither literal
        occurs in the rest of *text*.
        """
        m = self._pattern.search(text, max(from_offset + self.tag_length, 0))
        if m is None:
            return None
        return TagMatch(offset=m.start(), kind=self._kinds[m.group()])

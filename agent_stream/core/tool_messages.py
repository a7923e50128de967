"""ToolMessageProcessor: tool-invocation notices, emitted once per distinct call."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..types import Outcome, StreamEvent, TagKind
from .processor import Emit, FrameProcessor

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("tool_name", "additional_kwargs")


def dedup_key(notice: dict) -> tuple[str, str]:
    """Identity of a tool call: its name plus its kwargs in canonical JSON."""
    kwargs = json.dumps(
        notice.get("additional_kwargs"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return str(notice.get("tool_name")), kwargs


class ToolMessageProcessor(FrameProcessor):
    kind = TagKind.TOOL
    strip_body = True

    def __init__(self, emit: Emit, seen: set[tuple[str, str]] | None = None) -> None:
        super().__init__(emit)
        self.seen = seen if seen is not None else set()
        self.duplicates = 0

    def handle(self, value: Any) -> Outcome:
        if not isinstance(value, dict) or any(f not in value for f in REQUIRED_FIELDS):
            logger.warning("Dropping tool frame without %s: %r", "/".join(REQUIRED_FIELDS), value)
            return Outcome.DROPPED

        key = dedup_key(value)
        if key in self.seen:
            self.duplicates += 1
            logger.debug("Duplicate tool notice suppressed: %s", key[0])
            return Outcome.EMITTED

        self.seen.add(key)
        self._emit(StreamEvent.tool(value))
        return Outcome.EMITTED

"""FrameProcessor: shared decode-and-dispatch policy for frame handlers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from ..types import DecodeStatus, Frame, Outcome, StreamEvent, TagKind
from .decoding import decode_json

logger = logging.getLogger(__name__)

Emit = Callable[[StreamEvent], None]

_PREVIEW_CHARS = 200


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[:_PREVIEW_CHARS] + "..."


class FrameProcessor(ABC):
    """Decode a frame body and hand the value to ``handle()``.

    Failure policy, identical for both frame kinds:

    - INCOMPLETE body closed by a tag -> EXTEND (the tag was payload text)
    - INCOMPLETE body at the buffer end -> DEFER, or DROPPED on the final flush
    - MALFORMED body -> DROPPED; more input cannot repair it
    """

    kind: TagKind
    strip_body: bool = False

    def __init__(self, emit: Emit) -> None:
        self._emit = emit

    def process(self, frame: Frame, is_final_flush: bool = False) -> Outcome:
        body = frame.body.strip() if self.strip_body else frame.body
        result = decode_json(body)
        if result.ok:
            return self.handle(result.value)

        if result.status is DecodeStatus.INCOMPLETE:
            if frame.complete:
                return Outcome.EXTEND
            if not is_final_flush:
                return Outcome.DEFER

        logger.warning(
            "Dropping %s frame at offset %d (%s, %s): %s",
            self.kind.value,
            frame.start,
            result.status.value,
            result.error,
            _preview(body),
        )
        return Outcome.DROPPED

    @abstractmethod
    def handle(self, value: Any) -> Outcome: ...

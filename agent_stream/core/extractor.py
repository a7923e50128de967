"""FrameExtractor: slice frame bodies out of the buffer."""

from __future__ import annotations

from ..types import Frame, TagMatch
from .buffer import StreamBuffer


class FrameExtractor:
    def __init__(self, tag_length: int) -> None:
        self.tag_length = tag_length

    def extract(self, buffer: StreamBuffer, tag: TagMatch) -> Frame:
        """Body from the end of *tag* to the next tag of either kind.

        Without a following tag the body runs to the end of the buffer and
        the frame is incomplete: more of it may still be in flight.
        """
        body_start = tag.offset + self.tag_length
        nxt = buffer.next_tag(tag.offset)
        end = nxt.offset if nxt is not None else buffer.end
        return Frame(
            kind=tag.kind,
            body=buffer.slice(body_start, end),
            complete=nxt is not None,
            start=tag.offset,
            end=end,
        )

    def extend(self, buffer: StreamBuffer, frame: Frame) -> Frame:
        """Grow *frame* across its closing tag up to the following one.

        Used when the closing tag turned out to be text inside the payload.
        """
        if not frame.complete:
            return frame
        nxt = buffer.next_tag(frame.end)
        end = nxt.offset if nxt is not None else buffer.end
        return Frame(
            kind=frame.kind,
            body=buffer.slice(frame.start + self.tag_length, end),
            complete=nxt is not None,
            start=frame.start,
            end=end,
        )

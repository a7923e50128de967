"""Server-sent-event encoding of stream events.

Wire format, one SSE message per event:

- tool:      ``data: {"type": "tool", "payload": {...}}``
- delta:     ``data: <raw text>`` (one ``data:`` line per text line)
- complete:  ``data: {"type": "content-complete", "text": "..."}``
- error:     ``event: error`` + ``data: {"error": "..."}``
"""

from __future__ import annotations

import json

from ..types import EVENT_DELTA, EVENT_ERROR, StreamEvent


def _data_lines(text: str) -> str:
    # SSE clients join consecutive data lines with "\n".
    return "".join(f"data: {line}\n" for line in text.split("\n"))


def encode_event(event: StreamEvent) -> bytes:
    if event.type == EVENT_DELTA:
        return (_data_lines(event.text) + "\n").encode("utf-8")
    if event.type == EVENT_ERROR:
        data = json.dumps({"error": event.text}, ensure_ascii=False)
        return f"event: error\ndata: {data}\n\n".encode("utf-8")
    data = json.dumps(event.to_dict(), ensure_ascii=False)
    return f"data: {data}\n\n".encode("utf-8")

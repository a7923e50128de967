"""Relay: drive a demultiplexer session from an upstream chunk stream."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator

from ..core.demux import StreamDemultiplexer
from ..types import StreamEvent, UpstreamError

logger = logging.getLogger(__name__)


async def relay_events(
    chunks: AsyncIterable[bytes],
    demux: StreamDemultiplexer,
) -> AsyncIterator[StreamEvent]:
    """Feed *chunks* into *demux* in arrival order and yield its events.

    The last event is always terminal: ``content-complete`` when the upstream
    finished, ``error`` when it failed. If the consumer stops iterating early
    (client disconnect, task cancellation) the session is cancelled and the
    upstream stream is closed, which aborts the upstream request.
    """
    try:
        try:
            async for chunk in chunks:
                for event in demux.feed(chunk):
                    yield event
        except UpstreamError as e:
            for event in demux.abort(e):
                yield event
            return

        for event in demux.end_of_stream():
            yield event
    finally:
        if not demux.closed:
            demux.close()
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

"""StreamDemultiplexer: one session of frame reassembly over a fragmented stream.

Chunks go in through ``feed()``; each call appends to the buffer and runs a
drain pass that resolves every frame it can without waiting for more input.
Tool frames are resolved before model frames in every pass, since a tool
payload may quote text that looks like a model tag.

``end_of_stream()`` runs one last lenient pass (incomplete frames are handed
to the processors and dropped if they still do not decode) and emits the
``content-complete`` event carrying the transcript.
"""

from __future__ import annotations

import codecs
import logging
import uuid

from ..tags import DEFAULT_TAGS, TagTable
from ..types import (
    TERMINAL_STATES,
    EventSink,
    FilterConfig,
    Outcome,
    SessionClosedError,
    SessionState,
    SessionStats,
    StreamEvent,
    TagKind,
    EVENT_DELTA,
    EVENT_TOOL,
)
from .buffer import StreamBuffer
from .extractor import FrameExtractor
from .model_tokens import ModelTokenProcessor
from .processor import FrameProcessor
from .scanner import TagScanner
from .tool_messages import ToolMessageProcessor

logger = logging.getLogger(__name__)

PASS_ORDER = (TagKind.TOOL, TagKind.MODEL)


class StreamDemultiplexer:
    """Owns the buffer, the dedup set and the transcript of one request.

    Not thread-safe; a session is driven by a single producer delivering
    chunks in arrival order. Events are returned from each call and, when a
    sink is attached, pushed to it as well.
    """

    def __init__(
        self,
        sink: EventSink | None = None,
        *,
        tags: TagTable | None = None,
        filters: FilterConfig | None = None,
        session_id: str = "",
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.sink = sink
        self.tags = tags or DEFAULT_TAGS
        self.state = SessionState.OPEN
        self.stats = SessionStats()

        self._buffer = StreamBuffer(TagScanner(self.tags))
        self._extractor = FrameExtractor(self.tags.length)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._resolved: set[int] = set()
        self._seen: set[tuple[str, str]] = set()
        self._transcript: list[str] = []
        self._pending: list[StreamEvent] = []

        self._tool = ToolMessageProcessor(self._collect, self._seen)
        self._model = ModelTokenProcessor(self._collect, self._transcript, filters)
        self._processors: dict[TagKind, FrameProcessor] = {
            TagKind.TOOL: self._tool,
            TagKind.MODEL: self._model,
        }

    # -- properties --

    @property
    def transcript(self) -> str:
        return "".join(self._transcript)

    @property
    def closed(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def buffered(self) -> int:
        """Characters held back waiting for the rest of a frame."""
        return len(self._buffer)

    # -- public API --

    def feed(self, chunk: str | bytes) -> list[StreamEvent]:
        """Append one chunk and emit every frame it completes."""
        self._require_open()
        if isinstance(chunk, (bytes, bytearray)):
            text = self._decoder.decode(bytes(chunk))
        else:
            text = chunk
        self.stats.chunks += 1
        self.stats.chars += len(text)
        logger.debug("[%s] raw chunk: %r", self.session_id, text)

        self._buffer.append(text)
        self._drain_pass(is_final=False)
        return self._deliver()

    def end_of_stream(self) -> list[StreamEvent]:
        """Flush remaining frames leniently and emit ``content-complete``."""
        self._require_open()
        self.state = SessionState.DRAINING

        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._buffer.append(tail)
        self._drain_pass(is_final=True)
        self._collect(StreamEvent.complete(self.transcript))
        events = self._deliver()

        self.state = SessionState.COMPLETED
        self.stats.duplicate_tools = self._tool.duplicates
        logger.info(
            "[%s] stream complete: tools=%d dup=%d deltas=%d dropped=%d chars=%d",
            self.session_id,
            self.stats.tool_events,
            self.stats.duplicate_tools,
            self.stats.deltas,
            self.stats.frames_dropped,
            len(self.transcript),
        )
        self._release(keep_transcript=True)
        if self.sink is not None:
            self.sink.complete()
        return events

    def abort(self, error: BaseException) -> list[StreamEvent]:
        """Fail the session after a transport error. No-op once closed."""
        if self.closed:
            return []
        logger.error("[%s] stream failed: %s", self.session_id, error)
        self.state = SessionState.FAILED
        self._release()
        if self.sink is not None:
            self.sink.fail(error)
        return [StreamEvent.error(str(error) or type(error).__name__)]

    def close(self) -> None:
        """Consumer went away before the end of the stream."""
        if self.closed:
            return
        logger.info(
            "[%s] stream cancelled with %d chars buffered",
            self.session_id, len(self._buffer),
        )
        self.state = SessionState.CANCELLED
        self._release()

    # Push-style names used by upstream clients.
    on_chunk = feed
    on_end = end_of_stream
    on_error = abort

    # -- drain pass --

    def _drain_pass(self, is_final: bool) -> None:
        for kind in PASS_ORDER:
            self._drain_kind(kind, is_final)
        self._compact()

    def _drain_kind(self, kind: TagKind, is_final: bool) -> None:
        processor = self._processors[kind]
        for tag in self._buffer.tags_of(kind):
            if tag.offset in self._resolved:
                continue

            frame = self._extractor.extract(self._buffer, tag)
            if not frame.complete and not is_final:
                return

            swallowed: list[int] = []
            outcome = processor.process(frame, is_final)
            while outcome is Outcome.EXTEND:
                swallowed.append(frame.end)
                frame = self._extractor.extend(self._buffer, frame)
                if not frame.complete and not is_final:
                    outcome = Outcome.DEFER
                    break
                outcome = processor.process(frame, is_final)

            if outcome is Outcome.DEFER:
                return

            self._resolved.add(tag.offset)
            if outcome is Outcome.EMITTED:
                # Tags inside the payload were text, not frames of their own.
                self._resolved.update(swallowed)
            else:
                self.stats.frames_dropped += 1

    def _compact(self) -> None:
        """Consume the prefix that no unresolved frame needs any more."""
        first = next(
            (t.offset for t in self._buffer.tags if t.offset not in self._resolved),
            None,
        )
        self._buffer.consume(first if first is not None else self._buffer.watermark)
        start = self._buffer.start
        self._resolved = {o for o in self._resolved if o >= start}

    # -- helpers --

    def _collect(self, event: StreamEvent) -> None:
        if event.type == EVENT_TOOL:
            self.stats.tool_events += 1
        elif event.type == EVENT_DELTA:
            self.stats.deltas += 1
        self._pending.append(event)

    def _deliver(self) -> list[StreamEvent]:
        events, self._pending = self._pending, []
        if self.sink is None:
            return events
        try:
            for event in events:
                self.sink.emit(event)
        except Exception:
            self.state = SessionState.FAILED
            self._release()
            raise
        return events

    def _require_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise SessionClosedError(
                f"session {self.session_id} is {self.state.value}"
            )

    def _release(self, keep_transcript: bool = False) -> None:
        self._buffer.clear()
        self._resolved.clear()
        self._seen.clear()
        self._pending.clear()
        if not keep_transcript:
            self._transcript.clear()

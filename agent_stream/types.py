"""All dataclasses, enums, Protocols, and errors for agent-stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

class TagKind(Enum):
    TOOL = "tool"
    MODEL = "model"


@dataclass(frozen=True)
class TagMatch:
    """One tag occurrence. ``offset`` is absolute in the stream, not in the buffer."""
    offset: int
    kind: TagKind


@dataclass
class Frame:
    """Body between a tag and the next tag (or the end of the buffer)."""
    kind: TagKind
    body: str
    complete: bool
    start: int  # absolute offset of the opening tag
    end: int    # absolute offset where the body stops (next tag or buffer end)


class Outcome(Enum):
    EMITTED = "emitted"  # consumed; an event may or may not have been produced
    DROPPED = "dropped"  # consumed and discarded
    DEFER = "defer"      # not consumed, wait for more input
    EXTEND = "extend"    # body was cut by a tag literal inside the payload


class DecodeStatus(Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"  # valid prefix of a JSON document
    MALFORMED = "malformed"


@dataclass
class DecodeResult:
    status: DecodeStatus
    value: Any = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.COMPLETE


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

EVENT_TOOL = "tool"
EVENT_DELTA = "content-delta"
EVENT_COMPLETE = "content-complete"
EVENT_ERROR = "error"


@dataclass
class StreamEvent:
    """Normalized event handed to the downstream consumer."""
    type: str
    text: str = ""
    payload: dict | None = None

    @classmethod
    def tool(cls, payload: dict) -> StreamEvent:
        return cls(type=EVENT_TOOL, payload=payload)

    @classmethod
    def delta(cls, text: str) -> StreamEvent:
        return cls(type=EVENT_DELTA, text=text)

    @classmethod
    def complete(cls, text: str) -> StreamEvent:
        return cls(type=EVENT_COMPLETE, text=text)

    @classmethod
    def error(cls, message: str) -> StreamEvent:
        return cls(type=EVENT_ERROR, text=message)

    @property
    def terminal(self) -> bool:
        return self.type in (EVENT_COMPLETE, EVENT_ERROR)

    def to_dict(self) -> dict:
        if self.type == EVENT_TOOL:
            return {"type": self.type, "payload": self.payload}
        return {"type": self.type, "text": self.text}


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event: StreamEvent) -> None: ...

    def complete(self) -> None: ...

    def fail(self, error: BaseException) -> None: ...


class CollectingSink:
    """EventSink that keeps everything it receives."""

    def __init__(self) -> None:
        self.events: list[StreamEvent] = []
        self.completed = False
        self.error: BaseException | None = None

    def emit(self, event: StreamEvent) -> None:
        self.events.append(event)

    def complete(self) -> None:
        self.completed = True

    def fail(self, error: BaseException) -> None:
        self.error = error


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SessionState(Enum):
    OPEN = "open"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    SessionState.COMPLETED,
    SessionState.FAILED,
    SessionState.CANCELLED,
})


@dataclass
class SessionStats:
    chunks: int = 0
    chars: int = 0
    tool_events: int = 0
    duplicate_tools: int = 0
    deltas: int = 0
    frames_dropped: int = 0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class AgentStreamError(Exception):
    """Base class for agent-stream errors."""


class UpstreamError(AgentStreamError):
    """Transport failure talking to the upstream agent service."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SessionClosedError(AgentStreamError):
    """Raised when a finished session is fed more input."""


class ConfigError(AgentStreamError):
    """Raised when a configuration fails validation."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class TagConfig:
    tool: str = "Tool :"
    model: str = "Toly :"


@dataclass
class FilterConfig:
    stream_event: str = "on_chat_model_stream"  # event kind carrying model tokens
    generation_node: str = "Toly"               # langgraph node whose tokens are kept


@dataclass
class UpstreamConfig:
    base_url: str = "http://localhost:8000"
    path: str = "/agent"
    timeout: float = 120.0
    connect_timeout: float = 10.0


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5858
    mock: bool = False  # serve canned answers instead of calling upstream


@dataclass
class AgentStreamConfig:
    version: str = "0.1"
    tags: TagConfig = field(default_factory=TagConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

"""agent-stream: incremental demultiplexer for tagged agent response streams."""

from .config import load_config
from .core.demux import StreamDemultiplexer
from .tags import TagTable
from .types import (
    AgentStreamConfig,
    CollectingSink,
    EventSink,
    SessionState,
    StreamEvent,
    UpstreamError,
)

__version__ = "0.1.0"

__all__ = [
    "StreamDemultiplexer",
    "load_config",
    "AgentStreamConfig",
    "CollectingSink",
    "EventSink",
    "SessionState",
    "StreamEvent",
    "TagTable",
    "UpstreamError",
]

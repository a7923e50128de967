from .app import create_app
from .relay import relay_events
from .sse import encode_event

__all__ = [
    "create_app",
    "relay_events",
    "encode_event",
]

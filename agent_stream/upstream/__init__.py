from .client import AgentClient, UpstreamStream
from .mock import MockAgentClient, MockStream

__all__ = [
    "AgentClient",
    "UpstreamStream",
    "MockAgentClient",
    "MockStream",
]

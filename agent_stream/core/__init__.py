from .buffer import StreamBuffer
from .demux import StreamDemultiplexer
from .extractor import FrameExtractor
from .model_tokens import ModelTokenProcessor
from .scanner import TagScanner
from .tool_messages import ToolMessageProcessor

__all__ = [
    "StreamBuffer",
    "StreamDemultiplexer",
    "FrameExtractor",
    "ModelTokenProcessor",
    "TagScanner",
    "ToolMessageProcessor",
]

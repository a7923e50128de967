"""Tag literals and the model-stream filter markers.

Kept in a standalone module so the scanner, the processors and the mock
upstream share one constant table.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .types import TagConfig, TagKind

TOOL_TAG = "Tool :"
MODEL_TAG = "Toly :"
TAG_LENGTH = 6

STREAM_EVENT = "on_chat_model_stream"
GENERATION_NODE = "Toly"


def tag_errors(tool: str, model: str) -> list[str]:
    """Return problems with a pair of tag literals (empty = usable)."""
    errors: list[str] = []
    if not tool or not model:
        errors.append("Tag literals must be non-empty")
        return errors
    if len(tool) != len(model):
        errors.append(
            f"Tag literals must have equal length "
            f"({tool!r} is {len(tool)}, {model!r} is {len(model)})"
        )
    if tool == model:
        errors.append(f"Tag literals must differ (both are {tool!r})")
    elif tool in model or model in tool:
        errors.append("One tag literal must not contain the other")
    return errors


@dataclass(frozen=True)
class TagTable:
    """The two frame markers and their shared length."""
    tool: str = TOOL_TAG
    model: str = MODEL_TAG
    length: int = TAG_LENGTH

    def __post_init__(self) -> None:
        errors = tag_errors(self.tool, self.model)
        if errors:
            raise ValueError("; ".join(errors))
        if self.length != len(self.tool):
            raise ValueError(
                f"Tag length {self.length} does not match literal {self.tool!r}"
            )

    @classmethod
    def from_config(cls, config: TagConfig) -> TagTable:
        return cls(tool=config.tool, model=config.model, length=len(config.tool))

    def literal(self, kind: TagKind) -> str:
        return self.tool if kind is TagKind.TOOL else self.model

    def items(self) -> list[tuple[str, TagKind]]:
        return [(self.tool, TagKind.TOOL), (self.model, TagKind.MODEL)]

    def encode(self, kind: TagKind, payload: dict) -> str:
        """Render one frame the way the upstream agent writes it."""
        return self.literal(kind) + json.dumps(payload)


DEFAULT_TAGS = TagTable()

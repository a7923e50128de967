"""Tests for the tool-notice and model-token frame processors."""

from __future__ import annotations

import json
import logging

import pytest

from agent_stream.core.model_tokens import ModelTokenProcessor, chunk_text
from agent_stream.core.tool_messages import ToolMessageProcessor, dedup_key
from agent_stream.types import (
    EVENT_DELTA,
    EVENT_TOOL,
    FilterConfig,
    Frame,
    Outcome,
    StreamEvent,
    TagKind,
)


def _frame(kind: TagKind, body: str, complete: bool = True) -> Frame:
    return Frame(kind=kind, body=body, complete=complete, start=0, end=6 + len(body))


def _tool_body(name: str = "search", kwargs: dict | None = None) -> str:
    return json.dumps({"tool_name": name, "additional_kwargs": kwargs or {}})


def _model_body(content, node: str = "Toly", event: str = "on_chat_model_stream") -> str:
    return json.dumps({
        "event": event,
        "metadata": {"langgraph_node": node},
        "data": {"chunk": {"content": content}},
    })


@pytest.fixture
def emitted() -> list[StreamEvent]:
    return []


# ---------------------------------------------------------------------------
# Tool notices
# ---------------------------------------------------------------------------


class TestDedupKey:
    def test_key_ignores_kwarg_order(self):
        a = {"tool_name": "swap", "additional_kwargs": {"from": "SOL", "to": "USDC"}}
        b = {"tool_name": "swap", "additional_kwargs": {"to": "USDC", "from": "SOL"}}
        assert dedup_key(a) == dedup_key(b)

    def test_key_depends_on_name(self):
        a = {"tool_name": "swap", "additional_kwargs": {}}
        b = {"tool_name": "stake", "additional_kwargs": {}}
        assert dedup_key(a) != dedup_key(b)

    def test_key_depends_on_kwargs(self):
        a = {"tool_name": "swap", "additional_kwargs": {"amount": 1}}
        b = {"tool_name": "swap", "additional_kwargs": {"amount": 2}}
        assert dedup_key(a) != dedup_key(b)


class TestToolMessageProcessor:
    def test_emits_tool_event(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        outcome = proc.process(_frame(TagKind.TOOL, _tool_body("search", {"q": "sol"})))
        assert outcome is Outcome.EMITTED
        assert len(emitted) == 1
        assert emitted[0].type == EVENT_TOOL
        assert emitted[0].payload == {"tool_name": "search", "additional_kwargs": {"q": "sol"}}

    def test_body_is_trimmed(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        outcome = proc.process(_frame(TagKind.TOOL, "\n  " + _tool_body() + "  \n"))
        assert outcome is Outcome.EMITTED
        assert len(emitted) == 1

    def test_duplicate_consumed_without_event(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        body = _tool_body("search", {"q": "sol"})
        assert proc.process(_frame(TagKind.TOOL, body)) is Outcome.EMITTED
        assert proc.process(_frame(TagKind.TOOL, body)) is Outcome.EMITTED
        assert len(emitted) == 1
        assert proc.duplicates == 1

    def test_shared_seen_set(self, emitted):
        seen: set = set()
        proc = ToolMessageProcessor(emitted.append, seen)
        proc.process(_frame(TagKind.TOOL, _tool_body()))
        assert len(seen) == 1

    def test_truncated_body_defers_mid_stream(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        frame = _frame(TagKind.TOOL, '{"tool_name": "sea', complete=False)
        assert proc.process(frame, is_final_flush=False) is Outcome.DEFER
        assert emitted == []

    def test_truncated_body_dropped_on_final_flush(self, emitted, caplog):
        proc = ToolMessageProcessor(emitted.append)
        frame = _frame(TagKind.TOOL, '{"tool_name": "sea', complete=False)
        with caplog.at_level(logging.WARNING):
            assert proc.process(frame, is_final_flush=True) is Outcome.DROPPED
        assert "Dropping tool frame" in caplog.text
        assert emitted == []

    def test_truncated_closed_body_asks_for_extension(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        frame = _frame(TagKind.TOOL, '{"tool_name": "echo", "additional_kwargs": {"text": "', complete=True)
        assert proc.process(frame) is Outcome.EXTEND

    def test_malformed_body_dropped(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        assert proc.process(_frame(TagKind.TOOL, "{oops}")) is Outcome.DROPPED
        assert emitted == []

    def test_object_without_required_fields_dropped(self, emitted):
        proc = ToolMessageProcessor(emitted.append)
        assert proc.process(_frame(TagKind.TOOL, '{"tool_name": "x"}')) is Outcome.DROPPED
        assert proc.process(_frame(TagKind.TOOL, "[1, 2]")) is Outcome.DROPPED
        assert emitted == []


# ---------------------------------------------------------------------------
# Model tokens
# ---------------------------------------------------------------------------


class TestChunkText:
    def test_string_content(self):
        assert chunk_text({"data": {"chunk": {"content": "Hi"}}}) == "Hi"

    def test_block_content(self):
        event = {"data": {"chunk": {"content": [
            {"type": "text", "text": "Hello "},
            {"type": "tool_use", "id": "x"},
            {"type": "text", "text": "there"},
        ]}}}
        assert chunk_text(event) == "Hello there"

    @pytest.mark.parametrize("event", [
        {},
        {"data": None},
        {"data": {"chunk": None}},
        {"data": {"chunk": {}}},
        {"data": {"chunk": {"content": 7}}},
    ])
    def test_missing_content(self, event):
        assert chunk_text(event) == ""


class TestModelTokenProcessor:
    def test_emits_delta_and_appends_transcript(self, emitted):
        transcript: list[str] = []
        proc = ModelTokenProcessor(emitted.append, transcript)
        assert proc.process(_frame(TagKind.MODEL, _model_body("Hi"))) is Outcome.EMITTED
        assert proc.process(_frame(TagKind.MODEL, _model_body(" there"))) is Outcome.EMITTED
        assert [e.text for e in emitted] == ["Hi", " there"]
        assert all(e.type == EVENT_DELTA for e in emitted)
        assert transcript == ["Hi", " there"]

    def test_other_node_consumed_silently(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        outcome = proc.process(_frame(TagKind.MODEL, _model_body("plan", node="planner")))
        assert outcome is Outcome.EMITTED
        assert emitted == []
        assert proc.transcript == []

    def test_other_event_consumed_silently(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        outcome = proc.process(_frame(TagKind.MODEL, _model_body("x", event="on_chain_start")))
        assert outcome is Outcome.EMITTED
        assert emitted == []

    def test_empty_content_not_emitted(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        assert proc.process(_frame(TagKind.MODEL, _model_body(""))) is Outcome.EMITTED
        assert emitted == []

    def test_non_object_consumed(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        assert proc.process(_frame(TagKind.MODEL, "[1, 2, 3]")) is Outcome.EMITTED
        assert emitted == []

    def test_custom_filters(self, emitted):
        proc = ModelTokenProcessor(
            emitted.append,
            filters=FilterConfig(stream_event="token", generation_node="writer"),
        )
        proc.process(_frame(TagKind.MODEL, _model_body("no", node="Toly")))
        proc.process(_frame(TagKind.MODEL, _model_body("yes", node="writer", event="token")))
        assert [e.text for e in emitted] == ["yes"]

    def test_body_not_trimmed_but_whitespace_tolerated(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        assert proc.process(_frame(TagKind.MODEL, _model_body("Hi") + "\n")) is Outcome.EMITTED
        assert [e.text for e in emitted] == ["Hi"]

    def test_decode_failure_policy(self, emitted):
        proc = ModelTokenProcessor(emitted.append)
        partial = _model_body("Hi")[:-5]
        assert proc.process(_frame(TagKind.MODEL, partial, complete=False)) is Outcome.DEFER
        assert proc.process(_frame(TagKind.MODEL, partial, complete=False), True) is Outcome.DROPPED
        assert proc.process(_frame(TagKind.MODEL, partial, complete=True)) is Outcome.EXTEND
        assert proc.process(_frame(TagKind.MODEL, "garbage")) is Outcome.DROPPED
        assert emitted == []

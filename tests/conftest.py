"""Shared fixtures for agent-stream tests."""

from __future__ import annotations

import json

import pytest

from agent_stream.config import CONFIG_ENV, UPSTREAM_URL_ENV, load_config
from agent_stream.core.demux import StreamDemultiplexer
from agent_stream.tags import DEFAULT_TAGS
from agent_stream.types import AgentStreamConfig, CollectingSink, TagKind


def tool_frame(name: str, kwargs: dict | None = None, **extra) -> str:
    payload = {"tool_name": name, "additional_kwargs": kwargs or {}}
    payload.update(extra)
    return DEFAULT_TAGS.encode(TagKind.TOOL, payload)


def model_frame(
    text,
    node: str = "Toly",
    event: str = "on_chat_model_stream",
) -> str:
    return "Toly :" + json.dumps({
        "event": event,
        "metadata": {"langgraph_node": node},
        "data": {"chunk": {"content": text}},
    })


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(UPSTREAM_URL_ENV, raising=False)


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def demux(sink) -> StreamDemultiplexer:
    return StreamDemultiplexer(sink, session_id="test")


@pytest.fixture
def sample_config() -> AgentStreamConfig:
    return load_config(config_dict={
        "upstream": {"base_url": "http://fake-upstream:9999", "path": "/agent"},
        "server": {"port": 5858},
    })

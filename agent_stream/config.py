"""Configuration loading, validation, and defaults."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml

from .tags import tag_errors
from .types import (
    AgentStreamConfig,
    FilterConfig,
    ServerConfig,
    TagConfig,
    UpstreamConfig,
)

CONFIG_FILENAMES = [
    "agent-stream.yaml",
    "agent-stream.yml",
    "agent-stream.json",
]

CONFIG_ENV = "AGENT_STREAM_CONFIG"
UPSTREAM_URL_ENV = "AGENT_STREAM_UPSTREAM_URL"


def _discover_config() -> Path | None:
    """Search CWD then parent dirs up to home for a config file."""
    cwd = Path.cwd()
    home = Path.home()
    search = cwd
    while True:
        for name in CONFIG_FILENAMES:
            candidate = search / name
            if candidate.is_file():
                return candidate
        if search == home or search == search.parent:
            break
        search = search.parent
    return None


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, dict) else {}


def _build_config(raw: dict[str, Any]) -> AgentStreamConfig:
    """Build an AgentStreamConfig from a raw dict."""
    tags_raw = _section(raw, "tags")
    tags = TagConfig(
        tool=tags_raw.get("tool", "Tool :"),
        model=tags_raw.get("model", "Toly :"),
    )

    filters_raw = _section(raw, "filters")
    filters = FilterConfig(
        stream_event=filters_raw.get("stream_event", "on_chat_model_stream"),
        generation_node=filters_raw.get("generation_node", "Toly"),
    )

    upstream_raw = _section(raw, "upstream")
    upstream = UpstreamConfig(
        base_url=(
            os.environ.get(UPSTREAM_URL_ENV)
            or upstream_raw.get("base_url", "http://localhost:8000")
        ),
        path=upstream_raw.get("path", "/agent"),
        timeout=float(upstream_raw.get("timeout", 120.0)),
        connect_timeout=float(upstream_raw.get("connect_timeout", 10.0)),
    )

    server_raw = _section(raw, "server")
    server = ServerConfig(
        host=server_raw.get("host", "127.0.0.1"),
        port=int(server_raw.get("port", 5858)),
        mock=bool(server_raw.get("mock", False)),
    )

    return AgentStreamConfig(
        version=str(raw.get("version", "0.1")),
        tags=tags,
        filters=filters,
        upstream=upstream,
        server=server,
    )


def validate_config(config: AgentStreamConfig) -> list[str]:
    """Validate a config. Returns list of error strings (empty = valid)."""
    errors: list[str] = []

    errors.extend(tag_errors(config.tags.tool, config.tags.model))

    if not config.filters.stream_event:
        errors.append("filters.stream_event must be set")
    if not config.filters.generation_node:
        errors.append("filters.generation_node must be set")

    if not config.upstream.base_url.startswith(("http://", "https://")):
        errors.append(
            f"upstream.base_url must be an http(s) URL, got {config.upstream.base_url!r}"
        )
    if not config.upstream.path.startswith("/"):
        errors.append(f"upstream.path must start with '/', got {config.upstream.path!r}")
    if config.upstream.timeout <= 0 or config.upstream.connect_timeout <= 0:
        errors.append("upstream timeouts must be > 0")

    if not 0 < config.server.port < 65536:
        errors.append(f"server.port out of range: {config.server.port}")

    return errors


def load_config(
    config_path: str | Path | None = None,
    config_dict: dict | None = None,
) -> AgentStreamConfig:
    """Load config from dict, explicit path, or auto-discover."""
    if config_dict is not None:
        return _build_config(config_dict)

    if config_path is not None:
        path = Path(config_path)
    else:
        path = _discover_config()

    if path is None:
        # Return defaults
        return _build_config({})

    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text()
    if path.suffix == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text) or {}

    return _build_config(raw)


def config_to_dict(config: AgentStreamConfig) -> dict[str, Any]:
    """Plain-dict view of a config, in the same shape ``load_config`` reads."""
    return {
        "version": config.version,
        "tags": {"tool": config.tags.tool, "model": config.tags.model},
        "filters": {
            "stream_event": config.filters.stream_event,
            "generation_node": config.filters.generation_node,
        },
        "upstream": {
            "base_url": config.upstream.base_url,
            "path": config.upstream.path,
            "timeout": config.upstream.timeout,
            "connect_timeout": config.upstream.connect_timeout,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
            "mock": config.server.mock,
        },
    }

"""HTTP front end: relays the upstream agent stream as server-sent events.

Usage:
    agent-stream -c agent-stream.yaml serve --port 5858
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ..config import CONFIG_ENV, load_config, validate_config
from ..core.demux import StreamDemultiplexer
from ..tags import TagTable
from ..types import AgentStreamConfig, ConfigError, UpstreamError
from ..upstream import AgentClient, MockAgentClient
from .relay import relay_events
from .sse import encode_event

logger = logging.getLogger(__name__)

_SSE_HEADERS = {
    "cache-control": "no-cache",
    "x-accel-buffering": "no",
}


def _upstream_failure(exc: UpstreamError) -> JSONResponse:
    status = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
    return JSONResponse(content={"error": str(exc)}, status_code=status)


async def _read_question(request: Request) -> tuple[str, object] | JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(content={"error": "Request body must be JSON"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse(content={"error": "Request body must be a JSON object"}, status_code=400)
    question = body.get("question")
    if not isinstance(question, str) or not question.strip():
        return JSONResponse(content={"error": "'question' must be a non-empty string"}, status_code=422)
    return question, body.get("thread_id")


def create_app(
    config: AgentStreamConfig | None = None,
    *,
    client: AgentClient | MockAgentClient | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Loaded configuration. Read from ``$AGENT_STREAM_CONFIG`` or
            auto-discovered when omitted.
        client: Upstream client to use instead of the one the config selects.
    """
    if config is None:
        config = load_config(os.environ.get(CONFIG_ENV))
    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))

    tags = TagTable.from_config(config.tags)
    if client is None:
        if config.server.mock:
            client = MockAgentClient(tags=tags, filters=config.filters)
        else:
            client = AgentClient(config.upstream)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        yield
        await client.aclose()

    app = FastAPI(title="agent-stream", lifespan=lifespan)
    app.state.config = config

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "upstream": "mock" if isinstance(client, MockAgentClient) else config.upstream.base_url,
        }

    @app.post("/agent/stream")
    async def agent_stream(request: Request):
        parsed = await _read_question(request)
        if isinstance(parsed, JSONResponse):
            return parsed
        question, thread_id = parsed

        session_id = uuid.uuid4().hex[:12]
        try:
            upstream = await client.open_stream(question, thread_id)
        except UpstreamError as e:
            logger.error("[%s] upstream request failed: %s", session_id, e)
            return _upstream_failure(e)

        demux = StreamDemultiplexer(
            tags=tags,
            filters=config.filters,
            session_id=session_id,
        )
        logger.info("[%s] streaming thread=%s", session_id, thread_id)

        async def body():
            async for event in relay_events(upstream, demux):
                yield encode_event(event)

        return StreamingResponse(body(), media_type="text/event-stream", headers=_SSE_HEADERS)

    @app.post("/agent")
    async def agent(request: Request):
        parsed = await _read_question(request)
        if isinstance(parsed, JSONResponse):
            return parsed
        question, thread_id = parsed
        try:
            result = await client.ask(question, thread_id)
        except UpstreamError as e:
            logger.error("Upstream request failed: %s", e)
            return _upstream_failure(e)
        return JSONResponse(content=result)

    return app

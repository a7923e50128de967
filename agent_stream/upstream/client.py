"""AgentClient: httpx client for the upstream LangGraph agent service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..types import UpstreamConfig, UpstreamError

logger = logging.getLogger(__name__)


def _error_text(body: bytes) -> str:
    return body[:200].decode("utf-8", errors="replace")


class UpstreamStream:
    """An open streaming response. Iterate for raw byte chunks.

    Transport errors while reading surface as ``UpstreamError``. The response
    is closed when iteration ends or ``aclose()`` is called, whichever comes
    first; closing early cancels the upstream request.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self.status_code = response.status_code

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream stream error: {e}") from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self._response.is_closed:
            await self._response.aclose()

    @property
    def closed(self) -> bool:
        return self._response.is_closed


class AgentClient:
    """POSTs ``{"question", "thread_id"}`` to the agent endpoint."""

    def __init__(
        self,
        config: UpstreamConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or UpstreamConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
        )

    @property
    def url(self) -> str:
        return self.config.base_url.rstrip("/") + self.config.path

    def _payload(self, question: str, thread_id: int | str | None) -> dict:
        return {"question": question, "thread_id": thread_id}

    async def open_stream(
        self, question: str, thread_id: int | str | None = None,
    ) -> UpstreamStream:
        """Send the request and return once response headers have arrived.

        Non-2xx responses are drained and raised as ``UpstreamError`` before
        any body byte is handed out.
        """
        req = self._client.build_request(
            "POST",
            self.url,
            json=self._payload(question, thread_id),
            headers={"Content-Type": "application/json"},
        )
        try:
            response = await self._client.send(req, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"HTTP error: {e}") from e

        if response.status_code >= 300:
            body = await response.aread()
            await response.aclose()
            raise UpstreamError(
                f"HTTP {response.status_code}: {_error_text(body)}",
                status_code=response.status_code,
            )

        logger.debug("Upstream stream open: %s thread=%s", self.url, thread_id)
        return UpstreamStream(response)

    async def stream(
        self, question: str, thread_id: int | str | None = None,
    ) -> AsyncIterator[bytes]:
        """Shortcut: open the stream and iterate it."""
        upstream = await self.open_stream(question, thread_id)
        async for chunk in upstream:
            yield chunk

    async def ask(self, question: str, thread_id: int | str | None = None) -> Any:
        """Non-streaming request. Returns the decoded JSON body."""
        try:
            response = await self._client.post(
                self.url,
                json=self._payload(question, thread_id),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"HTTP error: {e}") from e

        if response.status_code >= 300:
            raise UpstreamError(
                f"HTTP {response.status_code}: {_error_text(response.content)}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Upstream returned invalid JSON: {_error_text(response.content)}",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

"""Upstream Relay — one outbound MCP call, decoded incrementally into content chunks.

Invariants:
    - Exactly one outbound POST per call(); no retries (retry policy belongs to the caller)
    - Connection failures and non-2xx statuses raise UpstreamUnreachableError
    - A 2xx answer without a body raises UpstreamStreamMissingError
    - Each call gets a fresh SSEFrameDecoder; decoder state is never shared
    - Chunks are yielded as soon as their frame decodes (no whole-body buffering)
    - Errors while reading surface as MidStreamFailureError at the failing pull
    - The upstream response is closed however the generator ends (done, error, aclose)

Design Decisions:
    - Wrapper over a shared httpx.AsyncClient: connection pool reused across requests,
      error mapping isolated from the dispatcher (ADR: single responsibility)
    - Async generator + aclosing(): consumer cancellation closes the in-flight read
    - `event: end` from upstream ends the relay; `event: error` becomes MidStreamFailureError
    - application/json answers are accepted too (single-document upstreams)
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx

from mcp_relay.core.domain_types import ContentChunk
from mcp_relay.core.errors import (
    ErrorContext,
    MidStreamFailureError,
    UpstreamStreamMissingError,
    UpstreamUnreachableError,
)
from mcp_relay.core.sse_decoder import (
    SSEEvent, SSEFrameDecoder, chunk_from_item, extract_content, normalize_event,
)

logger = logging.getLogger(__name__)

_NO_BODY_STATUSES = frozenset({204, 205})


@dataclass(frozen=True)
class UpstreamRequest:
    """Outbound call shape: same {method, params} as the inbound call."""
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    stream: bool = True

    def to_payload(self) -> dict:
        return {"method": self.method, "params": self.params, "stream": self.stream}


def create_upstream_client(
    timeout_seconds: float = 300, connect_timeout_seconds: float = 10,
) -> httpx.AsyncClient:
    """Shared client for all relay calls — created once in the app lifespan."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
        follow_redirects=True,
    )


class UpstreamRelay:
    """Relays one upstream MCP call as a lazy ContentStream."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def call(self, request: UpstreamRequest) -> AsyncIterator[ContentChunk]:
        """Async generator yielding normalized chunks in upstream order."""
        ctx = ErrorContext(method=request.method)
        delivered = 0
        async with self._open(request, ctx) as response:
            if _is_json(response):
                for chunk in await self._read_document(response, ctx):
                    delivered += 1
                    yield chunk
            else:
                try:
                    async with aclosing(self._read_events(response, ctx)) as events:
                        async for event in events:
                            if event.event == "end":
                                break
                            if event.event == "error":
                                raise MidStreamFailureError(
                                    _error_message(event), delivered, ctx,
                                )
                            for chunk in normalize_event(event):
                                delivered += 1
                                yield chunk
                except MidStreamFailureError as e:
                    e.chunks_delivered = delivered
                    raise
        logger.info(
            "Upstream relay completed",
            extra={"method": request.method, "chunk_count": delivered},
        )

    @asynccontextmanager
    async def _open(self, request: UpstreamRequest, ctx: ErrorContext):
        """Send the request; map connection/status failures; always close."""
        outbound = self.client.build_request(
            "POST", self.url,
            json=request.to_payload(),
            headers={"Accept": "text/event-stream, application/json"},
        )
        try:
            response = await self.client.send(outbound, stream=True)
        except httpx.TransportError as e:
            logger.warning(
                f"Upstream connect failed: {e!r}", extra={"method": request.method},
            )
            raise UpstreamUnreachableError(
                f"Upstream MCP unreachable: {e}", context=ctx,
            ) from e

        try:
            if not response.is_success:
                logger.warning(
                    "Upstream returned non-success status",
                    extra={
                        "method": request.method,
                        "upstream_status": response.status_code,
                    },
                )
                raise UpstreamUnreachableError(
                    f"Upstream MCP returned HTTP {response.status_code}",
                    status_code=response.status_code, context=ctx,
                )
            if _has_no_body(response):
                raise UpstreamStreamMissingError(ctx)
            yield response
        finally:
            await response.aclose()

    async def _read_events(
        self, response: httpx.Response, ctx: ErrorContext,
    ) -> AsyncIterator[SSEEvent]:
        """Feed body fragments through a fresh decoder, yielding events as they complete."""
        decoder = SSEFrameDecoder()
        try:
            async for fragment in response.aiter_bytes():
                for event in decoder.feed(fragment):
                    yield event
        except httpx.HTTPError as e:
            logger.error(
                f"Upstream stream failed mid-read: {e!r}",
                extra={"method": ctx.method},
            )
            raise MidStreamFailureError(
                f"Upstream stream interrupted: {e}", context=ctx,
            ) from e
        for event in decoder.close():
            yield event

    async def _read_document(
        self, response: httpx.Response, ctx: ErrorContext,
    ) -> list[ContentChunk]:
        """Single JSON document answer: its content list, else the raw body as text."""
        try:
            body = await response.aread()
        except httpx.HTTPError as e:
            raise MidStreamFailureError(
                f"Upstream body read failed: {e}", context=ctx,
            ) from e
        text = body.decode(response.encoding or "utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except ValueError:
            return [ContentChunk.of_text(text)] if text else []
        content = extract_content(payload)
        if content is None:
            return [ContentChunk.of_text(json.dumps(payload, ensure_ascii=False))]
        return [chunk_from_item(item) for item in content]


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


def _has_no_body(response: httpx.Response) -> bool:
    if response.status_code in _NO_BODY_STATUSES:
        return True
    return response.headers.get("content-length") == "0"


def _error_message(event: SSEEvent) -> str:
    """Message of an upstream `event: error` frame ({"message": ...} or raw data)."""
    try:
        payload = json.loads(event.data)
    except ValueError:
        return event.data or "Upstream reported an error"
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return event.data

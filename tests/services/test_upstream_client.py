"""Upstream Relay — tests against an httpx.MockTransport upstream.

Tests cover:
    - Outbound request shape (POST, JSON {method, params, stream}, Accept header)
    - SSE bodies decoded incrementally into chunks, in order, with raw-text fallback
    - Unterminated final frame flushed; `event: end` stops the relay
    - Connection failure / non-2xx -> UpstreamUnreachableError; 204 -> UpstreamStreamMissingError
    - Mid-read failure and upstream `event: error` -> MidStreamFailureError after partial delivery
    - application/json answers; response closed when the consumer stops early
"""

import json

import httpx
import pytest

from mcp_relay.core.domain_types import ContentChunk
from mcp_relay.core.errors import (
    MidStreamFailureError, UpstreamStreamMissingError, UpstreamUnreachableError,
)
from mcp_relay.infrastructure.upstream_client import UpstreamRelay, UpstreamRequest

URL = "http://upstream.test/sse"
SSE = {"content-type": "text/event-stream"}


def _frame(text: str) -> bytes:
    payload = {"content": [{"type": "text", "text": text}]}
    return f"data: {json.dumps(payload)}\n\n".encode()


class _Body(httpx.AsyncByteStream):
    """Streams the given parts; raises `error` after them; records aclose()."""

    def __init__(self, parts, error: Exception | None = None):
        self.parts = parts
        self.error = error
        self.closed = False
        self.sent = 0

    async def __aiter__(self):
        for part in self.parts:
            self.sent += 1
            yield part
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


def _relay(handler) -> UpstreamRelay:
    return UpstreamRelay(httpx.AsyncClient(transport=httpx.MockTransport(handler)), URL)


async def _collect(relay, request=None):
    request = request or UpstreamRequest("query", {"query": "q"})
    return [c async for c in relay.call(request)]


async def test_outbound_request_carries_method_params_and_stream_flag():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, headers=SSE, content=_frame("ok"))

    await _collect(_relay(handler), UpstreamRequest("query", {"query": "fastapi"}))

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert json.loads(request.content) == {
        "method": "query", "params": {"query": "fastapi"}, "stream": True,
    }
    assert "text/event-stream" in request.headers["accept"]


async def test_sse_body_split_mid_frame_yields_chunks_in_order():
    raw = _frame("one") + b"data: plain text\n\n" + _frame("three")
    parts = [raw[i:i + 7] for i in range(0, len(raw), 7)]
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, stream=_Body(parts)))

    assert await _collect(relay) == [
        ContentChunk.of_text("one"),
        ContentChunk.of_text("plain text"),
        ContentChunk.of_text("three"),
    ]


async def test_unterminated_final_frame_is_relayed():
    body = _frame("one") + b"data: tail without delimiter"
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, content=body))
    chunks = await _collect(relay)
    assert chunks[-1] == ContentChunk.of_text("tail without delimiter")


async def test_upstream_end_event_stops_the_relay():
    body = _frame("one") + b"event: end\n\n" + _frame("after end")
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, content=body))
    assert await _collect(relay) == [ContentChunk.of_text("one")]


async def test_connection_failure_raises_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnreachableError) as exc:
        await _collect(_relay(handler))
    assert "connection refused" in exc.value.message
    assert exc.value.status_code is None


async def test_non_success_status_raises_unreachable_without_reading_body():
    relay = _relay(lambda request: httpx.Response(503, content=b"busy"))
    with pytest.raises(UpstreamUnreachableError) as exc:
        await _collect(relay)
    assert exc.value.status_code == 503
    assert exc.value.message == "Upstream MCP returned HTTP 503"


async def test_success_without_body_raises_stream_missing():
    relay = _relay(lambda request: httpx.Response(204))
    with pytest.raises(UpstreamStreamMissingError) as exc:
        await _collect(relay)
    assert exc.value.message == "No stream from upstream MCP"


async def test_mid_read_failure_surfaces_after_partial_delivery():
    body = _Body(
        [_frame("one"), _frame("two")],
        error=httpx.ReadError("connection reset"),
    )
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, stream=body))

    received = []
    with pytest.raises(MidStreamFailureError) as exc:
        async for chunk in relay.call(UpstreamRequest("query", {"query": "q"})):
            received.append(chunk)

    assert received == [ContentChunk.of_text("one"), ContentChunk.of_text("two")]
    assert exc.value.chunks_delivered == 2
    assert body.closed


async def test_upstream_error_event_raises_with_its_message():
    body = _frame("one") + b'event: error\ndata: {"message": "quota exceeded"}\n\n'
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, content=body))

    received = []
    with pytest.raises(MidStreamFailureError) as exc:
        async for chunk in relay.call(UpstreamRequest("query", {})):
            received.append(chunk)

    assert received == [ContentChunk.of_text("one")]
    assert exc.value.message == "quota exceeded"
    assert exc.value.chunks_delivered == 1


async def test_json_document_answer_is_unwrapped():
    payload = {"result": {"content": [
        {"type": "text", "text": "a"}, {"type": "text", "text": "b"},
    ]}}
    relay = _relay(lambda request: httpx.Response(200, json=payload))
    assert await _collect(relay) == [ContentChunk.of_text("a"), ContentChunk.of_text("b")]


async def test_json_document_without_content_is_relayed_as_text():
    relay = _relay(lambda request: httpx.Response(200, json={"status": "ok"}))
    assert await _collect(relay) == [ContentChunk.of_text('{"status": "ok"}')]


async def test_consumer_closing_early_closes_upstream_response():
    body = _Body([_frame(str(i)) for i in range(5)])
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, stream=body))

    stream = relay.call(UpstreamRequest("query", {}))
    first = await stream.__anext__()
    await stream.aclose()

    assert first == ContentChunk.of_text("0")
    assert body.closed
    assert body.sent < 5


async def test_each_call_uses_a_fresh_decoder():
    # First body leaves an unterminated tail; it must not leak into the second call.
    bodies = iter([b"data: left", _frame("clean")])
    relay = _relay(lambda request: httpx.Response(200, headers=SSE, content=next(bodies)))
    assert await _collect(relay) == [ContentChunk.of_text("left")]
    assert await _collect(relay) == [ContentChunk.of_text("clean")]

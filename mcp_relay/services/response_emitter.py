"""Response Emitter — serializes a DispatchResult as one JSON document or as an SSE stream.

Invariants:
    - Chunks are pulled strictly in order, one at a time (single-item lookahead)
    - Exactly one terminal frame per streaming response (`end` or `error`), always last
    - After an error frame nothing else is pulled or written
    - Client disconnect / deadline expiry: stop pulling, close the source, write nothing more

Design Decisions:
    - Async generator consumed by StreamingResponse: the write rate gates the upstream read rate
    - Pre-stream failures are wrapped in a failing source so they reuse the same error framing
    - Deadline expiry behaves like a disconnect (ADR: one cancellation path)
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from mcp_relay.core.domain_types import (
    ContentChunk, ContentResult, DispatchResult, is_stream,
)
from mcp_relay.core.errors import RelayError
from mcp_relay.core.sse_frames import END_FRAME, data_frame, error_frame

logger = logging.getLogger(__name__)

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

# Non-RelayError failures never reach the client; details stay in the log.
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class DeadlineExpired(Exception):
    """Whole-pipeline deadline elapsed while waiting for the next chunk."""


def emit_buffered(result: ContentResult) -> dict:
    """Buffered success document."""
    return {"result": result.to_dict()}


def emit_error(exc: RelayError) -> dict:
    """Buffered error document."""
    return exc.to_response()


async def emit_stream(
    result: DispatchResult, deadline_seconds: float | None = None,
) -> AsyncIterator[str]:
    """Yield outward SSE frames for result, ending with exactly one terminal frame."""
    source = _as_stream(result)
    delivered = 0
    try:
        async with aclosing(_pull(source, deadline_seconds)) as chunks:
            async for chunk in chunks:
                yield data_frame(chunk)
                delivered += 1
    except asyncio.CancelledError:
        logger.info(
            "Client disconnected from stream", extra={"chunk_count": delivered},
        )
        raise
    except DeadlineExpired:
        logger.info(
            "Stream deadline of %ss expired", deadline_seconds,
            extra={"chunk_count": delivered},
        )
        return
    except RelayError as e:
        logger.warning(
            f"Stream failed: {e.message}",
            extra={"error_code": e.code, "chunk_count": delivered},
        )
        yield error_frame(e.message)
        return
    except Exception as e:
        logger.error(
            f"Unexpected error while streaming: {e}",
            extra={"chunk_count": delivered}, exc_info=True,
        )
        yield error_frame(UNEXPECTED_ERROR_MESSAGE)
        return
    finally:
        await _close(source)
    yield END_FRAME


def failed_stream(exc: BaseException) -> AsyncIterator[ContentChunk]:
    """A ContentStream whose first pull raises exc."""
    async def _raise():
        raise exc
        yield  # pragma: no cover

    return _raise()


async def _replay(result: ContentResult) -> AsyncIterator[ContentChunk]:
    for chunk in result.content:
        yield chunk


def _as_stream(result: DispatchResult) -> AsyncIterator[ContentChunk]:
    if is_stream(result):
        return result
    return _replay(result)


async def _pull(
    source: AsyncIterator[ContentChunk], deadline_seconds: float | None,
) -> AsyncIterator[ContentChunk]:
    """Pull chunks one at a time, bounded by an optional whole-stream deadline."""
    if deadline_seconds is None:
        async for chunk in source:
            yield chunk
        return

    loop = asyncio.get_running_loop()
    deadline_at = loop.time() + deadline_seconds
    while True:
        remaining = deadline_at - loop.time()
        if remaining <= 0:
            raise DeadlineExpired()
        try:
            done, chunk = await asyncio.wait_for(_next(source), remaining)
        except asyncio.TimeoutError:
            raise DeadlineExpired() from None
        if done:
            return
        yield chunk


async def _next(source: AsyncIterator[ContentChunk]) -> tuple[bool, ContentChunk | None]:
    try:
        return False, await source.__anext__()
    except StopAsyncIteration:
        return True, None


async def _close(source: AsyncIterator[ContentChunk]) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()

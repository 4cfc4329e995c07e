"""MCP Route — the single inbound method-call endpoint plus method discovery.

Invariants:
    - stream=false: one JSON document ({"result": ...} or, via error handlers, {"error": ...})
    - stream=true: text/event-stream ending in exactly one `end` or `error` frame
    - Pre-stream failures on a stream request are still delivered as an SSE error frame
    - Routes never contain relay logic (delegate to Dispatcher / response_emitter)

Design Decisions:
    - Dispatcher and settings read from app.state: built once in the lifespan, no globals
    - StreamingResponse over the emitter generator: disconnect closes the whole pipeline
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from mcp_relay.config import Settings
from mcp_relay.core.errors import RelayError
from mcp_relay.schemas.rpc import McpCall, MethodInfo
from mcp_relay.services.dispatcher import Dispatcher
from mcp_relay.services.response_emitter import (
    SSE_HEADERS, emit_buffered, emit_stream, failed_stream,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/mcp", tags=["mcp"])


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("")
async def call_method(
    body: McpCall,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
):
    """Dispatch one method call in buffered or streaming mode."""
    if not body.stream:
        result = await dispatcher.dispatch(body.method, body.params, wants_stream=False)
        return JSONResponse(content=emit_buffered(result))

    try:
        result = await dispatcher.dispatch(body.method, body.params, wants_stream=True)
    except RelayError as e:
        logger.warning(
            f"Stream request rejected: {e.message}",
            extra={"method": body.method, "error_code": e.code},
        )
        result = failed_stream(e)

    return StreamingResponse(
        emit_stream(result, settings.stream_deadline_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/methods", response_model=list[MethodInfo])
async def list_methods(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Registered methods in registration order."""
    return [spec.describe() for spec in dispatcher.registry.list_methods()]

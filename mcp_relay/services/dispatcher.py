"""Dispatcher — routes a method call to its local handler or to the upstream relay.

Invariants:
    - Unknown methods raise MethodNotFoundError before any handler is touched
    - Exactly one handler invocation per dispatch; upstream methods make exactly one outbound call
    - Upstream + stream: the relay's ContentStream is returned as-is (no materialization)
    - Upstream + buffered: the stream is drained here and concatenated in order
    - Local handlers return the same ContentResult whether or not a stream was requested

Design Decisions:
    - Relay behind a Protocol: tests swap in a fake without touching httpx
      (ADR: Protocol over ABC, structural subtyping)
    - Lookup and param validation happen eagerly; relay errors surface at the first pull
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any, Protocol

from mcp_relay.core.domain_types import ContentChunk, ContentResult, DispatchResult
from mcp_relay.core.method_registry import MethodRegistry, MethodSpec
from mcp_relay.infrastructure.upstream_client import UpstreamRequest

logger = logging.getLogger(__name__)


class ContentRelay(Protocol):
    """Contract for the upstream relay — implemented by infrastructure."""
    def call(self, request: UpstreamRequest) -> AsyncIterator[ContentChunk]: ...


class Dispatcher:
    """Resolves a method via the registry and produces its DispatchResult."""

    def __init__(self, registry: MethodRegistry, relay: ContentRelay):
        self.registry = registry
        self.relay = relay

    async def dispatch(
        self, method: str, params: dict[str, Any] | None, wants_stream: bool,
    ) -> DispatchResult:
        spec = self.registry.lookup(method)
        params = params or {}
        logger.debug(
            "Dispatching %s (stream=%s)", method, wants_stream,
            extra={"method": method},
        )
        if not spec.is_upstream:
            return await spec.handler(params)

        stream = self.relay.call(self._upstream_request(spec, params))
        if wants_stream:
            return stream
        return await collect(stream)

    def _upstream_request(
        self, spec: MethodSpec, params: dict[str, Any],
    ) -> UpstreamRequest:
        upstream_params = spec.build_params(params) if spec.build_params else dict(params)
        return UpstreamRequest(method=spec.upstream_method, params=upstream_params)


async def collect(stream: AsyncIterator[ContentChunk]) -> ContentResult:
    """Drive a ContentStream to completion (buffered mode)."""
    async with aclosing(stream):
        chunks = [chunk async for chunk in stream]
    return ContentResult.of(chunks)

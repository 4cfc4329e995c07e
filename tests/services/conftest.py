"""Service test fixtures — fake upstream relay and a real method registry.

Invariants:
    - fake_relay records every UpstreamRequest it receives
    - fake_relay streams are real async generators (single-pass, closable)
    - a configured failure is raised after the configured chunks were yielded

Design Decisions:
    - Fake at the ContentRelay Protocol boundary: dispatcher tests never touch httpx
"""

import pytest

from mcp_relay.config import Settings
from mcp_relay.core.domain_types import ContentChunk
from mcp_relay.services.method_catalog import build_registry


class FakeRelay:
    """Controllable ContentRelay: yields `chunks`, then raises `error` if set."""

    def __init__(self):
        self.calls = []
        self.chunks: list[ContentChunk] = []
        self.error: Exception | None = None
        self.pulled = 0
        self.closed = False

    def call(self, request):
        self.calls.append(request)
        return self._stream()

    async def _stream(self):
        try:
            for chunk in self.chunks:
                self.pulled += 1
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


@pytest.fixture
def fake_relay():
    return FakeRelay()


@pytest.fixture
def settings():
    return Settings(
        upstream_url="http://upstream.test/sse",
        flowgram_base_url="http://flowgram.ai",
    )


@pytest.fixture
def registry(settings):
    return build_registry(settings)

"""API test fixtures — FastAPI app with a mock upstream + httpx test client.

Invariants:
    - Every test gets a fresh app whose lifespan ran (registry frozen, dispatcher built)
    - The upstream is an httpx.MockTransport; `upstream` lets each test set its response
    - No network access: the ASGI app is called in-process through ASGITransport

Design Decisions:
    - lifespan_context entered explicitly: ASGITransport does not send lifespan events
    - Upstream handler stored in a dict so tests can swap it after the app is built
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from mcp_relay.config import Settings
from mcp_relay.main import create_app


@pytest.fixture
def upstream():
    """Controls the mock upstream: set upstream["handler"] to a request -> Response callable."""
    state = {
        "handler": lambda request: httpx.Response(500),
        "requests": [],
    }
    return state


@pytest.fixture
def api_settings():
    return Settings(
        upstream_url="http://upstream.test/sse",
        flowgram_base_url="http://flowgram.ai",
        log_format="text",
    )


@pytest.fixture
async def app(api_settings, upstream):
    def dispatch(request):
        upstream["requests"].append(request)
        return upstream["handler"](request)

    upstream_client = httpx.AsyncClient(transport=httpx.MockTransport(dispatch))
    application = create_app(api_settings, upstream_client=upstream_client)
    async with application.router.lifespan_context(application):
        yield application
    await upstream_client.aclose()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

"""MCP Relay API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery — ExMA anti-pattern)
    - Method registry built and frozen once, in the lifespan, before any request is served
    - One shared httpx.AsyncClient per process, closed on shutdown
    - Global error handlers map RelayError → {"error", "code"} JSON documents
    - CORS configured from settings (not hardcoded)

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app() factory: tests inject settings and an upstream client backed by
      httpx.MockTransport; the module-level `app` uses the environment
    - A duplicate method registration raises inside the lifespan and aborts startup
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcp_relay.api.error_handlers import register_error_handlers
from mcp_relay.api.routes import health, mcp
from mcp_relay.config import Settings, get_settings
from mcp_relay.infrastructure.observability import setup_logging
from mcp_relay.infrastructure.upstream_client import (
    UpstreamRelay, create_upstream_client,
)
from mcp_relay.services.dispatcher import Dispatcher
from mcp_relay.services.method_catalog import build_registry

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    upstream_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI app. An injected upstream_client is not closed on shutdown."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        registry = build_registry(settings)
        client = upstream_client or create_upstream_client(
            settings.upstream_timeout_seconds,
            settings.upstream_connect_timeout_seconds,
        )
        app.state.settings = settings
        app.state.registry = registry
        app.state.upstream_client = client
        app.state.dispatcher = Dispatcher(
            registry, UpstreamRelay(client, settings.upstream_url),
        )
        logger.info("MCP Relay API started (upstream=%s)", settings.upstream_url)
        try:
            yield
        finally:
            if upstream_client is None:
                await client.aclose()
            logger.info("MCP Relay API shutting down")

    app = FastAPI(title="MCP Relay API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes — explicit registration (ExMA: no convention-over-config)
    app.include_router(health.router)
    app.include_router(mcp.router)

    register_error_handlers(app)
    return app


app = create_app()

"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 until the registry is frozen and the upstream client is open

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Readiness never calls the upstream (a slow upstream must not flap the probe)
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "mcp-relay",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe — registry built and upstream client open."""
    registry = getattr(request.app.state, "registry", None)
    client = getattr(request.app.state, "upstream_client", None)
    registry_ok = registry is not None and registry.frozen
    client_ok = client is not None and not client.is_closed
    if not (registry_ok and client_ok):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": {
                    "registry": "ok" if registry_ok else "missing",
                    "upstream_client": "ok" if client_ok else "closed",
                },
            },
        )
    return {
        "status": "ready",
        "checks": {"registry": "ok", "upstream_client": "ok"},
        "methods": len(registry),
    }

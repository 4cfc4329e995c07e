"""Error Hierarchy — typed, categorized exceptions for every relay failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller errors (400-level) are never retried; upstream errors (502) are not retried by the core
    - to_response() produces the JSON error document; to_sse_event() produces the SSE error payload
    - Registry configuration errors only ever surface at startup

Design Decisions:
    - Single hierarchy with RelayError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: method/upstream detail for logs without coupling to logging
    - DecodeAnomaly is NOT an exception: unparseable frames fall back to raw text (see sse_decoder)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    method: str | None = None
    upstream_status: int | None = None
    debug_info: dict[str, Any] | None = None


class RelayError(Exception):
    """Base exception for all relay errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the buffered-mode JSON error document."""
        return {"error": self.message, "code": self.code}

    def to_sse_event(self) -> dict:
        """Payload of the terminal `event: error` frame."""
        return {"message": self.message}


# ─── Caller Errors (400-level) ──────────────────────────────────

class MethodNotFoundError(RelayError):
    """Method name is not registered."""
    def __init__(self, method: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.method = method
        super().__init__(
            f"Unknown MCP method: {method}",
            "METHOD_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, ctx, 404,
        )
        self.method = method


class InvalidParamsError(RelayError):
    """A handler rejected its params."""
    def __init__(
        self, method: str, detail: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.method = method
        super().__init__(
            f"Invalid params for '{method}': {detail}",
            "INVALID_PARAMS", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, ctx, 400,
        )
        self.method = method
        self.detail = detail


# ─── Upstream Errors (502) ──────────────────────────────────────

class UpstreamUnreachableError(RelayError):
    """Outbound call could not be established or returned non-success."""
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.upstream_status = status_code
        super().__init__(
            message, "UPSTREAM_UNREACHABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx, 502,
        )
        self.status_code = status_code


class UpstreamStreamMissingError(RelayError):
    """Upstream answered with success but gave no readable body."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No stream from upstream MCP",
            "UPSTREAM_STREAM_MISSING", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )


class MidStreamFailureError(RelayError):
    """Upstream closed or errored after partial delivery."""
    def __init__(
        self,
        message: str,
        chunks_delivered: int = 0,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "MID_STREAM_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.chunks_delivered = chunks_delivered


# ─── Configuration Errors (startup only) ────────────────────────

class DuplicateMethodError(RelayError):
    """Two registrations for the same method name."""
    def __init__(self, method: str):
        super().__init__(
            f"Method '{method}' is already registered",
            "DUPLICATE_METHOD", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, ErrorContext(method=method), 500,
        )
        self.method = method


class RegistryFrozenError(RelayError):
    """Registration attempted after the registry was closed."""
    def __init__(self, method: str):
        super().__init__(
            f"Cannot register '{method}': method registry is frozen",
            "REGISTRY_FROZEN", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, ErrorContext(method=method), 500,
        )
        self.method = method

"""RPC Schemas — Pydantic models for the inbound method call and discovery responses.

Invariants:
    - McpCall.method is non-empty and stripped
    - McpCall.params defaults to {} (missing or null both accepted)
    - stream defaults to False (buffered mode)
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class McpCall(BaseModel):
    """Inbound call — {method, params, stream}."""
    method: str = Field(min_length=1, max_length=200)
    params: dict[str, Any] = Field(default_factory=dict)
    stream: bool = False

    @field_validator("method")
    @classmethod
    def strip_method(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("method cannot be empty or whitespace")
        return v

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, v: Any) -> Any:
        return {} if v is None else v


class MethodInfo(BaseModel):
    """One entry of GET /api/v1/mcp/methods."""
    name: str
    kind: str
    category: str
    description: str

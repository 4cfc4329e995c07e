"""Local Methods — in-process MCP tools, prompts and resources.

Invariants:
    - Every handler validates its params with a pydantic model first
    - Validation failures raise InvalidParamsError (never pydantic's ValidationError)
    - Handlers are pure: same params -> same ContentResult, no IO
"""

from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from mcp_relay.core.domain_types import ContentChunk, ContentKind, ContentResult
from mcp_relay.core.errors import InvalidParamsError

P = TypeVar("P", bound=BaseModel)

# Sub-delims kept literal in query values, on top of quote()'s unreserved set
_URI_COMPONENT_SAFE = "!*'()"


class AddParams(BaseModel):
    a: int | float
    b: int | float


class QueryParams(BaseModel):
    query: str


class ReviewCodeParams(BaseModel):
    code: str


class ResourceParams(BaseModel):
    uri: str


def validate_params(method: str, model: type[P], params: dict[str, Any]) -> P:
    """Validate raw params against model, mapping failures to InvalidParamsError."""
    try:
        return model.model_validate(params)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidParamsError(method, detail) from e


def format_number(value: int | float) -> str:
    """Render a sum the way MCP clients expect: 3 not 3.0."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class DemoHandlers:
    """Demonstration methods served without an upstream."""

    def __init__(self, flowgram_base_url: str):
        self.flowgram_base_url = flowgram_base_url.rstrip("/")

    async def add(self, params: dict[str, Any]) -> ContentResult:
        p = validate_params("add", AddParams, params)
        return ContentResult.of_text(format_number(p.a + p.b))

    async def flowgram(self, params: dict[str, Any]) -> ContentResult:
        p = validate_params("flowgram", QueryParams, params)
        link = f"{self.flowgram_base_url}?q={quote(p.query, safe=_URI_COMPONENT_SAFE)}"
        return ContentResult.of_text(f"Flowgram link: {link}")

    async def review_code(self, params: dict[str, Any]) -> ContentResult:
        p = validate_params("review-code", ReviewCodeParams, params)
        return ContentResult.of_text(f"Please review this code:\n\n{p.code}")

    async def filename(self, params: dict[str, Any]) -> ContentResult:
        p = validate_params("filename", ResourceParams, params)
        return ContentResult((
            ContentChunk(ContentKind.RESOURCE, "content of filename", uri=p.uri),
        ))


def deepwiki_params(params: dict[str, Any]) -> dict[str, Any]:
    """Inbound deepwiki params -> upstream `query` params."""
    p = validate_params("deepwiki", QueryParams, params)
    return {"query": p.query}

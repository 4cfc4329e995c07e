"""Domain Types — content values and method classification shared by every layer.

Invariants:
    - ContentChunk is immutable; handlers and the decoder only ever create new chunks
    - ContentResult is fully materialized (tuple, value semantics)
    - ContentStream is single-pass: consuming it twice requires a fresh dispatch
    - All valid kinds/categories encoded as Enums — no raw string matching

Design Decisions:
    - Frozen dataclasses over pydantic models: no validation needed on internal values,
      zero overhead per streamed chunk
    - str Enums: serialize to JSON without custom encoders (ADR: chunks are JSON-encoded per frame)
"""

from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Union


# ─── Enums ───────────────────────────────────────────────────────

class ContentKind(str, Enum):
    """Kind of a content chunk — mirrors the `type` field of MCP content."""
    TEXT = "text"
    RESOURCE = "resource"


class MethodKind(str, Enum):
    """Where a method's result comes from."""
    LOCAL = "local"
    UPSTREAM = "upstream"


class MethodCategory(str, Enum):
    """MCP surface a method belongs to (discovery only, dispatch ignores it)."""
    TOOL = "tool"
    PROMPT = "prompt"
    RESOURCE = "resource"


# ─── Values ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContentChunk:
    """One normalized unit of output content."""
    kind: ContentKind
    text: str
    uri: str | None = None

    @classmethod
    def of_text(cls, text: str) -> "ContentChunk":
        return cls(ContentKind.TEXT, text)

    def to_dict(self) -> dict:
        d = {"type": self.kind.value, "text": self.text}
        if self.uri is not None:
            d["uri"] = self.uri
        return d


@dataclass(frozen=True)
class ContentResult:
    """Aggregate result — ordered, fully materialized chunks."""
    content: tuple[ContentChunk, ...] = ()

    @classmethod
    def of(cls, chunks: Iterable[ContentChunk]) -> "ContentResult":
        return cls(tuple(chunks))

    @classmethod
    def of_text(cls, text: str) -> "ContentResult":
        return cls((ContentChunk.of_text(text),))

    def to_dict(self) -> dict:
        return {"content": [c.to_dict() for c in self.content]}


ContentStream = AsyncIterator[ContentChunk]

DispatchResult = Union[ContentResult, ContentStream]


def is_stream(result: DispatchResult) -> bool:
    """True if result is a lazy ContentStream rather than an aggregate."""
    return not isinstance(result, ContentResult)

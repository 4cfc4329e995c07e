"""SSE Frame Decoder — incremental text/event-stream parser and content normalization.

Invariants:
    - The buffer never holds a complete frame boundary after feed() returns
    - Decoding is chunk-boundary-invariant: any split of the same input yields the same events
    - A trailing CR is a line break at once; an LF opening the next fragment is then
      skipped, so a split CRLF still counts as one line break
    - close() flushes a non-empty unterminated remainder as one final frame (data-preserving)
    - Frames without data, event or id are dropped, never emitted
    - normalize_event never raises: unparseable data becomes one raw text chunk

Design Decisions:
    - Pure, synchronous, no IO: the relay owns the async read loop and feeds fragments in
      (ADR: ExMA impureim sandwich)
    - Incremental UTF-8 decoder for bytes: a multi-byte character split across reads
      decodes the same as when delivered whole
    - One decoder instance per upstream call; instances are never reset or reused
"""

import codecs
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from mcp_relay.core.domain_types import ContentChunk, ContentKind

FRAME_DELIMITER = "\n\n"


@dataclass(frozen=True)
class SSEEvent:
    """One fully decoded upstream frame."""
    data: str = ""
    event: str | None = None
    id: str | None = None


def parse_frame(raw: str) -> SSEEvent | None:
    """Parse one raw frame (lines between delimiters). Returns None for blank frames."""
    data_lines: list[str] = []
    event_name: str | None = None
    event_id: str | None = None

    for line in raw.split("\n"):
        if not line or line.startswith(":"):
            continue
        field_name, sep, value = line.partition(":")
        if not sep:
            continue  # unrecognized line shape
        if value.startswith(" "):
            value = value[1:]
        if field_name == "data":
            data_lines.append(value)
        elif field_name == "event":
            event_name = value
        elif field_name == "id":
            event_id = value

    if not data_lines and event_name is None and event_id is None:
        return None
    return SSEEvent(data="\n".join(data_lines), event=event_name, id=event_id)


class SSEFrameDecoder:
    """Turns arbitrarily chunked text/bytes into an ordered sequence of SSEEvent."""

    def __init__(self, encoding: str = "utf-8"):
        self._buffer = ""
        self._skip_lf = False
        self._bytes_decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._closed = False

    @property
    def buffered(self) -> str:
        """Unconsumed tail since the last frame boundary."""
        return self._buffer

    def feed(self, fragment: str | bytes) -> list[SSEEvent]:
        """Append a fragment and return every frame it completes."""
        if self._closed:
            raise RuntimeError("feed() called on a closed SSEFrameDecoder")
        if isinstance(fragment, (bytes, bytearray)):
            fragment = self._bytes_decoder.decode(bytes(fragment))
        if not fragment:
            return []
        self._append(fragment)
        return self._drain()

    def close(self) -> list[SSEEvent]:
        """Signal end of stream; flush the unterminated remainder as one frame."""
        if self._closed:
            return []
        self._closed = True
        tail = self._bytes_decoder.decode(b"", final=True)
        if tail:
            self._append(tail)
        events = self._drain()
        remainder, self._buffer = self._buffer, ""
        if remainder.strip("\n"):
            event = parse_frame(remainder)
            if event is not None:
                events.append(event)
        return events

    def iter_events(self, fragments: Iterable[str | bytes]) -> Iterator[SSEEvent]:
        """Feed every fragment then close, yielding events as they complete."""
        for fragment in fragments:
            yield from self.feed(fragment)
        yield from self.close()

    def _append(self, text: str) -> None:
        # Previous fragment ended in CR: this LF completes that CRLF.
        if self._skip_lf and text.startswith("\n"):
            text = text[1:]
        self._skip_lf = text.endswith("\r")
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")

    def _drain(self) -> list[SSEEvent]:
        events: list[SSEEvent] = []
        while True:
            idx = self._buffer.find(FRAME_DELIMITER)
            if idx < 0:
                return events
            raw = self._buffer[:idx]
            self._buffer = self._buffer[idx + len(FRAME_DELIMITER):]
            event = parse_frame(raw)
            if event is not None:
                events.append(event)


# ─── Normalization ──────────────────────────────────────────────

def normalize_event(event: SSEEvent) -> list[ContentChunk]:
    """Map a decoded event to content chunks.

    Structured payloads (`{"content": [...]}` or `{"result": {"content": [...]}}`)
    yield one chunk per element, in order. Anything else yields the raw data as a
    single text chunk, so no upstream payload is ever dropped on a parse failure.
    """
    if not event.data:
        return []
    try:
        payload = json.loads(event.data)
    except ValueError:
        return [ContentChunk.of_text(event.data)]
    content = extract_content(payload)
    if content is None:
        return [ContentChunk.of_text(event.data)]
    return [chunk_from_item(item) for item in content]


def extract_content(payload: Any) -> list | None:
    """Return the `content` list of a payload or of its `result`, if any."""
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if isinstance(content, list):
        return content
    result = payload.get("result")
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        return result["content"]
    return None


def chunk_from_item(item: Any) -> ContentChunk:
    """Convert one upstream `content` element into a ContentChunk."""
    if isinstance(item, dict):
        text = item.get("text")
        if isinstance(text, str):
            kind = ContentKind.RESOURCE if item.get("type") == "resource" else ContentKind.TEXT
            uri = item.get("uri") if isinstance(item.get("uri"), str) else None
            return ContentChunk(kind, text, uri)
        return ContentChunk.of_text(json.dumps(item, ensure_ascii=False))
    if isinstance(item, str):
        return ContentChunk.of_text(item)
    return ContentChunk.of_text(json.dumps(item, ensure_ascii=False))

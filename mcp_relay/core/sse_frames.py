"""SSE Frames — outward text/event-stream frame rendering.

Invariants:
    - Every frame ends with a blank line ("\\n\\n")
    - data frames carry exactly one JSON-encoded ContentChunk
    - Terminal frames are `event: end` (no data) or `event: error` with {"message": ...}
"""

import json

from mcp_relay.core.domain_types import ContentChunk

END_FRAME = "event: end\n\n"


def data_frame(chunk: ContentChunk) -> str:
    """Format one content chunk as an SSE data frame."""
    return f"data: {json.dumps(chunk.to_dict(), ensure_ascii=False)}\n\n"


def error_frame(message: str) -> str:
    """Format the terminal error frame."""
    payload = json.dumps({"message": message}, ensure_ascii=False)
    return f"event: error\ndata: {payload}\n\n"

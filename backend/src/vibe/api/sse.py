"""Server-Sent Events framing."""

import json
from typing import Any

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_sse(event: str, data: dict[str, Any]) -> str:
    """Format one SSE frame with a named event and a JSON payload."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"

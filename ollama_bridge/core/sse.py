"""SSE (Server-Sent Events) framing helpers."""

import json
from typing import Any, Mapping, Optional

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


def sse_data_payload(line: str) -> Optional[str]:
    """Return the payload of an SSE ``data:`` line, or None for any other line.

    Comments (``: keep-alive``), ``event:``/``id:`` fields and blank lines all
    return None.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    return line[len(SSE_DATA_PREFIX):].strip()


def format_sse_event(data: Mapping[str, Any]) -> bytes:
    """Serialize one event as a single ``data:`` line followed by a blank line."""
    json_str = json.dumps(data, ensure_ascii=False)
    return f"data: {json_str}\n\n".encode("utf-8")

"""Stream adapter for converting OpenAI Chat Completions SSE to Anthropic Messages SSE.

OpenAI Chat Completion lines (one per backend chunk):
    data: {"choices":[{"delta":{"role":"assistant","content":""},"index":0}]}
    data: {"choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: {"choices":[{"delta":{},"finish_reason":"stop","index":0}]}
    data: [DONE]

Anthropic Messages events emitted for them:
    data: {"type":"message_start","message":{...}}
    data: {"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}
    data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hello"}}
    data: {"type":"content_block_stop","index":0}
    data: {"type":"message_stop"}

All text flows through a single content block (index 0). The block and the
message are always closed, even when the backend sends nothing or fails
midway, so the client always sees a complete event sequence.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from ..core.exceptions import ProxyError
from ..core.sse import SSE_DONE, format_sse_event, sse_data_payload
from .schemas import StreamEvent
from .translator import new_message_id

logger = logging.getLogger("ollama-bridge")

TEXT_BLOCK_INDEX = 0
STREAM_MODEL_LABEL = "unknown"


class StreamState(enum.Enum):
    NOT_STARTED = "not_started"
    MESSAGE_OPEN = "message_open"
    BLOCK_OPEN = "block_open"
    BLOCK_CLOSED = "block_closed"
    MESSAGE_CLOSED = "message_closed"


class LineKind(enum.Enum):
    IGNORED = "ignored"      # not a data line (keep-alive, comment, blank)
    DONE = "done"            # the [DONE] terminator
    MALFORMED = "malformed"  # data line whose payload is not a valid chunk
    CHUNK = "chunk"          # a decoded chunk; text may be empty


@dataclass(frozen=True)
class StreamLine:
    kind: LineKind
    text: str = ""


def _delta_text(chunk: Any) -> str:
    if not isinstance(chunk, dict):
        raise ValueError("chunk is not an object")
    choices = chunk.get("choices")
    if choices is None:
        return ""
    if not isinstance(choices, list):
        raise ValueError("choices is not an array")
    if not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, dict):
        raise ValueError("choice is not an object")
    delta = choice.get("delta")
    if delta is None:
        return ""
    if not isinstance(delta, dict):
        raise ValueError("delta is not an object")
    content = delta.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        raise ValueError("delta content is not a string")
    return content


def decode_stream_line(line: str) -> StreamLine:
    """Classify one line of a backend chat completion stream.

    Pure function: performs no I/O and emits nothing.
    """
    payload = sse_data_payload(line)
    if payload is None:
        return StreamLine(LineKind.IGNORED)
    if payload == SSE_DONE:
        return StreamLine(LineKind.DONE)
    try:
        text = _delta_text(json.loads(payload))
    except ValueError:
        # json.JSONDecodeError is a ValueError too
        return StreamLine(LineKind.MALFORMED)
    return StreamLine(LineKind.CHUNK, text)


class StreamTranslator:
    """Re-frames a flat OpenAI delta stream as Anthropic lifecycle events.

    The translator is an explicit state machine::

        NOT_STARTED -> MESSAGE_OPEN -> BLOCK_OPEN -> BLOCK_CLOSED -> MESSAGE_CLOSED

    ``open``, ``feed`` and ``close`` return event dicts and never touch the
    network, so tests can drive them with canned lines. ``adapt_lines`` and
    ``adapt_stream`` wire them to an async line source.
    """

    def __init__(self, message_id: Optional[str] = None, model: str = STREAM_MODEL_LABEL):
        self.message_id = message_id or new_message_id()
        self.model = model
        self.state = StreamState.NOT_STARTED
        self.saw_done = False
        self.delta_count = 0
        self.skipped_lines = 0

    def open(self) -> list[StreamEvent]:
        """Emit message_start and content_block_start."""
        if self.state is not StreamState.NOT_STARTED:
            raise RuntimeError(f"cannot open stream in state {self.state.value}")

        events = [self._emit_message_start()]
        self.state = StreamState.MESSAGE_OPEN
        events.append(self._emit_content_block_start())
        self.state = StreamState.BLOCK_OPEN
        return events

    def feed(self, line: str) -> Optional[StreamEvent]:
        """Consume one backend line; return a delta event if it carries text."""
        if self.state is not StreamState.BLOCK_OPEN:
            raise RuntimeError(f"cannot feed stream in state {self.state.value}")

        decoded = decode_stream_line(line)
        if decoded.kind is LineKind.DONE:
            self.saw_done = True
            return None
        if decoded.kind is LineKind.MALFORMED:
            self.skipped_lines += 1
            logger.debug("StreamTranslator: skipping malformed line: %s", line[:100])
            return None
        if decoded.kind is LineKind.IGNORED or not decoded.text:
            return None

        self.delta_count += 1
        return self._emit_content_block_delta(decoded.text)

    def close(self) -> list[StreamEvent]:
        """Emit whatever is needed to reach MESSAGE_CLOSED."""
        events: list[StreamEvent] = []
        if self.state is StreamState.NOT_STARTED:
            events.extend(self.open())
        if self.state is StreamState.BLOCK_OPEN:
            events.append(self._emit_content_block_stop())
            self.state = StreamState.BLOCK_CLOSED
        if self.state is StreamState.BLOCK_CLOSED:
            events.append(self._emit_message_stop())
            self.state = StreamState.MESSAGE_CLOSED
        return events

    async def adapt_lines(self, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        """Translate an async source of backend lines into Anthropic events.

        The start events are yielded before the first line is requested, so a
        lazily-connecting source is only opened after the client has them.
        Backend failures end the read loop; the stream is still closed.
        """
        for event in self.open():
            yield event

        try:
            async for line in lines:
                event = self.feed(line)
                if self.saw_done:
                    break
                if event is not None:
                    yield event
        except ProxyError as exc:
            logger.warning(
                "Backend stream for %s ended early after %d deltas: %s",
                self.message_id,
                self.delta_count,
                exc.message,
            )
        finally:
            aclose = getattr(lines, "aclose", None)
            if aclose is not None:
                await aclose()

        for event in self.close():
            yield event

    async def adapt_stream(self, lines: AsyncIterator[str]) -> AsyncIterator[bytes]:
        """Like ``adapt_lines`` but yields SSE-framed bytes."""
        async for event in self.adapt_lines(lines):
            yield format_sse_event(event)

    def _emit_message_start(self) -> StreamEvent:
        return {
            "type": "message_start",
            "message": {
                "id": self.message_id,
                "type": "message",
                "role": "assistant",
                "model": self.model,
                "content": [],
                "usage": {"input_tokens": 0, "output_tokens": 0},
            },
        }

    def _emit_content_block_start(self) -> StreamEvent:
        return {
            "type": "content_block_start",
            "index": TEXT_BLOCK_INDEX,
            "content_block": {"type": "text", "text": ""},
        }

    def _emit_content_block_delta(self, text: str) -> StreamEvent:
        return {
            "type": "content_block_delta",
            "index": TEXT_BLOCK_INDEX,
            "delta": {"type": "text_delta", "text": text},
        }

    def _emit_content_block_stop(self) -> StreamEvent:
        return {"type": "content_block_stop", "index": TEXT_BLOCK_INDEX}

    def _emit_message_stop(self) -> StreamEvent:
        return {"type": "message_stop"}


async def adapt_chat_stream_to_messages(
    lines: AsyncIterator[str],
    message_id: Optional[str] = None,
) -> AsyncIterator[bytes]:
    """Convenience function to adapt an OpenAI chat stream to Anthropic Messages SSE."""
    translator = StreamTranslator(message_id)
    async for chunk in translator.adapt_stream(lines):
        yield chunk

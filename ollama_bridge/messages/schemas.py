"""Wire shapes for both sides of the bridge.

Types are separated into:
- Anthropic Messages types: what the client sends and receives
- OpenAI Chat Completions types: what the Ollama backend sends and receives

Parsed inbound requests are represented by the frozen ``MessagesRequest``
dataclass; everything that crosses the wire as JSON is a ``TypedDict``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from typing_extensions import TypedDict

from .content import EMPTY_CONTENT, Content


# =============================================================================
# Anthropic Messages Types
# =============================================================================


@dataclass(frozen=True)
class InputMessage:
    """One conversation turn of a Messages request."""

    role: str
    content: Content


@dataclass(frozen=True)
class MessagesRequest:
    """A parsed Messages request.

    Attributes:
        model: Model alias exactly as the client sent it.
        messages: Conversation turns in order.
        max_tokens: Copied verbatim to the backend request.
        temperature: None when the client did not send one.
        top_p: None when the client did not send one.
        stream: Selects the streaming response path.
        system: Optional system prompt.
    """

    model: str
    messages: tuple[InputMessage, ...] = ()
    max_tokens: int = 0
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stream: bool = False
    system: Content = EMPTY_CONTENT


class TextBlock(TypedDict):
    type: str
    text: str


class MessageUsage(TypedDict):
    input_tokens: int
    output_tokens: int


class MessageResponse(TypedDict, total=False):
    """A non-streaming Messages response.

    ``stop_reason`` is only present when the backend finish reason has an
    Anthropic equivalent.
    """
    id: str
    type: str
    role: str
    model: str
    content: list[TextBlock]
    stop_reason: str
    usage: MessageUsage


class TextDelta(TypedDict):
    type: str
    text: str


class StreamEvent(TypedDict, total=False):
    """A Messages streaming event.

    Attributes:
        type: One of message_start, content_block_start, content_block_delta,
            content_block_stop, message_stop.
        message: The message envelope (message_start only).
        index: Content block index (content_block_* only).
        content_block: The opened block (content_block_start only).
        delta: The text delta (content_block_delta only).
    """
    type: str
    message: MessageResponse
    index: int
    content_block: TextBlock
    delta: TextDelta


# =============================================================================
# OpenAI Chat Completions Types
# =============================================================================


class ChatMessage(TypedDict):
    role: str
    content: str


class ChatRequest(TypedDict):
    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float
    top_p: float
    stream: bool

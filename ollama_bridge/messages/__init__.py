"""Anthropic Messages API translation helpers.

Provides translation between the Anthropic Messages API format spoken by the
client and the OpenAI Chat Completions format spoken by the Ollama backend.
"""

from .content import Blocks, Content, ContentBlock, PlainText, extract_text, parse_content
from .schemas import InputMessage, MessagesRequest
from .stream_adapter import (
    LineKind,
    StreamLine,
    StreamState,
    StreamTranslator,
    adapt_chat_stream_to_messages,
    decode_stream_line,
)
from .translator import (
    build_chat_request,
    chat_completion_to_message,
    convert_stop_reason,
    new_message_id,
    parse_messages_request,
    translate_request,
)

__all__ = [
    "Blocks",
    "Content",
    "ContentBlock",
    "InputMessage",
    "LineKind",
    "MessagesRequest",
    "PlainText",
    "StreamLine",
    "StreamState",
    "StreamTranslator",
    "adapt_chat_stream_to_messages",
    "build_chat_request",
    "chat_completion_to_message",
    "convert_stop_reason",
    "decode_stream_line",
    "extract_text",
    "new_message_id",
    "parse_content",
    "parse_messages_request",
    "translate_request",
]

"""Anthropic Messages <-> OpenAI Chat Completions translation.

This module translates between the Anthropic Messages API format spoken by
the client and the OpenAI Chat Completions format spoken by the Ollama
backend.

Key mappings:
- Anthropic model alias -> backend model id (via the model map)
- Anthropic system (top-level) -> leading OpenAI system message
- Anthropic content blocks -> flat OpenAI string content (text blocks only)
- OpenAI first choice -> single Anthropic text block
- OpenAI finish_reason "stop" -> Anthropic stop_reason "end_turn"
- OpenAI usage prompt/completion tokens -> Anthropic input/output tokens

Reference:
- Anthropic Messages API: https://docs.anthropic.com/en/api/messages
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Mapping, Optional

from ..core.exceptions import BackendDecodeError, InvalidRequestError
from ..core.model_map import ModelMap, resolve_model
from .content import extract_text, parse_content
from .schemas import (
    ChatMessage,
    ChatRequest,
    InputMessage,
    MessageResponse,
    MessagesRequest,
)

logger = logging.getLogger("ollama-bridge")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 1.0


def new_message_id() -> str:
    """Generate a fresh Anthropic-style message id."""
    return f"msg_{uuid.uuid4().hex[:24]}"


# =============================================================================
# Request translation
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_field(payload: Mapping[str, Any], name: str, check, expected: str) -> Any:
    value = payload.get(name)
    if value is None:
        return None
    if not check(value):
        raise InvalidRequestError(
            f"Field '{name}' must be {expected}",
            code="invalid_field_type",
        )
    return value


def _parse_message(index: int, raw: Any) -> InputMessage:
    if not isinstance(raw, dict):
        raise InvalidRequestError(
            f"messages[{index}] must be an object",
            code="invalid_field_type",
        )
    role = raw.get("role")
    if role is not None and not isinstance(role, str):
        raise InvalidRequestError(
            f"messages[{index}].role must be a string",
            code="invalid_field_type",
        )
    return InputMessage(role=role or "", content=parse_content(raw.get("content")))


def parse_messages_request(body: bytes) -> MessagesRequest:
    """Parse a raw Messages request body.

    Raises:
        InvalidRequestError: The body is empty, not JSON, not an object, or a
            field has the wrong JSON type.
    """
    if not body or not body.strip():
        raise InvalidRequestError("Request body is empty", code="empty_body")

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError(f"Invalid JSON payload: {exc}", code="invalid_json") from exc

    if not isinstance(payload, dict):
        raise InvalidRequestError(
            "Request body must be a JSON object",
            code="invalid_json_shape",
        )

    model = _optional_field(payload, "model", lambda v: isinstance(v, str), "a string")
    raw_messages = _optional_field(payload, "messages", lambda v: isinstance(v, list), "an array")
    max_tokens = _optional_field(
        payload,
        "max_tokens",
        lambda v: isinstance(v, int) and not isinstance(v, bool),
        "an integer",
    )
    temperature = _optional_field(payload, "temperature", _is_number, "a number")
    top_p = _optional_field(payload, "top_p", _is_number, "a number")
    stream = _optional_field(payload, "stream", lambda v: isinstance(v, bool), "a boolean")

    messages = tuple(
        _parse_message(index, raw) for index, raw in enumerate(raw_messages or [])
    )

    return MessagesRequest(
        model=model or "",
        messages=messages,
        max_tokens=max_tokens or 0,
        temperature=float(temperature) if temperature is not None else None,
        top_p=float(top_p) if top_p is not None else None,
        stream=bool(stream),
        system=parse_content(payload.get("system")),
    )


def build_chat_request(request: MessagesRequest, model_map: ModelMap) -> ChatRequest:
    """Build the OpenAI Chat Completions request for a parsed Messages request."""
    messages: list[ChatMessage] = []

    system_text = extract_text(request.system)
    if system_text:
        messages.append({"role": "system", "content": system_text})

    for message in request.messages:
        messages.append({"role": message.role, "content": extract_text(message.content)})

    return {
        "model": resolve_model(request.model, model_map),
        "messages": messages,
        "max_tokens": request.max_tokens,
        "temperature": (
            request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
        ),
        "top_p": request.top_p if request.top_p is not None else DEFAULT_TOP_P,
        "stream": request.stream,
    }


def translate_request(
    body: bytes, model_map: ModelMap
) -> tuple[MessagesRequest, ChatRequest]:
    """Parse a Messages request body and translate it for the backend.

    Returns:
        The parsed request (its ``stream`` flag picks the response path and its
        ``model`` is the label echoed back to the client) and the backend
        request body.
    """
    request = parse_messages_request(body)
    chat_request = build_chat_request(request, model_map)
    logger.debug(
        "Translated messages request: model=%s -> %s, messages=%d, stream=%s",
        request.model,
        chat_request["model"],
        len(chat_request["messages"]),
        request.stream,
    )
    return request, chat_request


# =============================================================================
# Response translation
# =============================================================================


def convert_stop_reason(finish_reason: Optional[str]) -> Optional[str]:
    """Convert an OpenAI finish_reason to an Anthropic stop_reason.

    Only "stop" has a mapping; every other value yields no stop_reason.
    """
    if finish_reason == "stop":
        return "end_turn"
    return None


def _usage_count(usage: Mapping[str, Any], key: str) -> int:
    value = usage.get(key)
    if value is None:
        return 0
    if not isinstance(value, int) or isinstance(value, bool):
        raise BackendDecodeError(f"Backend usage field '{key}' is not an integer")
    return value


def chat_completion_to_message(
    payload: Any,
    model: str,
    message_id: Optional[str] = None,
) -> MessageResponse:
    """Translate a decoded OpenAI Chat Completions response to Anthropic Messages.

    Args:
        payload: Decoded backend response body.
        model: The model name the client asked for (not the resolved id).
        message_id: Message id to use; a fresh one is generated when omitted.

    Raises:
        BackendDecodeError: The payload does not have the shape of a chat
            completion.
    """
    if not isinstance(payload, dict):
        raise BackendDecodeError("Backend response is not a JSON object")

    choices = payload.get("choices")
    if choices is None:
        choices = []
    if not isinstance(choices, list):
        raise BackendDecodeError("Backend response 'choices' is not an array")

    usage = payload.get("usage")
    if usage is None:
        usage = {}
    if not isinstance(usage, dict):
        raise BackendDecodeError("Backend response 'usage' is not an object")

    response: MessageResponse = {
        "id": message_id or new_message_id(),
        "type": "message",
        "role": "assistant",
        "model": model,
        "content": [],
        "usage": {
            "input_tokens": _usage_count(usage, "prompt_tokens"),
            "output_tokens": _usage_count(usage, "completion_tokens"),
        },
    }

    if not choices:
        return response

    # Only the first choice is translated
    choice = choices[0]
    if not isinstance(choice, dict):
        raise BackendDecodeError("Backend response choice is not an object")
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        raise BackendDecodeError("Backend response choice message is not an object")
    text = message.get("content")
    if text is not None and not isinstance(text, str):
        raise BackendDecodeError("Backend response message content is not a string")

    response["content"] = [{"type": "text", "text": text or ""}]

    stop_reason = convert_stop_reason(choice.get("finish_reason"))
    if stop_reason:
        response["stop_reason"] = stop_reason

    return response

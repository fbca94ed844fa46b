"""Message content as a tagged variant.

Anthropic Messages fields such as ``content`` and ``system`` carry either a
plain string or a list of typed content blocks::

    "Hello"
    [{"type": "text", "text": "Hello"}, {"type": "image", "source": {...}}]

``parse_content`` turns the decoded JSON into ``PlainText`` or ``Blocks`` once,
at request parse time. ``extract_text`` reduces either variant to the flat
string an OpenAI-compatible backend accepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class ContentBlock:
    """A typed unit of content. Only ``text`` blocks contribute text."""

    type: str
    text: Optional[str] = None


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Blocks:
    blocks: tuple[ContentBlock, ...] = ()


Content = Union[PlainText, Blocks]

EMPTY_CONTENT = Blocks()


def parse_content(raw: Any) -> Content:
    """Convert a decoded JSON value into a ``Content`` variant.

    Strings become ``PlainText``; lists become ``Blocks`` (non-object entries
    are dropped, non-string ``text`` values are treated as absent). Anything
    else, including ``None``, is empty content.
    """
    if isinstance(raw, str):
        return PlainText(raw)
    if not isinstance(raw, list):
        return EMPTY_CONTENT

    blocks: list[ContentBlock] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        block_type = item.get("type")
        text = item.get("text")
        blocks.append(
            ContentBlock(
                type=block_type if isinstance(block_type, str) else "",
                text=text if isinstance(text, str) else None,
            )
        )
    return Blocks(tuple(blocks))


def extract_text(content: Optional[Content]) -> str:
    """Concatenate the text of a content value. Never raises."""
    if content is None:
        return ""
    if isinstance(content, PlainText):
        return content.text
    return "".join(
        block.text
        for block in content.blocks
        if block.type == "text" and block.text
    )

"""Tolerant decoding of transcript JSONL lines."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import orjson

from .schemas import (
    EMPTY_CONTENT,
    Content,
    ContentItem,
    EntryMessage,
    ItemsContent,
    TextContent,
    TokenUsage,
    TranscriptEntry,
)

LOGGER = logging.getLogger(__name__)


def decode_entry(raw_line: bytes | str) -> TranscriptEntry | None:
    """Decode one transcript line; return None for blank, malformed, or non-object lines."""
    line = raw_line.strip()
    if not line:
        return None

    try:
        payload = orjson.loads(line)
    except orjson.JSONDecodeError as exc:
        LOGGER.debug("Skipping malformed transcript line: %s", exc)
        return None
    if not isinstance(payload, dict):
        LOGGER.debug("Skipping transcript line with JSON %s instead of object", type(payload).__name__)
        return None

    return TranscriptEntry(
        type=_as_str(payload.get("type")),
        timestamp=parse_timestamp(payload.get("timestamp")),
        git_branch=_as_str(payload.get("gitBranch")),
        version=_as_str(payload.get("version")),
        model=_as_str(payload.get("model")),
        name=_as_str(payload.get("name")),
        is_error=payload.get("is_error") is True,
        message=_decode_message(payload.get("message")),
        content=decode_content(payload.get("content")),
    )


def decode_content(raw: Any, unwrap_json: bool = True) -> Content:
    """Decode a content field that may be a string, a JSON-encoded string, or a list of typed items.

    JSON-encoded strings only occur in top-level `content` fields; pass
    `unwrap_json=False` for message content so prompts keep their literal text.
    """
    if isinstance(raw, str):
        if not unwrap_json:
            return TextContent(text=raw)
        return _decode_string_content(raw)
    if isinstance(raw, list):
        return ItemsContent(items=tuple(_decode_item(item) for item in raw if isinstance(item, dict)))
    return EMPTY_CONTENT


def extract_text(content: Content) -> str:
    """Return the text of string content, or all `text` items joined by newlines."""
    if isinstance(content, TextContent):
        return content.text
    if isinstance(content, ItemsContent):
        return "\n".join(item.text for item in content.items if item.type == "text")
    return ""


def iter_tool_uses(content: Content) -> Iterator[ContentItem]:
    """Yield `tool_use` items of list-shaped content in order."""
    if not isinstance(content, ItemsContent):
        return
    for item in content.items:
        if item.type == "tool_use":
            yield item


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC3339 timestamp into an aware datetime; None when absent or invalid."""
    if not isinstance(value, str) or not value:
        return None
    normalized = value.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _decode_string_content(raw: str) -> Content:
    # Older clients wrote content as a JSON-encoded string or item list.
    stripped = raw.strip()
    if stripped[:1] in ('"', "["):
        try:
            nested = orjson.loads(stripped)
        except orjson.JSONDecodeError:
            return TextContent(text=raw)
        if isinstance(nested, str):
            return TextContent(text=nested)
        if isinstance(nested, list) and nested and all(_is_typed_item(item) for item in nested):
            return decode_content(nested)
    return TextContent(text=raw)


def _is_typed_item(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("type"), str)


def _decode_item(raw: dict[str, Any]) -> ContentItem:
    tool_input = raw.get("input")
    return ContentItem(
        type=_as_str(raw.get("type")),
        text=_as_str(raw.get("text")),
        name=_as_str(raw.get("name")),
        input=tool_input if isinstance(tool_input, dict) else {},
    )


def _decode_message(raw: Any) -> EntryMessage | None:
    if not isinstance(raw, dict):
        return None
    return EntryMessage(
        role=_as_str(raw.get("role")),
        model=_as_str(raw.get("model")),
        usage=_decode_usage(raw.get("usage")),
        content=decode_content(raw.get("content"), unwrap_json=False),
    )


def _decode_usage(raw: Any) -> TokenUsage:
    if not isinstance(raw, dict):
        return TokenUsage()
    return TokenUsage(
        input_tokens=_as_int(raw.get("input_tokens")),
        output_tokens=_as_int(raw.get("output_tokens")),
        cache_read_input_tokens=_as_int(raw.get("cache_read_input_tokens")),
        cache_creation_input_tokens=_as_int(raw.get("cache_creation_input_tokens")),
        thinking_tokens=_as_int(raw.get("thinking_tokens")),
    )


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value

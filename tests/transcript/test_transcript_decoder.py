"""Tests for tolerant transcript line decoding."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import orjson

from claude_token_usage.transcript.decoder import decode_content, decode_entry, extract_text, parse_timestamp
from claude_token_usage.transcript.schemas import EMPTY_CONTENT, ContentItem, ItemsContent, TextContent


def test_decode_entry_skips_blank_malformed_and_non_object_lines() -> None:
    """Only JSON objects decode into entries."""
    assert decode_entry("") is None
    assert decode_entry("   \n") is None
    assert decode_entry('{"type": "user", ') is None
    assert decode_entry("[1, 2, 3]") is None
    assert decode_entry(b'"just a string"') is None


def test_decode_entry_reads_assistant_usage_and_metadata() -> None:
    """Assistant entries expose usage counters, model and metadata."""
    raw_line = orjson.dumps(
        {
            "type": "assistant",
            "timestamp": "2026-03-01T10:00:00Z",
            "gitBranch": "main",
            "version": "2.0.14",
            "message": {
                "role": "assistant",
                "model": "claude-sonnet-4-5-20250929",
                "usage": {
                    "input_tokens": 120,
                    "output_tokens": 45,
                    "cache_read_input_tokens": 1000,
                    "cache_creation_input_tokens": 300,
                    "thinking_tokens": True,
                },
                "content": [
                    {"type": "text", "text": "Looking at the file."},
                    {"type": "tool_use", "name": "Read", "input": {"file_path": "/repo/app.py"}},
                ],
            },
        }
    )

    entry = decode_entry(raw_line)

    assert entry is not None
    assert entry.type == "assistant"
    assert entry.timestamp == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    assert entry.git_branch == "main"
    assert entry.version == "2.0.14"
    assert entry.message is not None
    assert entry.message.model == "claude-sonnet-4-5-20250929"
    assert entry.message.usage.input_tokens == 120
    assert entry.message.usage.output_tokens == 45
    assert entry.message.usage.cache_read_input_tokens == 1000
    assert entry.message.usage.cache_creation_input_tokens == 300
    assert entry.message.usage.thinking_tokens == 0
    assert entry.message.content == ItemsContent(
        items=(
            ContentItem(type="text", text="Looking at the file."),
            ContentItem(type="tool_use", name="Read", input={"file_path": "/repo/app.py"}),
        )
    )


def test_decode_entry_tolerates_mistyped_fields() -> None:
    """Mistyped fields fall back to empty defaults instead of failing the line."""
    entry = decode_entry('{"type": "user", "timestamp": 12, "gitBranch": null, "message": "hi", "is_error": "yes"}')

    assert entry is not None
    assert entry.type == "user"
    assert entry.timestamp is None
    assert entry.git_branch == ""
    assert entry.message is None
    assert entry.is_error is False


def test_decode_content_handles_string_list_and_other_shapes() -> None:
    """Content decodes into a tagged union regardless of its wire shape."""
    assert decode_content("plain prompt") == TextContent(text="plain prompt")
    assert decode_content([{"type": "text", "text": "a"}, "dropped", 3]) == ItemsContent(
        items=(ContentItem(type="text", text="a"),)
    )
    assert decode_content(None) is EMPTY_CONTENT
    assert decode_content({"type": "text"}) is EMPTY_CONTENT


def test_decode_content_unwraps_json_encoded_strings() -> None:
    """Legacy JSON-encoded string content is decoded once."""
    assert decode_content('"quoted prompt"') == TextContent(text="quoted prompt")
    assert decode_content('[{"type": "text", "text": "nested"}]') == ItemsContent(
        items=(ContentItem(type="text", text="nested"),)
    )
    assert decode_content("[draft] not json") == TextContent(text="[draft] not json")
    assert decode_content("[1, 2]") == TextContent(text="[1, 2]")


def test_message_content_strings_are_kept_literally() -> None:
    """Only top-level content is unwrapped; a quoted prompt keeps its quotes."""
    entry = decode_entry(
        orjson.dumps(
            {
                "type": "user",
                "message": {"role": "user", "content": '"quoted prompt"'},
                "content": '"legacy result"',
            }
        )
    )

    assert entry is not None
    assert entry.message is not None
    assert entry.message.content == TextContent(text='"quoted prompt"')
    assert entry.content == TextContent(text="legacy result")


def test_extract_text_joins_text_items_with_newlines() -> None:
    """Text items are concatenated in order; other item types are ignored."""
    content = ItemsContent(
        items=(
            ContentItem(type="text", text="first"),
            ContentItem(type="thinking", text="hidden"),
            ContentItem(type="tool_use", name="Bash"),
            ContentItem(type="text", text="second"),
        )
    )

    assert extract_text(content) == "first\nsecond"
    assert extract_text(TextContent(text="raw")) == "raw"
    assert extract_text(EMPTY_CONTENT) == ""


def test_parse_timestamp_returns_aware_datetimes() -> None:
    """Timestamps without offsets are treated as UTC; invalid values yield None."""
    assert parse_timestamp("2026-03-01T10:00:00.250Z") == datetime(2026, 3, 1, 10, 0, 0, 250000, tzinfo=UTC)
    assert parse_timestamp("2026-03-01T10:00:00") == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    assert parse_timestamp("2026-03-01T12:00:00+02:00") == datetime(
        2026, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2))
    )
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None

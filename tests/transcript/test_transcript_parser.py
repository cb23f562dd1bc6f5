"""Tests for transcript parsing and statistics aggregation."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import orjson
import pytest

from claude_token_usage.transcript import (
    LimitEventType,
    LimitType,
    ParsedTranscript,
    SessionStatistics,
    TranscriptReadError,
    parse_transcript,
    parse_transcript_stream,
)
from claude_token_usage.transcript.aggregator import SUMMARY_MAX_CHARS


def test_parse_transcript_aggregates_session_statistics(tmp_path: Path) -> None:
    """Parser should fold prompts, responses, tokens, tools and files into one snapshot."""
    transcript_path = tmp_path / "session.jsonl"
    _write_jsonl(
        transcript_path,
        [
            {"type": "file-history-snapshot", "snapshot": {"files": []}},
            {
                "type": "user",
                "timestamp": "2026-03-01T10:00:00Z",
                "gitBranch": "feature/limits",
                "version": "2.0.14",
                "message": {"role": "user", "content": "Refactor the parser module"},
            },
            _assistant_entry(
                "2026-03-01T10:00:05Z",
                usage={
                    "input_tokens": 100,
                    "output_tokens": 200,
                    "cache_read_input_tokens": 5000,
                    "cache_creation_input_tokens": 700,
                    "thinking_tokens": 50,
                },
                content=[
                    {"type": "text", "text": "Reading files."},
                    {"type": "tool_use", "name": "Read", "input": {"file_path": "/repo/parser.py"}},
                    {"type": "tool_use", "name": "Bash", "input": {"command": "ls"}},
                ],
            ),
            {
                "type": "tool_result",
                "timestamp": "2026-03-01T10:00:06Z",
                "content": "Error: command not found",
            },
            _assistant_entry(
                "2026-03-01T10:01:00Z",
                usage={"input_tokens": 10, "output_tokens": 20},
                content=[
                    {"type": "tool_use", "name": "Edit", "input": {"path": "/repo/parser.py"}},
                    {"type": "tool_use", "name": "Write", "input": {"file_path": "/repo/new.py"}},
                ],
                model="claude-haiku-4-5",
            ),
            {
                "type": "tool_result",
                "timestamp": "2026-03-01T10:01:30Z",
                "is_error": True,
                "content": "permission denied",
            },
            {"type": "tool_use", "timestamp": "2026-03-01T10:02:00Z", "name": "Grep"},
            {"type": "user", "timestamp": "2026-03-01T10:03:00Z", "message": {"content": "Thanks"}},
        ],
    )

    statistics = parse_transcript(transcript_path).statistics

    assert statistics.user_prompts == 2
    assert statistics.assistant_responses == 2
    assert statistics.tool_calls == 5
    assert statistics.tools_breakdown == {"Read": 1, "Bash": 1, "Edit": 1, "Write": 1, "Grep": 1}
    assert statistics.errors_count == 2
    assert statistics.files_accessed == frozenset({"/repo/parser.py", "/repo/new.py"})
    assert statistics.files_modified == frozenset({"/repo/parser.py", "/repo/new.py"})
    assert statistics.input_tokens == 110
    assert statistics.output_tokens == 220
    assert statistics.thinking_tokens == 50
    assert statistics.cache_read_tokens == 5000
    assert statistics.cache_write_tokens == 700
    assert statistics.total_tokens == 380
    assert statistics.model == "claude-sonnet-4-5-20250929"
    assert statistics.git_branch == "feature/limits"
    assert statistics.tool_version == "2.0.14"
    assert statistics.summary == "Refactor the parser module"
    assert statistics.start_time == datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    assert statistics.end_time == datetime(2026, 3, 1, 10, 3, tzinfo=UTC)
    assert statistics.duration_seconds == 180


def test_single_modifying_tool_use_touches_both_file_sets() -> None:
    """One file-modifying tool call counts once and marks the path accessed and modified."""
    parsed = parse_transcript_stream(
        [
            orjson.dumps(
                _assistant_entry(
                    "2026-03-01T10:00:00Z",
                    usage={"input_tokens": 100, "output_tokens": 200},
                    content=[{"type": "tool_use", "name": "Edit", "input": {"file_path": "/a.go"}}],
                )
            ),
            orjson.dumps({"type": "user", "timestamp": "2026-03-01T10:00:10Z", "message": {"content": "ok"}}),
        ]
    )

    assert parsed.statistics.tool_calls == 1
    assert parsed.statistics.files_modified == frozenset({"/a.go"})
    assert parsed.statistics.files_accessed == frozenset({"/a.go"})
    assert parsed.statistics.total_tokens == 300


def test_tools_breakdown_is_read_only() -> None:
    """The per-tool breakdown of a finished session cannot be modified."""
    parsed = parse_transcript_stream(
        [
            orjson.dumps(
                _assistant_entry(
                    "2026-03-01T10:00:00Z",
                    usage={"input_tokens": 1, "output_tokens": 1},
                    content=[{"type": "tool_use", "name": "Bash", "input": {"command": "ls"}}],
                )
            )
        ]
    )

    assert parsed.statistics.tools_breakdown == {"Bash": 1}
    with pytest.raises(TypeError):
        parsed.statistics.tools_breakdown["Bash"] = 2


def test_malformed_only_transcript_yields_zero_statistics(tmp_path: Path) -> None:
    """Lines that fail to decode are skipped without raising."""
    transcript_path = tmp_path / "broken.jsonl"
    transcript_path.write_text('{"type": "user"\nnot json at all\n[1, 2]\n\n', encoding="utf-8")

    parsed = parse_transcript(transcript_path)

    assert parsed == ParsedTranscript()
    assert parsed.statistics == SessionStatistics()


def test_parse_is_deterministic(tmp_path: Path) -> None:
    """Parsing the same bytes twice yields equal results."""
    transcript_path = tmp_path / "session.jsonl"
    _write_jsonl(
        transcript_path,
        [
            {"type": "user", "timestamp": "2026-03-01T10:00:00Z", "message": {"content": "go"}},
            _assistant_entry(
                "2026-03-01T10:00:05Z",
                usage={"input_tokens": 3, "output_tokens": 4},
                content=[{"type": "tool_use", "name": "Glob", "input": {"path": "/repo"}}],
            ),
            {"type": "system", "timestamp": "2026-03-01T10:00:09Z", "content": "Daily limit reached"},
        ],
    )

    assert parse_transcript(transcript_path) == parse_transcript(transcript_path)


def test_missing_transcript_returns_empty_result(tmp_path: Path) -> None:
    """A path that does not exist behaves like an empty transcript."""
    assert parse_transcript(tmp_path / "missing.jsonl") == ParsedTranscript()
    assert parse_transcript(None) == ParsedTranscript()


def test_unreadable_transcript_raises_read_error(tmp_path: Path) -> None:
    """I/O failures other than a missing file propagate as TranscriptReadError."""
    with pytest.raises(TranscriptReadError):
        parse_transcript(tmp_path)


def test_system_entries_produce_limit_events_without_affecting_counters() -> None:
    """Quota notices become limit events; unrelated system messages are ignored."""
    parsed = parse_transcript_stream(
        [
            orjson.dumps(
                {
                    "type": "system",
                    "timestamp": "2026-03-01T12:00:00Z",
                    "content": "You've hit your daily limit. It resets in 6 hours.",
                }
            ),
            orjson.dumps({"type": "system", "timestamp": "2026-03-01T12:00:01Z", "content": "Compacting history."}),
            orjson.dumps(
                {
                    "type": "system",
                    "timestamp": "2026-03-08T12:00:00Z",
                    "message": {"content": [{"type": "text", "text": "Your weekly limit has been reset."}]},
                }
            ),
        ]
    )

    assert [(event.event_type, event.limit_type) for event in parsed.limit_events] == [
        (LimitEventType.HIT, LimitType.DAILY),
        (LimitEventType.RESET, LimitType.WEEKLY),
    ]
    assert parsed.limit_events[0].timestamp == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    assert parsed.statistics.user_prompts == 0
    assert parsed.statistics.assistant_responses == 0


def test_summary_is_truncated_and_set_once() -> None:
    """Summary comes from the first user text and is cut without an ellipsis."""
    long_prompt = "x" * (SUMMARY_MAX_CHARS + 50)
    parsed = parse_transcript_stream(
        [
            '{"type": "user", "message": {"content": ""}}',
            orjson.dumps({"type": "human", "message": {"content": [{"type": "text", "text": long_prompt}]}}),
            '{"type": "user", "message": {"content": "later prompt"}}',
        ]
    )

    assert parsed.statistics.user_prompts == 3
    assert parsed.statistics.summary == "x" * SUMMARY_MAX_CHARS


def test_error_heuristic_scans_only_the_head_of_tool_results() -> None:
    """The word "error" counts only within the first 100 characters of a result."""
    parsed = parse_transcript_stream(
        [
            orjson.dumps({"type": "tool_result", "content": "ERROR in build"}),
            orjson.dumps({"type": "tool_result", "content": "ok " * 40 + "error"}),
            orjson.dumps({"type": "tool_result", "content": "all tests passed"}),
        ]
    )

    assert parsed.statistics.errors_count == 1


def test_model_prefers_message_model_and_is_never_overridden() -> None:
    """The first assistant entry decides the model, message model before top-level model."""
    parsed = parse_transcript_stream(
        [
            orjson.dumps({"type": "assistant", "model": "claude-opus-4-5", "message": {"usage": {}}}),
            orjson.dumps({"type": "assistant", "message": {"model": "claude-haiku-4-5", "usage": {}}}),
        ]
    )

    assert parsed.statistics.model == "claude-opus-4-5"
    assert parsed.statistics.assistant_responses == 2


def _assistant_entry(
    timestamp: str,
    usage: dict[str, int],
    content: list[dict[str, object]],
    model: str = "claude-sonnet-4-5-20250929",
) -> dict[str, object]:
    return {
        "type": "assistant",
        "timestamp": timestamp,
        "message": {"role": "assistant", "model": model, "usage": usage, "content": content},
    }


def _write_jsonl(path: Path, events: list[dict[str, object]]) -> None:
    """Write JSONL events to disk."""
    with path.open("wb") as handle:
        for event in events:
            handle.write(orjson.dumps(event))
            handle.write(b"\n")

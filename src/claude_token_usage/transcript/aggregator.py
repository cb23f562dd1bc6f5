"""Fold decoded transcript entries into session statistics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .decoder import extract_text, iter_tool_uses
from .schemas import SessionStatistics, TranscriptEntry

FILE_TOOLS = frozenset({"Read", "Edit", "Write", "Glob", "Grep", "LSP", "NotebookEdit"})
MODIFYING_TOOLS = frozenset({"Edit", "Write", "NotebookEdit"})
FILE_PATH_KEYS: tuple[str, ...] = ("file_path", "path", "notebook_path")
SUMMARY_MAX_CHARS = 200
ERROR_SCAN_CHARS = 100
UNKNOWN_TOOL_NAME = "unknown"


class StatisticsAggregator:
    """Accumulates counters for one transcript parse pass.

    Entries are assumed to arrive in non-decreasing time order; timestamps are
    recorded as seen, not sorted.
    """

    def __init__(self) -> None:
        self._user_prompts = 0
        self._assistant_responses = 0
        self._tool_calls = 0
        self._errors_count = 0
        self._tools_breakdown: Counter[str] = Counter()
        self._files_accessed: set[str] = set()
        self._files_modified: set[str] = set()
        self._input_tokens = 0
        self._output_tokens = 0
        self._thinking_tokens = 0
        self._cache_read_tokens = 0
        self._cache_write_tokens = 0
        self._model = ""
        self._git_branch = ""
        self._tool_version = ""
        self._summary = ""
        self._start_time: datetime | None = None
        self._end_time: datetime | None = None

    def add(self, entry: TranscriptEntry) -> None:
        """Fold one entry into the running counters."""
        self._update_timestamps(entry)
        self._update_metadata(entry)

        if entry.type in ("user", "human"):
            self._add_user_message(entry)
        elif entry.type == "assistant":
            self._add_assistant_message(entry)
        elif entry.type == "tool_use":
            self._record_tool_call(entry.name)
        elif entry.type == "tool_result":
            self._add_tool_result(entry)

    def build(self) -> SessionStatistics:
        """Return an immutable snapshot of the accumulated statistics."""
        return SessionStatistics(
            user_prompts=self._user_prompts,
            assistant_responses=self._assistant_responses,
            tool_calls=self._tool_calls,
            errors_count=self._errors_count,
            tools_breakdown=dict(self._tools_breakdown),
            files_accessed=frozenset(self._files_accessed),
            files_modified=frozenset(self._files_modified),
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
            thinking_tokens=self._thinking_tokens,
            cache_read_tokens=self._cache_read_tokens,
            cache_write_tokens=self._cache_write_tokens,
            model=self._model,
            git_branch=self._git_branch,
            tool_version=self._tool_version,
            summary=self._summary,
            start_time=self._start_time,
            end_time=self._end_time,
        )

    def _update_timestamps(self, entry: TranscriptEntry) -> None:
        if entry.timestamp is None:
            return
        if self._start_time is None:
            self._start_time = entry.timestamp
        self._end_time = entry.timestamp

    def _update_metadata(self, entry: TranscriptEntry) -> None:
        if not self._git_branch and entry.git_branch:
            self._git_branch = entry.git_branch
        if not self._tool_version and entry.version:
            self._tool_version = entry.version

    def _add_user_message(self, entry: TranscriptEntry) -> None:
        self._user_prompts += 1
        if self._summary or entry.message is None:
            return
        text = extract_text(entry.message.content)
        if text:
            self._summary = text[:SUMMARY_MAX_CHARS]

    def _add_assistant_message(self, entry: TranscriptEntry) -> None:
        self._assistant_responses += 1
        message = entry.message
        if message is None:
            return

        usage = message.usage
        self._input_tokens += usage.input_tokens
        self._output_tokens += usage.output_tokens
        self._cache_read_tokens += usage.cache_read_input_tokens
        self._cache_write_tokens += usage.cache_creation_input_tokens
        self._thinking_tokens += usage.thinking_tokens

        if not self._model:
            self._model = message.model or entry.model

        for item in iter_tool_uses(message.content):
            tool_name = self._record_tool_call(item.name)
            self._record_file_access(tool_name, item.input)

    def _add_tool_result(self, entry: TranscriptEntry) -> None:
        if entry.is_error:
            self._errors_count += 1
            return
        # Heuristic: matches legitimate output that merely mentions "error".
        head = extract_text(entry.content)[:ERROR_SCAN_CHARS]
        if "error" in head.lower():
            self._errors_count += 1

    def _record_tool_call(self, tool_name: str) -> str:
        resolved_name = tool_name or UNKNOWN_TOOL_NAME
        self._tool_calls += 1
        self._tools_breakdown[resolved_name] += 1
        return resolved_name

    def _record_file_access(self, tool_name: str, tool_input: Mapping[str, Any]) -> None:
        if tool_name not in FILE_TOOLS:
            return
        file_path = extract_file_path(tool_input)
        if not file_path:
            return
        self._files_accessed.add(file_path)
        if tool_name in MODIFYING_TOOLS:
            self._files_modified.add(file_path)


def extract_file_path(tool_input: Mapping[str, Any]) -> str:
    """Return the first non-empty path-like field of a tool input object."""
    for key in FILE_PATH_KEYS:
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return value
    return ""

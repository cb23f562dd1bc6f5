"""Typed schemas used by the transcript ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class IngestionFileState:
    """Filesystem metadata recorded for one ingested transcript."""

    transcript_path: str
    file_size_bytes: int
    file_mtime: datetime


@dataclass(frozen=True)
class SessionRow:
    """One row persisted in claude_sessions."""

    session_id: str
    transcript_path: str
    start_time: datetime | None
    end_time: datetime | None
    duration_seconds: int
    model_code: str | None
    git_branch: str | None
    tool_version: str | None
    summary: str | None
    user_prompts: int
    assistant_responses: int
    tool_calls: int
    errors_count: int
    input_tokens: int
    output_tokens: int
    thinking_tokens: int
    cache_read_tokens: int
    cache_write_tokens: int
    total_tokens: int
    estimated_cost_usd: float


@dataclass
class IngestionCounters:
    """Aggregate counters emitted by the ingestion service."""

    files_scanned: int = 0
    files_ingested: int = 0
    files_skipped_unchanged: int = 0
    files_empty: int = 0
    sessions_ingested: int = 0
    limit_events_recorded: int = 0
    windows_reset: int = 0
    read_errors: int = 0
    failed_files: list[str] = field(default_factory=list)

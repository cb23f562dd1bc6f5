"""DuckDB repository for transcript ingestion persistence."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager

import duckdb

from token_monitor_internal.database import require_db_timestamp

from ..database import ensure_schema, transaction
from .schemas import IngestionFileState, SessionRow


class IngestionRepository:
    """DuckDB-backed repository for session rows and transcript file bookkeeping."""

    def __init__(self, connection: duckdb.DuckDBPyConnection) -> None:
        self._connection = connection

    def ensure_schema(self) -> None:
        """Create tables when missing."""
        ensure_schema(self._connection)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Open a DB transaction scope."""
        with transaction(self._connection):
            yield

    def get_file_state(self, transcript_path: str) -> IngestionFileState | None:
        """Return the recorded size/mtime of a transcript, if it was ingested before."""
        row = self._connection.execute(
            """
SELECT transcript_path, file_size_bytes, CAST(file_mtime AS VARCHAR)
FROM claude_ingestion_files
WHERE transcript_path = ?
            """,
            [transcript_path],
        ).fetchone()
        if row is None:
            return None
        return IngestionFileState(
            transcript_path=str(row[0]),
            file_size_bytes=int(row[1]),
            file_mtime=require_db_timestamp(row[2]),
        )

    def upsert_file_state(self, file_state: IngestionFileState) -> None:
        """Record size/mtime of an ingested transcript by path."""
        _ = self._connection.execute(
            """
INSERT INTO claude_ingestion_files (transcript_path, file_size_bytes, file_mtime)
VALUES (?, ?, ?)
ON CONFLICT (transcript_path)
DO UPDATE SET
    file_size_bytes = EXCLUDED.file_size_bytes,
    file_mtime = EXCLUDED.file_mtime,
    ingested_at = NOW()
            """,
            [file_state.transcript_path, file_state.file_size_bytes, file_state.file_mtime],
        )

    def upsert_session(self, row: SessionRow) -> None:
        """Upsert one session row by `session_id`."""
        _ = self._connection.execute(
            """
INSERT INTO claude_sessions (
    session_id,
    transcript_path,
    start_time,
    end_time,
    duration_seconds,
    model_code,
    git_branch,
    tool_version,
    summary,
    user_prompts,
    assistant_responses,
    tool_calls,
    errors_count,
    input_tokens,
    output_tokens,
    thinking_tokens,
    cache_read_tokens,
    cache_write_tokens,
    total_tokens,
    estimated_cost_usd
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (session_id)
DO UPDATE SET
    transcript_path = EXCLUDED.transcript_path,
    start_time = EXCLUDED.start_time,
    end_time = EXCLUDED.end_time,
    duration_seconds = EXCLUDED.duration_seconds,
    model_code = EXCLUDED.model_code,
    git_branch = EXCLUDED.git_branch,
    tool_version = EXCLUDED.tool_version,
    summary = EXCLUDED.summary,
    user_prompts = EXCLUDED.user_prompts,
    assistant_responses = EXCLUDED.assistant_responses,
    tool_calls = EXCLUDED.tool_calls,
    errors_count = EXCLUDED.errors_count,
    input_tokens = EXCLUDED.input_tokens,
    output_tokens = EXCLUDED.output_tokens,
    thinking_tokens = EXCLUDED.thinking_tokens,
    cache_read_tokens = EXCLUDED.cache_read_tokens,
    cache_write_tokens = EXCLUDED.cache_write_tokens,
    total_tokens = EXCLUDED.total_tokens,
    estimated_cost_usd = EXCLUDED.estimated_cost_usd,
    ingested_at = NOW()
            """,
            [
                row.session_id,
                row.transcript_path,
                row.start_time,
                row.end_time,
                row.duration_seconds,
                row.model_code,
                row.git_branch,
                row.tool_version,
                row.summary,
                row.user_prompts,
                row.assistant_responses,
                row.tool_calls,
                row.errors_count,
                row.input_tokens,
                row.output_tokens,
                row.thinking_tokens,
                row.cache_read_tokens,
                row.cache_write_tokens,
                row.total_tokens,
                row.estimated_cost_usd,
            ],
        )

    def replace_session_tools(self, session_id: str, tools_breakdown: Mapping[str, int]) -> None:
        """Replace the per-tool invocation counts of a session."""
        _ = self._connection.execute("DELETE FROM claude_session_tools WHERE session_id = ?", [session_id])
        if not tools_breakdown:
            return
        _ = self._connection.executemany(
            "INSERT INTO claude_session_tools (session_id, tool_name, invocations) VALUES (?, ?, ?)",
            [[session_id, tool_name, invocations] for tool_name, invocations in sorted(tools_breakdown.items())],
        )

    def replace_session_files(
        self,
        session_id: str,
        files_accessed: frozenset[str],
        files_modified: frozenset[str],
    ) -> None:
        """Replace the touched-file rows of a session."""
        _ = self._connection.execute("DELETE FROM claude_session_files WHERE session_id = ?", [session_id])
        file_paths = sorted(files_accessed | files_modified)
        if not file_paths:
            return
        _ = self._connection.executemany(
            "INSERT INTO claude_session_files (session_id, file_path, modified) VALUES (?, ?, ?)",
            [[session_id, file_path, file_path in files_modified] for file_path in file_paths],
        )

    def count_sessions(self) -> int:
        """Return the number of persisted sessions."""
        row = self._connection.execute("SELECT COUNT(*) FROM claude_sessions").fetchone()
        assert row is not None
        return int(row[0])

"""DuckDB connection and schema helpers shared by the repositories."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import duckdb

_SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
CREATE TABLE IF NOT EXISTS claude_sessions (
    session_id VARCHAR PRIMARY KEY,
    transcript_path VARCHAR NOT NULL,
    start_time TIMESTAMPTZ,
    end_time TIMESTAMPTZ,
    duration_seconds BIGINT NOT NULL,
    model_code VARCHAR,
    git_branch VARCHAR,
    tool_version VARCHAR,
    summary VARCHAR,
    user_prompts BIGINT NOT NULL,
    assistant_responses BIGINT NOT NULL,
    tool_calls BIGINT NOT NULL,
    errors_count BIGINT NOT NULL,
    input_tokens BIGINT NOT NULL,
    output_tokens BIGINT NOT NULL,
    thinking_tokens BIGINT NOT NULL,
    cache_read_tokens BIGINT NOT NULL,
    cache_write_tokens BIGINT NOT NULL,
    total_tokens BIGINT NOT NULL,
    estimated_cost_usd DOUBLE NOT NULL,
    ingested_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
    """,
    """
CREATE TABLE IF NOT EXISTS claude_session_tools (
    session_id VARCHAR NOT NULL,
    tool_name VARCHAR NOT NULL,
    invocations BIGINT NOT NULL
)
    """,
    """
CREATE TABLE IF NOT EXISTS claude_session_files (
    session_id VARCHAR NOT NULL,
    file_path VARCHAR NOT NULL,
    modified BOOLEAN NOT NULL
)
    """,
    """
CREATE TABLE IF NOT EXISTS claude_ingestion_files (
    transcript_path VARCHAR PRIMARY KEY,
    file_size_bytes BIGINT NOT NULL,
    file_mtime TIMESTAMPTZ NOT NULL,
    ingested_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
    """,
    "CREATE SEQUENCE IF NOT EXISTS limit_event_id_seq START 1",
    """
CREATE TABLE IF NOT EXISTS limit_events (
    id BIGINT PRIMARY KEY DEFAULT nextval('limit_event_id_seq'),
    event_type VARCHAR NOT NULL,
    limit_type VARCHAR NOT NULL,
    event_timestamp TIMESTAMPTZ NOT NULL,
    message VARCHAR NOT NULL,
    tokens_used BIGINT NOT NULL,
    sessions_count BIGINT NOT NULL,
    input_tokens BIGINT NOT NULL,
    output_tokens BIGINT NOT NULL,
    thinking_tokens BIGINT NOT NULL,
    total_cost_usd DOUBLE NOT NULL,
    session_id VARCHAR,
    recorded_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
    """,
    """
CREATE TABLE IF NOT EXISTS plan_config (
    config_id INTEGER PRIMARY KEY,
    plan_type VARCHAR NOT NULL,
    window_hours INTEGER NOT NULL,
    window_start_time TIMESTAMPTZ,
    learned_token_limit DOUBLE,
    learned_at TIMESTAMPTZ,
    weekly_window_start_time TIMESTAMPTZ,
    weekly_learned_token_limit DOUBLE,
    weekly_learned_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
    """,
)


def connect_database(database_path: Path, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection with UTC session time zone."""
    connection = duckdb.connect(str(database_path), read_only=read_only)
    # TIMESTAMPTZ values are cast to VARCHAR in the session time zone.
    _ = connection.execute("SET TimeZone = 'UTC'")
    return connection


def ensure_schema(connection: duckdb.DuckDBPyConnection) -> None:
    """Create all tables when missing."""
    for statement in _SCHEMA_STATEMENTS:
        _ = connection.execute(statement)


@contextmanager
def transaction(connection: duckdb.DuckDBPyConnection) -> Iterator[None]:
    """Open a DB transaction scope."""
    _ = connection.execute("BEGIN TRANSACTION")
    try:
        yield
    except Exception:
        _ = connection.execute("ROLLBACK")
        raise
    else:
        _ = connection.execute("COMMIT")

"""Tests for the Claude token usage Typer CLI."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from claude_token_usage.cli import TYPER_APP
from claude_token_usage.transcript import TranscriptReadError


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TOKEN_PRICING_PATH", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("COLUMNS", "220")


def test_ingest_command_prints_summary(tmp_path: Path) -> None:
    """`ingest` should report counters for the scanned transcripts."""
    projects_root = _write_projects(tmp_path)
    database_path = tmp_path / "usage.duckdb"

    result = _invoke(["ingest", "--projects-root", str(projects_root), "--database-path", str(database_path)])

    assert result.exit_code == 0, result.output
    assert "files_scanned=1" in result.stdout
    assert "files_ingested=1" in result.stdout
    assert "sessions_ingested=1" in result.stdout
    assert "limit_events_recorded=1" in result.stdout
    assert "failed_files=0" in result.stdout
    assert "Statistics (last 7 days):" in result.stdout
    assert database_path.exists()


def test_ingest_command_returns_nonzero_when_any_file_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """`ingest` exits with code 1 when a transcript could not be read."""
    projects_root = _write_projects(tmp_path)

    def _raise_read_error(path: Path) -> None:
        raise TranscriptReadError(f"Failed to read transcript {path}.")

    monkeypatch.setattr("claude_token_usage.ingestion.service.parse_transcript", _raise_read_error)

    result = _invoke(
        ["ingest", "--projects-root", str(projects_root), "--database-path", str(tmp_path / "usage.duckdb")]
    )

    assert result.exit_code == 1
    assert "read_errors=1" in result.stdout
    assert "failed_file=" in result.stdout


def test_ingest_command_rejects_invalid_pricing_file(tmp_path: Path) -> None:
    """A malformed pricing override file is a usage error."""
    pricing_path = tmp_path / "pricing.json"
    pricing_path.write_text("[1, 2]", encoding="utf-8")

    result = _invoke(
        [
            "ingest",
            "--projects-root",
            str(_write_projects(tmp_path)),
            "--database-path",
            str(tmp_path / "usage.duckdb"),
            "--pricing-path",
            str(pricing_path),
        ]
    )

    assert result.exit_code == 2


def test_plan_windows_and_limits_commands(tmp_path: Path) -> None:
    """Plan configuration feeds window tracking and limit learning during ingestion."""
    projects_root = _write_projects(tmp_path)
    database_path = tmp_path / "usage.duckdb"

    plan_result = _invoke(["plan", "set", "pro", "--window-hours", "5", "--database-path", str(database_path)])
    ingest_result = _invoke(
        ["ingest", "--projects-root", str(projects_root), "--database-path", str(database_path)]
    )
    show_result = _invoke(["plan", "show", "--database-path", str(database_path)])
    windows_result = _invoke(["windows", "--database-path", str(database_path)])
    limits_result = _invoke(["limits", "--database-path", str(database_path), "--type", "daily"])

    assert plan_result.exit_code == 0, plan_result.output
    assert "plan_type=pro" in plan_result.stdout
    assert "window_hours=5" in plan_result.stdout

    assert ingest_result.exit_code == 0, ingest_result.output
    assert "windows_reset=2" in ingest_result.stdout

    assert show_result.exit_code == 0, show_result.output
    assert "short_window_start=2026-03-01T10:00:00+00:00" in show_result.stdout
    assert "short_learned_token_limit=3000" in show_result.stdout
    assert "weekly_learned_token_limit=-" in show_result.stdout

    assert windows_result.exit_code == 0, windows_result.output
    assert "Usage Windows" in windows_result.stdout
    assert "3,000 (learned)" in windows_result.stdout

    assert limits_result.exit_code == 0, limits_result.output
    assert "Limit Events" in limits_result.stdout
    assert "You've hit your daily limit." in limits_result.stdout
    assert "Usage since last limit event:" in limits_result.stdout
    assert "sessions=0" in limits_result.stdout


def test_plan_show_without_plan_exits_nonzero(tmp_path: Path) -> None:
    """`plan show` reports a missing plan with exit code 1."""
    database_path = tmp_path / "usage.duckdb"
    _invoke(["ingest", "--projects-root", str(_write_projects(tmp_path)), "--database-path", str(database_path)])

    result = _invoke(["plan", "show", "--database-path", str(database_path)])

    assert result.exit_code == 1
    assert "No plan configured." in result.stdout


def test_stats_command_prints_tables(tmp_path: Path) -> None:
    """`stats --ingest` should ingest first and print usage tables."""
    database_path = tmp_path / "usage.duckdb"

    result = _invoke(
        [
            "stats",
            "--ingest",
            "--projects-root",
            str(_write_projects(tmp_path)),
            "--database-path",
            str(database_path),
            "--timezone",
            "UTC",
            "--since",
            "2026-03-01",
        ]
    )

    assert result.exit_code == 0, result.output
    assert "files_ingested=1" in result.stdout
    assert "Daily Token Usage" in result.stdout
    assert "claude-sonnet-4-5-20250929" in result.stdout
    assert "2026-03-01" in result.stdout


def test_stats_command_rejects_invalid_options(tmp_path: Path) -> None:
    """Bad timezones, bad dates and a missing database are usage errors."""
    database_path = tmp_path / "usage.duckdb"

    missing_result = _invoke(["stats", "--database-path", str(database_path)])
    _invoke(["ingest", "--projects-root", str(_write_projects(tmp_path)), "--database-path", str(database_path)])
    timezone_result = _invoke(["stats", "--database-path", str(database_path), "--timezone", "Mars/Olympus"])
    since_result = _invoke(["stats", "--database-path", str(database_path), "--since", "03/01/2026"])

    assert missing_result.exit_code == 2
    assert timezone_result.exit_code == 2
    assert since_result.exit_code == 2


def _invoke(args: list[str]):
    runner = CliRunner()
    return runner.invoke(TYPER_APP, args, terminal_width=220)


def _write_projects(tmp_path: Path) -> Path:
    projects_root = tmp_path / "projects"
    _write_jsonl(
        projects_root / "-home-user-app" / "cli-session.jsonl",
        [
            {
                "type": "user",
                "timestamp": "2026-03-01T10:00:00Z",
                "message": {"role": "user", "content": "Refactor the parser"},
            },
            {
                "type": "assistant",
                "timestamp": "2026-03-01T10:01:00Z",
                "message": {
                    "model": "claude-sonnet-4-5-20250929",
                    "usage": {"input_tokens": 1000, "output_tokens": 2000},
                    "content": [{"type": "tool_use", "name": "Read", "input": {"file_path": "/repo/parser.py"}}],
                },
            },
            {
                "type": "system",
                "timestamp": "2026-03-01T10:05:00Z",
                "content": "You've hit your daily limit. It resets in 6 hours.",
            },
        ],
    )
    return projects_root


def _write_jsonl(path: Path, events: list[dict[str, object]]) -> None:
    """Write JSONL events to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        for event in events:
            handle.write(orjson.dumps(event))
            handle.write(b"\n")

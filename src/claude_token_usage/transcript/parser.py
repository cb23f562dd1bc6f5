"""Single-pass transcript parsing."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .aggregator import StatisticsAggregator
from .decoder import decode_entry, extract_text
from .errors import TranscriptReadError
from .limit_classifier import build_limit_event
from .schemas import LimitEvent, ParsedTranscript, TranscriptEntry

LOGGER = logging.getLogger(__name__)


def parse_transcript(transcript_path: Path | str | None, now: datetime | None = None) -> ParsedTranscript:
    """Parse a transcript file into session statistics and limit events.

    A missing path or file yields an empty result, the same as an empty
    transcript.

    Raises:
        TranscriptReadError: If the file exists but cannot be opened or read.
    """
    if not transcript_path:
        return ParsedTranscript()

    path = Path(transcript_path)
    try:
        handle = path.open("rb")
    except FileNotFoundError:
        LOGGER.debug("Transcript %s does not exist; returning empty statistics.", path)
        return ParsedTranscript()
    except OSError as exc:
        raise TranscriptReadError(f"Failed to open transcript {path}: {exc}.") from exc

    with handle:
        try:
            return parse_transcript_stream(handle, now=now)
        except OSError as exc:
            raise TranscriptReadError(f"Failed to read transcript {path}: {exc}.") from exc


def parse_transcript_stream(lines: Iterable[bytes | str], now: datetime | None = None) -> ParsedTranscript:
    """Parse transcript lines from any iterable (an open binary file, a list of strings, ...).

    Args:
        lines: Raw JSONL lines.
        now: Timestamp for limit events whose entry carries none; defaults to the current UTC time.
    """
    aggregator = StatisticsAggregator()
    limit_events: list[LimitEvent] = []
    lines_total = 0
    lines_skipped = 0

    for raw_line in lines:
        lines_total += 1
        entry = decode_entry(raw_line)
        if entry is None:
            lines_skipped += 1
            continue

        aggregator.add(entry)
        if entry.type == "system":
            event = _extract_limit_event(entry, now)
            if event is not None:
                limit_events.append(event)

    LOGGER.debug(
        "Parsed transcript: %d lines, %d skipped, %d limit events",
        lines_total,
        lines_skipped,
        len(limit_events),
    )
    return ParsedTranscript(statistics=aggregator.build(), limit_events=tuple(limit_events))


def _extract_limit_event(entry: TranscriptEntry, now: datetime | None) -> LimitEvent | None:
    text = extract_text(entry.content)
    if not text and entry.message is not None:
        text = extract_text(entry.message.content)
    if not text:
        return None
    return build_limit_event(text, entry.timestamp, now=now)

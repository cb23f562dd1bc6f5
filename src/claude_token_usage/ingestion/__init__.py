"""Ingestion pipeline for Claude transcript JSONL files."""

from .repository import IngestionRepository
from .schemas import IngestionCounters
from .service import IngestionService, discover_transcript_files

__all__ = ["IngestionCounters", "IngestionRepository", "IngestionService", "discover_transcript_files"]

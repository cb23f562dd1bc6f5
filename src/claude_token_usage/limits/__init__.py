"""Append-only quota event log with usage snapshots."""

from .repository import LimitsRepository
from .schemas import LimitEventRecord, UsageSummary
from .service import LimitsService

__all__ = ["LimitEventRecord", "LimitsRepository", "LimitsService", "UsageSummary"]

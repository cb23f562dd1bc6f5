"""Daily usage statistics and rich rendering."""

from .repository import StatsRepository, StatsRepositoryError
from .schemas import DailyUsageStatistics, UsageStats
from .service import StatsService

__all__ = ["DailyUsageStatistics", "StatsRepository", "StatsRepositoryError", "StatsService", "UsageStats"]

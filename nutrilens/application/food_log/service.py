"""
Food log service.

Saves analysis reports against a calendar day and summarizes each day.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable, List, Optional

import structlog

from nutrilens.domain.food_log.models import DailySummary, FoodLogEntry
from nutrilens.domain.food_log.ports import IFoodLogRepository
from nutrilens.domain.nutrition.normalizer import normalize_report
from nutrilens.domain.shared.errors import FoodLogEntryNotFoundError

logger = structlog.get_logger(__name__)


class FoodLogService:
    """
    Application service for the food log.

    Example:
        >>> service = FoodLogService(InMemoryFoodLogRepository())
        >>> entry = await service.log_report(report)
        >>> summary = await service.daily_summary(entry.date)
        >>> summary.entry_count
        1
    """

    def __init__(
        self,
        repository: IFoodLogRepository,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        """
        Args:
            repository: Food log storage port
            today: Current calendar day (injectable for tests)
        """
        self._repository = repository
        self._today = today

    async def log_report(self, report: Any, day: Optional[dt.date] = None) -> FoodLogEntry:
        """
        Save a report.

        The report is normalized again before storage, so client-edited or
        partially filled reports are stored in canonical form.

        Args:
            report: NutritionReport or report-shaped dict
            day: Day to log against (today when None)

        Returns:
            Stored FoodLogEntry
        """
        entry = FoodLogEntry.create(normalize_report(report), day or self._today())
        await self._repository.add(entry)
        logger.info("food_log_entry_added", entry_id=entry.id, date=entry.date.isoformat())
        return entry

    async def entries_for(self, day: Optional[dt.date] = None) -> List[FoodLogEntry]:
        """Entries for a day (all entries when None), newest first."""
        return await self._repository.list(day)

    async def get_entry(self, entry_id: str) -> FoodLogEntry:
        """
        Raises:
            FoodLogEntryNotFoundError: No entry with this id
        """
        entry = await self._repository.get(entry_id)
        if entry is None:
            raise FoodLogEntryNotFoundError(f"Food log entry {entry_id} not found")
        return entry

    async def delete_entry(self, entry_id: str) -> None:
        """
        Raises:
            FoodLogEntryNotFoundError: No entry with this id
        """
        if not await self._repository.delete(entry_id):
            raise FoodLogEntryNotFoundError(f"Food log entry {entry_id} not found")
        logger.info("food_log_entry_deleted", entry_id=entry_id)

    async def daily_summary(self, day: Optional[dt.date] = None) -> DailySummary:
        """Nutrient totals for a day (today when None)."""
        target = day or self._today()
        return DailySummary.from_entries(target, await self._repository.list(target))

"""In-memory food log repository implementation.

Provides an in-memory implementation of the IFoodLogRepository port.
Uses a dictionary for storage with no external dependencies.
"""

import datetime as dt
from typing import Dict, List, Optional

from nutrilens.domain.food_log.models import FoodLogEntry


class InMemoryFoodLogRepository:
    """
    In-memory implementation of IFoodLogRepository port.

    Entries are immutable pydantic models, so they are stored and returned
    as-is without copying.

    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> repository = InMemoryFoodLogRepository()
        >>> await repository.add(entry)
        >>> retrieved = await repository.get(entry.id)
    """

    def __init__(self) -> None:
        """Initialize repository with empty storage."""
        self._storage: Dict[str, FoodLogEntry] = {}

    async def add(self, entry: FoodLogEntry) -> None:
        """Store an entry (replaces an entry with the same id)."""
        self._storage[entry.id] = entry

    async def get(self, entry_id: str) -> Optional[FoodLogEntry]:
        return self._storage.get(entry_id)

    async def list(self, day: Optional[dt.date] = None) -> List[FoodLogEntry]:
        """
        List entries, newest first.

        Args:
            day: Only entries logged against this day (all when None)

        Returns:
            Entries ordered by created_at descending
        """
        entries = [
            entry for entry in self._storage.values() if day is None or entry.date == day
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    async def delete(self, entry_id: str) -> bool:
        return self._storage.pop(entry_id, None) is not None

    async def clear(self) -> None:
        """Remove all entries (for testing)."""
        self._storage.clear()

    def count(self) -> int:
        """Number of stored entries (for testing)."""
        return len(self._storage)

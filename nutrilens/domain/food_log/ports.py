"""
Food log repository interface.

Append-only store of saved analyses, queried by calendar day.
"""

import datetime as dt
from typing import List, Optional, Protocol, runtime_checkable

from nutrilens.domain.food_log.models import FoodLogEntry


@runtime_checkable
class IFoodLogRepository(Protocol):
    """
    Repository interface for food log entries.

    Design Pattern: Repository Pattern + Protocol (Dependency Injection)

    Example:
        >>> repository = InMemoryFoodLogRepository()
        >>> await repository.add(entry)
        >>> assert await repository.get(entry.id) == entry
    """

    async def add(self, entry: FoodLogEntry) -> None:
        """
        Store a new entry.

        Args:
            entry: FoodLogEntry to store
        """
        ...

    async def get(self, entry_id: str) -> Optional[FoodLogEntry]:
        """
        Retrieve an entry by id.

        Returns:
            FoodLogEntry if found, None otherwise
        """
        ...

    async def list(self, day: Optional[dt.date] = None) -> List[FoodLogEntry]:
        """
        List entries, newest first.

        Args:
            day: Only entries logged against this day (all when None)
        """
        ...

    async def delete(self, entry_id: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if an entry was removed, False if it did not exist
        """
        ...

"""
Food log domain models.

A FoodLogEntry is a saved NutritionReport pinned to the calendar day the
user logs it against. DailySummary sums a day's entries for the dashboard.
"""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Iterable

from pydantic import Field

from nutrilens.domain.nutrition.models import CanonicalModel, NutritionReport


def new_entry_id() -> str:
    """Opaque entry identifier."""
    return uuid.uuid4().hex


class FoodLogEntry(CanonicalModel):
    """
    Saved meal analysis.

    Example:
        >>> entry = FoodLogEntry.create(report, dt.date(2026, 3, 14))
        >>> entry.to_json_dict()["date"]
        '2026-03-14'
    """

    id: str = Field(default_factory=new_entry_id, min_length=1)
    date: dt.date
    report: NutritionReport
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    @classmethod
    def create(cls, report: NutritionReport, log_date: dt.date) -> "FoodLogEntry":
        """Create a new entry with a fresh id and timestamp."""
        return cls(date=log_date, report=report)


class DailySummary(CanonicalModel):
    """Integer nutrient totals for one day."""

    date: dt.date
    entry_count: int = Field(0, ge=0)
    total_calories: int = Field(0, ge=0)
    protein: int = Field(0, ge=0)
    carbohydrates: int = Field(0, ge=0)
    fat: int = Field(0, ge=0)
    fiber: int = Field(0, ge=0)
    sugars: int = Field(0, ge=0)

    @classmethod
    def from_entries(cls, day: dt.date, entries: Iterable[FoodLogEntry]) -> "DailySummary":
        """
        Sum report totals over entries.

        Example:
            >>> DailySummary.from_entries(dt.date(2026, 3, 14), []).total_calories
            0
        """
        totals = {
            "entry_count": 0,
            "total_calories": 0,
            "protein": 0,
            "carbohydrates": 0,
            "fat": 0,
            "fiber": 0,
            "sugars": 0,
        }
        for entry in entries:
            report = entry.report
            macros = report.macro_nutrients
            totals["entry_count"] += 1
            totals["total_calories"] += report.total_calories
            totals["protein"] += macros.protein
            totals["carbohydrates"] += macros.carbohydrates.total
            totals["fat"] += macros.fat.total
            totals["fiber"] += macros.carbohydrates.fiber
            totals["sugars"] += macros.carbohydrates.sugars
        return cls(date=day, **totals)

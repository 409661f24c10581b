"""Tests for food log domain models."""

import datetime as dt

from nutrilens.domain.food_log.models import DailySummary, FoodLogEntry
from nutrilens.domain.nutrition.normalizer import normalize_report

DAY = dt.date(2026, 3, 14)


def _report(calories: int, protein: int = 10, carbs: int = 20, fat: int = 5):
    return normalize_report(
        {
            "dishName": "Meal",
            "totalCalories": calories,
            "macroNutrients": {
                "protein": protein,
                "carbohydrates": {"total": carbs, "fiber": 3, "sugars": 4},
                "fat": {"total": fat, "saturated": 1, "unsaturated": 4},
            },
        }
    )


class TestFoodLogEntry:
    def test_create_assigns_id_and_utc_timestamp(self) -> None:
        entry = FoodLogEntry.create(_report(500), DAY)

        assert len(entry.id) == 32
        assert entry.date == DAY
        assert entry.created_at.tzinfo is not None

    def test_ids_are_unique(self) -> None:
        first = FoodLogEntry.create(_report(500), DAY)
        second = FoodLogEntry.create(_report(500), DAY)

        assert first.id != second.id

    def test_wire_shape(self) -> None:
        data = FoodLogEntry.create(_report(500), DAY).to_json_dict()

        assert data["date"] == "2026-03-14"
        assert "createdAt" in data
        assert data["report"]["totalCalories"] == 500


class TestDailySummary:
    def test_sums_entries(self) -> None:
        entries = [
            FoodLogEntry.create(_report(500, protein=30, carbs=40, fat=10), DAY),
            FoodLogEntry.create(_report(250, protein=5, carbs=35, fat=8), DAY),
        ]

        summary = DailySummary.from_entries(DAY, entries)

        assert summary.entry_count == 2
        assert summary.total_calories == 750
        assert summary.protein == 35
        assert summary.carbohydrates == 75
        assert summary.fat == 18
        assert summary.fiber == 6
        assert summary.sugars == 8

    def test_empty_day(self) -> None:
        summary = DailySummary.from_entries(DAY, [])

        assert summary.entry_count == 0
        assert summary.to_json_dict() == {
            "date": "2026-03-14",
            "entryCount": 0,
            "totalCalories": 0,
            "protein": 0,
            "carbohydrates": 0,
            "fat": 0,
            "fiber": 0,
            "sugars": 0,
        }

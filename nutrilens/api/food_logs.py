"""REST endpoints for the food log."""

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from nutrilens.api.dependencies import get_food_log_service
from nutrilens.api.schemas import DeleteResponse, ErrorResponse, FoodLogCreateRequest
from nutrilens.application.food_log.service import FoodLogService
from nutrilens.domain.food_log.models import DailySummary, FoodLogEntry

router = APIRouter(prefix="/api/food-logs", tags=["food-log"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Entry not found"}}


@router.get("", response_model=List[FoodLogEntry])
async def list_entries(
    date: Optional[dt.date] = Query(None, description="Day (YYYY-MM-DD); all entries when omitted"),
    service: FoodLogService = Depends(get_food_log_service),
) -> List[FoodLogEntry]:
    """Entries, newest first."""
    return await service.entries_for(date)


@router.post("", response_model=FoodLogEntry, status_code=201)
async def create_entry(
    body: FoodLogCreateRequest,
    service: FoodLogService = Depends(get_food_log_service),
) -> FoodLogEntry:
    """Save a nutrition report against a day (today when omitted)."""
    return await service.log_report(body.report, body.date)


# Declared before /{entry_id} so "summary" is not read as an id
@router.get("/summary", response_model=DailySummary)
async def daily_summary(
    date: Optional[dt.date] = Query(None, description="Day (YYYY-MM-DD); today when omitted"),
    service: FoodLogService = Depends(get_food_log_service),
) -> DailySummary:
    """Nutrient totals for one day."""
    return await service.daily_summary(date)


@router.get("/{entry_id}", response_model=FoodLogEntry, responses=_NOT_FOUND)
async def get_entry(
    entry_id: str,
    service: FoodLogService = Depends(get_food_log_service),
) -> FoodLogEntry:
    return await service.get_entry(entry_id)


@router.delete("/{entry_id}", response_model=DeleteResponse, responses=_NOT_FOUND)
async def delete_entry(
    entry_id: str,
    service: FoodLogService = Depends(get_food_log_service),
) -> DeleteResponse:
    await service.delete_entry(entry_id)
    return DeleteResponse(message="Food log deleted successfully", id=entry_id)

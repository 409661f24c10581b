"""Request and response bodies of the HTTP API (camelCase JSON)."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from nutrilens.domain.analysis.models import ImagePayload
from nutrilens.domain.nutrition.models import CanonicalModel


class AnalyzeMultiRequest(CanonicalModel):
    """Body of POST /api/analyze-multi."""

    image: ImagePayload
    food_name: Optional[str] = Field(None, description="Dish name hint")
    user_cues: Optional[str] = Field(None, description="Measurement cues")
    selected_models: Optional[List[str]] = Field(None, description="Backend ids to compare")


class AnalyzeRequest(CanonicalModel):
    """Body of POST /api/analyze."""

    model_config = ConfigDict(protected_namespaces=())

    image: ImagePayload
    food_name: Optional[str] = None
    user_cues: Optional[str] = None
    model_id: Optional[str] = Field(None, description="Backend id (server default when omitted)")


class FoodLogCreateRequest(CanonicalModel):
    """Body of POST /api/food-logs."""

    report: Dict[str, Any] = Field(..., description="Nutrition report (normalized on save)")
    date: Optional[dt.date] = Field(None, description="Day to log against (today when omitted)")


class ErrorDetail(CanonicalModel):
    model: str
    error: Optional[str] = None


class ErrorResponse(CanonicalModel):
    """Error body: one actionable message plus optional per-backend detail."""

    error: str
    message: str
    details: Optional[List[ErrorDetail]] = None


class DeleteResponse(CanonicalModel):
    message: str
    id: str

"""REST endpoints for meal photo analysis and the model catalogue."""

from typing import Any, Dict, Union

import structlog
from fastapi import APIRouter, Depends

from nutrilens.api.dependencies import get_analysis_service
from nutrilens.api.schemas import AnalyzeMultiRequest, AnalyzeRequest, ErrorResponse
from nutrilens.application.analysis.service import AnalysisService
from nutrilens.domain.analysis.models import AggregateResult
from nutrilens.domain.nutrition.models import NutritionReport

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

_ERRORS: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "No valid models selected"},
    502: {"model": ErrorResponse, "description": "Analysis failed upstream"},
    503: {"model": ErrorResponse, "description": "API key not configured"},
}


@router.post("/analyze-multi", response_model=AggregateResult, responses=_ERRORS)
async def analyze_multi(
    body: AnalyzeMultiRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> AggregateResult:
    """Analyze one meal photo with several models in parallel.

    Results are ordered: successful models first, then by descending
    confidence. Partial failure still returns 200; total failure returns
    502 with per-model error detail.

    Example:
        ```bash
        curl -X POST http://localhost:8080/api/analyze-multi \\
          -H "Content-Type: application/json" \\
          -d '{"image": {"data": "<base64>", "mimeType": "image/jpeg"},
               "foodName": "Pad Thai", "selectedModels": ["grok-41-fast"]}'
        ```
    """
    logger.info(
        "analyze_multi_request",
        food_name=body.food_name or "none",
        has_cues=bool(body.user_cues),
        selected_models=body.selected_models or "default",
    )
    return await service.analyze_multi(
        body.image,
        food_name_hint=body.food_name,
        measurement_hint=body.user_cues,
        selected_backend_ids=body.selected_models,
    )


@router.get("/analyze-multi/models")
async def list_multi_models(
    service: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    """Models usable for comparison right now, and every supported model."""
    available = service.list_available_backends()
    return {
        "available": available,
        "all": service.list_supported_backends(),
        "count": len(available),
    }


@router.post("/analyze", response_model=NutritionReport, responses=_ERRORS)
async def analyze(
    body: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> NutritionReport:
    """Analyze one meal photo with a single model (server default when omitted)."""
    logger.info(
        "analyze_request",
        food_name=body.food_name or "none",
        model_id=body.model_id or "default",
        has_cues=bool(body.user_cues),
    )
    return await service.analyze_one(
        body.image,
        food_name_hint=body.food_name,
        measurement_hint=body.user_cues,
        backend_id=body.model_id,
    )


@router.get("/models")
async def list_models(
    service: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    """Vision models with their configuration status."""
    return {"models": service.list_supported_backends()}

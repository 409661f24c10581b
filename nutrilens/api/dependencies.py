"""FastAPI dependencies: services built by the app factory live on app.state."""

from fastapi import Request

from nutrilens.application.analysis.service import AnalysisService
from nutrilens.application.food_log.service import FoodLogService
from nutrilens.metrics.analysis import AnalysisMetrics


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def get_food_log_service(request: Request) -> FoodLogService:
    return request.app.state.food_log_service


def get_metrics(request: Request) -> AnalysisMetrics:
    return request.app.state.metrics

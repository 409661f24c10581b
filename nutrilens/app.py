"""FastAPI application factory.

Builds the object graph once (settings → chat client → analyzer →
orchestrator → services) and stores the services on app.state. The
lifespan opens the Venice client on startup and closes it on shutdown.

Run:
    uvicorn nutrilens.app:create_app --factory --port 8080
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nutrilens import __version__
from nutrilens.api.analyze import router as analyze_router
from nutrilens.api.dependencies import get_metrics
from nutrilens.api.errors import register_error_handlers
from nutrilens.api.food_logs import router as food_logs_router
from nutrilens.application.analysis.orchestrator import MultiBackendOrchestrator
from nutrilens.application.analysis.retry_policy import RetryPolicy
from nutrilens.application.analysis.service import AnalysisService
from nutrilens.application.analysis.single_backend import SingleBackendAnalyzer
from nutrilens.application.food_log.service import FoodLogService
from nutrilens.domain.analysis.ports import IChatBackend
from nutrilens.domain.backends.registry import BackendRegistry
from nutrilens.domain.food_log.ports import IFoodLogRepository
from nutrilens.infrastructure.ai.venice_client import VeniceChatClient
from nutrilens.infrastructure.config import AnalysisSettings, load_settings
from nutrilens.infrastructure.logging import configure_logging
from nutrilens.infrastructure.persistence.in_memory_food_log import InMemoryFoodLogRepository
from nutrilens.metrics.analysis import AnalysisMetrics

logger = structlog.get_logger(__name__)


def _mask(secret: Optional[str]) -> Optional[str]:
    if not secret:
        return None
    if len(secret) > 8:
        return secret[:4] + "..." + secret[-4:]
    return "***"


def create_app(
    settings: Optional[AnalysisSettings] = None,
    chat: Optional[IChatBackend] = None,
    food_log_repository: Optional[IFoodLogRepository] = None,
    retry_policy: Optional[RetryPolicy] = None,
    metrics: Optional[AnalysisMetrics] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (loaded from the environment when None)
        chat: Chat backend (Venice client opened by the lifespan when None)
        food_log_repository: Food log storage (in-memory when None)
        retry_policy: Retry ladder (from settings when None)
        metrics: Metrics sink (fresh registry when None)

    Returns:
        Configured FastAPI app
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    metrics = metrics or AnalysisMetrics()

    venice_client = VeniceChatClient(settings) if chat is None else None
    backend: IChatBackend = chat if chat is not None else venice_client  # type: ignore[assignment]

    registry = BackendRegistry(default_comparison_ids=settings.comparison_models)
    analyzer = SingleBackendAnalyzer(backend, settings, retry_policy=retry_policy, metrics=metrics)
    orchestrator = MultiBackendOrchestrator(analyzer, registry, settings, metrics=metrics)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "startup_config",
            venice_key_present=settings.is_configured,
            venice_key_masked=_mask(settings.venice_api_key),
            base_url=settings.venice_base_url,
            comparison_models=list(settings.comparison_models),
            formatting_model=settings.formatting_model,
        )
        if venice_client is None:
            yield
        else:
            async with venice_client:
                logger.info("lifespan_ready")
                yield
        logger.info("lifespan_shutdown")

    app = FastAPI(title="NutriLens API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.analysis_service = AnalysisService(
        analyzer, orchestrator, registry, settings, metrics=metrics
    )
    app.state.food_log_service = FoodLogService(
        food_log_repository or InMemoryFoodLogRepository()
    )

    register_error_handlers(app)
    app.include_router(analyze_router)
    app.include_router(food_logs_router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "veniceConfigured": settings.is_configured,
        }

    @app.get("/api/metrics")
    async def metrics_snapshot(
        sink: AnalysisMetrics = Depends(get_metrics),
    ) -> Dict[str, Any]:
        return dict(sink.snapshot())

    return app


def main() -> None:  # pragma: no cover
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(
        "nutrilens.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENVIRONMENT") == "development",
    )


if __name__ == "__main__":  # pragma: no cover
    main()

"""
Meal analysis service.

Inbound facade of the analysis pipeline: multi-backend comparison,
single-backend analysis, and the backend catalogue.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog

from nutrilens.application.analysis.orchestrator import (
    NOT_CONFIGURED_MESSAGE,
    MultiBackendOrchestrator,
)
from nutrilens.application.analysis.single_backend import SingleBackendAnalyzer
from nutrilens.domain.analysis.models import AggregateResult, ImagePayload
from nutrilens.domain.backends.registry import BackendConfig, BackendRegistry
from nutrilens.domain.nutrition.models import NutritionReport
from nutrilens.domain.shared.errors import (
    AnalysisFailedError,
    NoBackendsAvailableError,
    NotConfiguredError,
)
from nutrilens.infrastructure.config import AnalysisSettings
from nutrilens.metrics.analysis import AnalysisMetrics

logger = structlog.get_logger(__name__)


def _catalogue_entry(backend: BackendConfig) -> Dict[str, Any]:
    return {
        "id": backend.id,
        "name": backend.name,
        "displayName": backend.display_name,
        "description": backend.description,
        "color": backend.color,
    }


class AnalysisService:
    """
    Application service for meal photo analysis.

    Example:
        >>> service = AnalysisService(analyzer, orchestrator, registry, settings)
        >>> report = await service.analyze_one(image, food_name_hint="Paella")
        >>> report.dish_name
        'Seafood Paella'
    """

    def __init__(
        self,
        analyzer: SingleBackendAnalyzer,
        orchestrator: MultiBackendOrchestrator,
        registry: BackendRegistry,
        settings: AnalysisSettings,
        metrics: Optional[AnalysisMetrics] = None,
    ) -> None:
        self._analyzer = analyzer
        self._orchestrator = orchestrator
        self._registry = registry
        self._settings = settings
        self._metrics = metrics or AnalysisMetrics()

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    async def analyze_multi(
        self,
        image: ImagePayload,
        food_name_hint: Optional[str] = None,
        measurement_hint: Optional[str] = None,
        selected_backend_ids: Optional[Sequence[str]] = None,
    ) -> AggregateResult:
        """
        Compare several backends on one image.

        Raises:
            NotConfiguredError: No API key
            NoBackendsAvailableError: Selection resolved to nothing
            AllBackendsFailedError: Every backend failed
        """
        return await self._orchestrator.run(
            image,
            food_name_hint=food_name_hint,
            measurement_hint=measurement_hint,
            selected_backend_ids=selected_backend_ids,
        )

    async def analyze_one(
        self,
        image: ImagePayload,
        food_name_hint: Optional[str] = None,
        measurement_hint: Optional[str] = None,
        backend_id: Optional[str] = None,
    ) -> NutritionReport:
        """
        Analyze with a single backend.

        Args:
            image: Image payload
            food_name_hint: Optional dish name
            measurement_hint: Optional measurement cues
            backend_id: Backend to use (configured default when None)

        Returns:
            Normalized NutritionReport

        Raises:
            NotConfiguredError: No API key
            NoBackendsAvailableError: Unknown or non-vision backend id
            AnalysisFailedError: Backend ended with an error outcome
        """
        if not self._settings.is_configured:
            raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)

        resolved_id = backend_id or self._settings.default_model
        backend = self._registry.lookup(resolved_id)
        if backend is None:
            raise NoBackendsAvailableError(f"Unknown vision model: {resolved_id}")

        outcome = await self._analyzer.analyze(backend, image, food_name_hint, measurement_hint)
        self._metrics.record_run(
            "single", int(outcome.succeeded), int(not outcome.succeeded)
        )
        if not outcome.succeeded:
            raise AnalysisFailedError(outcome.error or "Analysis failed", backend_id=backend.id)
        return outcome.nutrition_report

    def list_available_backends(self) -> List[Dict[str, Any]]:
        """Vision backends usable right now (empty when not configured)."""
        if not self._settings.is_configured:
            return []
        return [_catalogue_entry(b) for b in self._registry.list_vision_capable()]

    def list_supported_backends(self) -> List[Dict[str, Any]]:
        """Every vision backend, flagged with whether it is configured."""
        configured = self._settings.is_configured
        return [
            {**_catalogue_entry(b), "isConfigured": configured}
            for b in self._registry.list_vision_capable()
        ]

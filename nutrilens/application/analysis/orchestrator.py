"""
Multi-backend orchestrator.

Fans one image out to N backends concurrently, waits for all of them,
counts and orders the outcomes, and signals total failure.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, List, Optional, Sequence

import structlog

from nutrilens.application.analysis.single_backend import SingleBackendAnalyzer, describe_error
from nutrilens.domain.analysis.models import AggregateResult, AnalysisOutcome, ImagePayload
from nutrilens.domain.backends.registry import BackendConfig, BackendRegistry
from nutrilens.domain.shared.errors import (
    AllBackendsFailedError,
    NoBackendsAvailableError,
    NotConfiguredError,
)
from nutrilens.infrastructure.config import AnalysisSettings
from nutrilens.metrics.analysis import AnalysisMetrics

logger = structlog.get_logger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Venice API is not configured. Please set the VENICE_API_KEY environment variable."
)


def order_outcomes(outcomes: Sequence[AnalysisOutcome]) -> List[AnalysisOutcome]:
    """
    Successes first, then descending confidence; ties keep dispatch order.

    sorted() is stable, so equal keys keep their input order.
    """
    return sorted(outcomes, key=lambda o: (not o.succeeded, -o.confidence))


class MultiBackendOrchestrator:
    """
    Concurrent fan-out across backends.

    Example:
        >>> orchestrator = MultiBackendOrchestrator(analyzer, registry, settings)
        >>> result = await orchestrator.run(image, selected_backend_ids=["grok-41-fast"])
        >>> result.success_count
        1
    """

    def __init__(
        self,
        analyzer: SingleBackendAnalyzer,
        registry: BackendRegistry,
        settings: AnalysisSettings,
        metrics: Optional[AnalysisMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._analyzer = analyzer
        self._registry = registry
        self._settings = settings
        self._metrics = metrics or AnalysisMetrics()
        self._clock = clock

    def resolve_backends(
        self, selected_backend_ids: Optional[Sequence[str]] = None
    ) -> List[BackendConfig]:
        """
        Backends for a run.

        An explicit non-empty selection is filtered through the registry
        (unknown and non-vision ids dropped, order kept, duplicates dropped);
        otherwise the default comparison set.

        Raises:
            NoBackendsAvailableError: Resolution is empty
        """
        if selected_backend_ids:
            backends: List[BackendConfig] = []
            seen = set()
            for backend_id in selected_backend_ids:
                if backend_id in seen:
                    continue
                seen.add(backend_id)
                backend = self._registry.lookup(backend_id)
                if backend is None:
                    logger.warning("unknown_backend_dropped", backend=backend_id)
                    continue
                backends.append(backend)
        else:
            backends = self._registry.list_default_comparison_set()

        if not backends:
            raise NoBackendsAvailableError("No valid vision models selected for analysis.")
        return backends

    async def run(
        self,
        image: ImagePayload,
        food_name_hint: Optional[str] = None,
        measurement_hint: Optional[str] = None,
        selected_backend_ids: Optional[Sequence[str]] = None,
    ) -> AggregateResult:
        """
        Analyze the image with every resolved backend concurrently.

        Args:
            image: Image payload
            food_name_hint: Optional dish name
            measurement_hint: Optional measurement cues
            selected_backend_ids: Explicit backend selection (default set when empty)

        Returns:
            AggregateResult with ordered outcomes

        Raises:
            NotConfiguredError: No API key (checked first)
            NoBackendsAvailableError: Selection resolved to nothing
            AllBackendsFailedError: No backend succeeded (carries the result)
        """
        if not self._settings.is_configured:
            raise NotConfiguredError(NOT_CONFIGURED_MESSAGE)

        backends = self.resolve_backends(selected_backend_ids)
        logger.info(
            "multi_analysis_started",
            backends=[b.id for b in backends],
            count=len(backends),
        )

        start = self._clock()
        # Every analysis is scheduled before any is awaited; one failure never cancels siblings
        raw = await asyncio.gather(
            *(
                self._analyzer.analyze(backend, image, food_name_hint, measurement_hint)
                for backend in backends
            ),
            return_exceptions=True,
        )
        total_time_ms = max(0, int(round((self._clock() - start) * 1000)))

        outcomes: List[AnalysisOutcome] = []
        for backend, item in zip(backends, raw):
            if isinstance(item, AnalysisOutcome):
                outcomes.append(item)
                continue
            if isinstance(item, asyncio.CancelledError):
                raise item
            # The analyzer converts backend failures itself; this is a programming error
            logger.error(
                "analyzer_raised",
                backend=backend.id,
                error=describe_error(item),
                error_type=type(item).__name__,
            )
            outcomes.append(AnalysisOutcome.failure(backend, describe_error(item), 0, attempts=0))

        success_count = sum(1 for o in outcomes if o.succeeded)
        result = AggregateResult(
            results=order_outcomes(outcomes),
            total_time_ms=total_time_ms,
            success_count=success_count,
            error_count=len(outcomes) - success_count,
        )
        self._metrics.record_run("multi", result.success_count, result.error_count)
        logger.info(
            "multi_analysis_complete",
            total_time_ms=total_time_ms,
            success_count=result.success_count,
            error_count=result.error_count,
        )

        if result.all_failed:
            raise AllBackendsFailedError("All models failed to analyze the image.", result)
        return result

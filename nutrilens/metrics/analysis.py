"""Instrumentation for the meal analysis pipeline.

Metrics:
* Counter analysis_backend_outcomes_total{backend,status}
* Histogram analysis_backend_latency_ms{backend}
* Counter analysis_retries_total{backend,reason}
* Counter analysis_runs_total{mode,result}

`reason` is the retry action (rate_limit_wait | backoff).
`mode` is multi | single; `result` is ok | partial | all_failed.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from nutrilens.metrics.core import MetricsRegistry

OUTCOMES_TOTAL = "analysis_backend_outcomes_total"
LATENCY_MS = "analysis_backend_latency_ms"
RETRIES_TOTAL = "analysis_retries_total"
RUNS_TOTAL = "analysis_runs_total"


class AnalysisMetrics:
    """
    Pipeline metrics over an injected registry.

    Example:
        >>> metrics = AnalysisMetrics()
        >>> metrics.record_outcome("grok-41-fast", "success", 1820.0)
        >>> metrics.registry.counter_total(OUTCOMES_TOTAL, status="success")
        1
    """

    def __init__(self, registry: Optional[MetricsRegistry] = None) -> None:
        self.registry = registry or MetricsRegistry()

    def record_outcome(self, backend_id: str, status: str, latency_ms: float) -> None:
        self.registry.counter(OUTCOMES_TOTAL, backend=backend_id, status=status).inc()
        self.registry.histogram(LATENCY_MS, backend=backend_id).observe(latency_ms)

    def record_retry(self, backend_id: str, reason: str) -> None:
        self.registry.counter(RETRIES_TOTAL, backend=backend_id, reason=reason).inc()

    def record_run(self, mode: str, success_count: int, error_count: int) -> None:
        """Count a finished run, bucketed by how many backends succeeded."""
        if success_count == 0:
            result = "all_failed"
        elif error_count:
            result = "partial"
        else:
            result = "ok"
        self.registry.counter(RUNS_TOTAL, mode=mode, result=result).inc()

    def snapshot(self) -> Dict[str, Any]:
        return self.registry.snapshot()

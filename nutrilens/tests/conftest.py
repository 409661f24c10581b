"""
Shared fixtures for NutriLens tests.

The chat backend is faked: extraction returns a marker naming the backend,
formatting answers with the JSON scripted for that backend. Retry sleeps are
recorded instead of awaited.
"""

import json
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from nutrilens.application.analysis.orchestrator import MultiBackendOrchestrator
from nutrilens.application.analysis.retry_policy import RetryPolicy
from nutrilens.application.analysis.service import AnalysisService
from nutrilens.application.analysis.single_backend import SingleBackendAnalyzer
from nutrilens.domain.analysis.models import ImagePayload
from nutrilens.domain.backends.registry import BackendConfig, BackendRegistry
from nutrilens.infrastructure.config import AnalysisSettings
from nutrilens.metrics.analysis import AnalysisMetrics

_EXTRACTED_MARKER = re.compile(r"EXTRACTED::(\S+)")


class FailFormatting:
    """Script step: extraction succeeds, formatting raises `error`."""

    def __init__(self, error: BaseException) -> None:
        self.error = error


Step = Union[str, BaseException, FailFormatting]


class FakeChat:
    """
    Scripted IChatBackend.

    script maps backend id → steps consumed one per attempt. A str step is
    the formatting-stage output; an exception step is raised by extraction;
    FailFormatting raises during formatting. When a backend's steps run out,
    `default` is used.
    """

    def __init__(
        self,
        script: Optional[Dict[str, Sequence[Step]]] = None,
        default: Optional[Step] = None,
    ) -> None:
        self.script: Dict[str, List[Step]] = {k: list(v) for k, v in (script or {}).items()}
        self.default = default
        self.calls: List[Dict[str, Any]] = []
        self._pending: Dict[str, Step] = {}

    def extraction_calls(self, backend_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            c
            for c in self.calls
            if c["response_format"] is None and (backend_id is None or c["model"] == backend_id)
        ]

    def formatting_calls(self) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["response_format"] is not None]

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": response_format,
            }
        )
        if response_format is None:
            steps = self.script.get(model)
            step = steps.pop(0) if steps else self.default
            if isinstance(step, BaseException):
                raise step
            self._pending[model] = step if step is not None else ""
            return f"EXTRACTED::{model}"

        match = _EXTRACTED_MARKER.search(messages[-1]["content"])
        assert match, "formatting prompt must embed the extracted text"
        step = self._pending.pop(match.group(1))
        if isinstance(step, FailFormatting):
            raise step.error
        return step


class SleepRecorder:
    """Injectable sleep that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def build_report_json(
    dish_name: str = "Grilled Chicken Salad",
    confidence: int = 80,
    total_calories: int = 450,
) -> str:
    """Canonical-shaped formatting output."""
    return json.dumps(
        {
            "dishName": dish_name,
            "totalCalories": total_calories,
            "macroNutrients": {
                "protein": 35,
                "carbohydrates": {"total": 20, "fiber": 6, "sugars": 5},
                "fat": {"total": 22, "saturated": 4, "unsaturated": 18},
            },
            "microNutrients": {"vitamins": "A, C, K", "minerals": "Iron, Potassium"},
            "items": [
                {
                    "name": "Chicken breast",
                    "calories": 230,
                    "weightGrams": 140,
                    "macronutrients": {
                        "protein": 32,
                        "carbohydrates": {"total": 0, "fiber": 0, "sugars": 0},
                        "fat": {"total": 5, "saturated": 1, "unsaturated": 4},
                    },
                }
            ],
            "notes": ["High protein meal"],
            "analysis": {
                "visualObservations": "Sliced grilled chicken over mixed greens",
                "portionEstimate": "Standard 26cm dinner plate",
                "confidence": confidence,
                "confidenceNarrative": "Clear, well-lit photo",
                "cautions": ["Dressing may contain dairy"],
            },
        }
    )


# ═══════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def settings() -> AnalysisSettings:
    """Configured settings with default ladders."""
    return AnalysisSettings(venice_api_key="vk-test-1234567890")


@pytest.fixture
def unconfigured_settings() -> AnalysisSettings:
    return AnalysisSettings(venice_api_key=None)


@pytest.fixture
def sample_image() -> ImagePayload:
    return ImagePayload(data="iVBORw0KGgoAAAANSUhEUgAAAAE", mime_type="image/png")


@pytest.fixture
def registry() -> BackendRegistry:
    return BackendRegistry()


@pytest.fixture
def mistral(registry: BackendRegistry) -> BackendConfig:
    backend = registry.lookup("mistral-31-24b")
    assert backend is not None
    return backend


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def metrics() -> AnalysisMetrics:
    return AnalysisMetrics()


@pytest.fixture
def retry_policy(settings: AnalysisSettings, sleep_recorder: SleepRecorder) -> RetryPolicy:
    return RetryPolicy.from_settings(settings, sleep=sleep_recorder)


@pytest.fixture
def report_json() -> Callable[..., str]:
    """Factory for canonical formatting output."""
    return build_report_json


@pytest.fixture
def make_chat() -> Callable[..., FakeChat]:
    """Factory for scripted chat backends (default step: a valid report)."""

    def _make(
        script: Optional[Dict[str, Sequence[Step]]] = None,
        default: Optional[Step] = None,
    ) -> FakeChat:
        return FakeChat(script=script, default=default if default is not None else build_report_json())

    return _make


@pytest.fixture
def fail_formatting() -> Callable[[BaseException], FailFormatting]:
    return FailFormatting


@pytest.fixture
def build_service(
    settings: AnalysisSettings,
    registry: BackendRegistry,
    retry_policy: RetryPolicy,
    metrics: AnalysisMetrics,
) -> Callable[..., AnalysisService]:
    """Factory wiring analyzer → orchestrator → service around a chat backend."""

    def _build(chat: Any, service_settings: Optional[AnalysisSettings] = None) -> AnalysisService:
        effective = service_settings or settings
        analyzer = SingleBackendAnalyzer(chat, effective, retry_policy=retry_policy, metrics=metrics)
        orchestrator = MultiBackendOrchestrator(analyzer, registry, effective, metrics=metrics)
        return AnalysisService(analyzer, orchestrator, registry, effective, metrics=metrics)

    return _build

"""
Single-backend analyzer.

Runs the two-stage protocol against one backend:

1. Extraction: the vision backend describes the meal (free text / loose JSON)
2. Formatting: a text backend rewrites it under a strict JSON schema

The formatted text is repaired if truncated, parsed, and normalized. The
whole two-stage call runs under the RetryPolicy. Backend failures never
escape: they become error outcomes.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable, Optional

import structlog

from nutrilens.application.analysis.retry_policy import RetryPolicy, classify_error
from nutrilens.domain.analysis.models import AnalysisOutcome, ImagePayload
from nutrilens.domain.analysis.ports import IChatBackend
from nutrilens.domain.analysis.prompts import (
    build_extraction_messages,
    build_formatting_messages,
)
from nutrilens.domain.backends.registry import BackendConfig
from nutrilens.domain.nutrition.json_repair import repair_truncated_json, strip_code_fences
from nutrilens.domain.nutrition.models import NutritionReport
from nutrilens.domain.nutrition.normalizer import normalize_report
from nutrilens.domain.nutrition.schema import response_format
from nutrilens.domain.shared.errors import (
    ExtractionEmptyError,
    ExtractionTimeoutError,
    FormatParseError,
    FormattingEmptyError,
    FormattingTimeoutError,
)
from nutrilens.infrastructure.config import AnalysisSettings
from nutrilens.metrics.analysis import AnalysisMetrics

logger = structlog.get_logger(__name__)

EXTRACTION_TEMPERATURE = 0.3
EXTRACTION_MAX_TOKENS = 4000
FORMATTING_TEMPERATURE = 0.1
FORMATTING_MAX_TOKENS = 16000


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        # Only truncation is repairable: a payload ending in "}" failed elsewhere
        if not text.endswith("}"):
            fixed = repair_truncated_json(text)
            if fixed is not None:
                try:
                    return json.loads(fixed)
                except json.JSONDecodeError:
                    pass
        raise FormatParseError(f"Failed to parse formatted JSON: {e.msg}") from e


def parse_report_text(text: str) -> NutritionReport:
    """
    Parse formatting-stage output into a canonical report.

    Strips markdown code fences, parses JSON (repairing truncation when
    possible) and normalizes the result.

    Args:
        text: Raw formatting-stage output

    Returns:
        Normalized NutritionReport

    Raises:
        FormatParseError: Not JSON even after repair, or root is not an object

    Example:
        >>> parse_report_text('```json\\n{"dishName": "Ramen", "totalCalories": 540.6\\n```')
        NutritionReport(dish_name='Ramen', total_calories=541, ...)
    """
    data = _decode(strip_code_fences(text))
    if not isinstance(data, dict):
        raise FormatParseError(
            f"Formatted output is not a JSON object (got {type(data).__name__})"
        )
    return normalize_report(data)


def describe_error(error: BaseException) -> str:
    """Human-readable failure message (status-prefixed for HTTP errors)."""
    return str(error) or type(error).__name__


class SingleBackendAnalyzer:
    """
    Analyze one image with one backend.

    Example:
        >>> analyzer = SingleBackendAnalyzer(chat=venice_client, settings=settings)
        >>> outcome = await analyzer.analyze(backend, image, food_name_hint="Pho")
        >>> outcome.status
        'success'
    """

    def __init__(
        self,
        chat: IChatBackend,
        settings: AnalysisSettings,
        retry_policy: Optional[RetryPolicy] = None,
        metrics: Optional[AnalysisMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize analyzer.

        Args:
            chat: Chat completions port
            settings: Timeouts and formatting model
            retry_policy: Retry ladder (defaults from settings)
            metrics: Metrics sink (private registry when None)
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self._chat = chat
        self._settings = settings
        self._retry_policy = retry_policy or RetryPolicy.from_settings(settings)
        self._metrics = metrics or AnalysisMetrics()
        self._clock = clock

    async def analyze(
        self,
        backend: BackendConfig,
        image: ImagePayload,
        food_name_hint: Optional[str] = None,
        measurement_hint: Optional[str] = None,
    ) -> AnalysisOutcome:
        """
        Run extract → format under the retry policy.

        Args:
            backend: Vision backend to analyze with
            image: Image payload
            food_name_hint: Optional dish name from the user
            measurement_hint: Optional measurement cues from the user

        Returns:
            AnalysisOutcome (success or error); never raises for backend failures
        """
        start = self._clock()
        attempts = 0
        log = logger.bind(backend=backend.id)
        log.info("backend_analysis_started", image_kb=image.size_kb, mime_type=image.mime_type)

        async def attempt() -> NutritionReport:
            nonlocal attempts
            attempts += 1
            extracted = await self._extract(backend, image, food_name_hint, measurement_hint)
            log.debug("extraction_complete", chars=len(extracted), attempt=attempts)
            return await self._format(backend, extracted)

        def on_retry(attempt_number: int, error: BaseException, delay_s: float) -> None:
            self._metrics.record_retry(backend.id, classify_error(error).value)

        try:
            report = await self._retry_policy.run(attempt, on_retry=on_retry)
        except Exception as e:
            elapsed_ms = self._elapsed_ms(start)
            message = describe_error(e)
            log.warning(
                "backend_analysis_failed",
                error=message,
                error_type=type(e).__name__,
                attempts=attempts,
                elapsed_ms=elapsed_ms,
            )
            self._metrics.record_outcome(backend.id, "error", elapsed_ms)
            return AnalysisOutcome.failure(backend, message, elapsed_ms, attempts)

        elapsed_ms = self._elapsed_ms(start)
        log.info(
            "backend_analysis_succeeded",
            attempts=attempts,
            elapsed_ms=elapsed_ms,
            confidence=report.confidence,
        )
        self._metrics.record_outcome(backend.id, "success", elapsed_ms)
        return AnalysisOutcome.success(backend, report, elapsed_ms, attempts)

    def _elapsed_ms(self, start: float) -> int:
        return max(0, int(round((self._clock() - start) * 1000)))

    async def _extract(
        self,
        backend: BackendConfig,
        image: ImagePayload,
        food_name_hint: Optional[str],
        measurement_hint: Optional[str],
    ) -> str:
        timeout = self._settings.extraction_timeout_s
        messages = build_extraction_messages(image.as_data_url(), food_name_hint, measurement_hint)
        try:
            text = await asyncio.wait_for(
                self._chat.complete(
                    model=backend.id,
                    messages=messages,
                    temperature=EXTRACTION_TEMPERATURE,
                    max_tokens=EXTRACTION_MAX_TOKENS,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionTimeoutError(f"Extraction timeout after {timeout:g}s") from e

        if not text or not text.strip():
            raise ExtractionEmptyError("No content returned from extraction step")
        return text

    async def _format(self, backend: BackendConfig, extracted: str) -> NutritionReport:
        timeout = self._settings.formatting_timeout_s
        model = self._settings.formatting_model or backend.id
        try:
            text = await asyncio.wait_for(
                self._chat.complete(
                    model=model,
                    messages=build_formatting_messages(extracted),
                    temperature=FORMATTING_TEMPERATURE,
                    max_tokens=FORMATTING_MAX_TOKENS,
                    response_format=response_format(),
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise FormattingTimeoutError(f"Formatting timeout after {timeout:g}s") from e

        if not text or not text.strip():
            raise FormattingEmptyError("No content returned from formatting step")
        return parse_report_text(text)

"""
Tests for the single-backend analyzer.

Covers the extract → format protocol, parse recovery, stage timeouts and
the retry ladder as seen through AnalysisOutcome.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from nutrilens.application.analysis.retry_policy import RetryPolicy
from nutrilens.application.analysis.single_backend import (
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    FORMATTING_MAX_TOKENS,
    FORMATTING_TEMPERATURE,
    SingleBackendAnalyzer,
    parse_report_text,
)
from nutrilens.domain.analysis.models import AnalysisStatus
from nutrilens.domain.shared.errors import (
    BackendRequestError,
    FormatParseError,
    ServiceUnavailableError,
)
from nutrilens.infrastructure.config import AnalysisSettings
from nutrilens.metrics.analysis import OUTCOMES_TOTAL, RETRIES_TOTAL

MISTRAL = "mistral-31-24b"


class StagedChat:
    """Chat whose extraction and formatting stages behave independently."""

    def __init__(
        self,
        extraction: str = "A plate of food",
        formatting: str = '{"dishName": "Plate"}',
        extraction_delay: float = 0.0,
        formatting_delay: float = 0.0,
    ) -> None:
        self.extraction = extraction
        self.formatting = formatting
        self.extraction_delay = extraction_delay
        self.formatting_delay = formatting_delay
        self.calls = 0

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        self.calls += 1
        if response_format is None:
            await asyncio.sleep(self.extraction_delay)
            return self.extraction
        await asyncio.sleep(self.formatting_delay)
        return self.formatting


@pytest.fixture
def single_attempt(sleep_recorder) -> RetryPolicy:
    return RetryPolicy(max_retries=0, sleep=sleep_recorder)


def _analyzer(chat: Any, settings: AnalysisSettings, retry_policy: RetryPolicy, metrics=None) -> SingleBackendAnalyzer:
    return SingleBackendAnalyzer(chat, settings, retry_policy=retry_policy, metrics=metrics)


# ═══════════════════════════════════════════════════════════
# HAPPY PATH
# ═══════════════════════════════════════════════════════════


class TestSuccess:
    @pytest.mark.asyncio
    async def test_two_stage_analysis(
        self, make_chat, settings, retry_policy, metrics, mistral, sample_image
    ) -> None:
        chat = make_chat()

        outcome = await _analyzer(chat, settings, retry_policy, metrics).analyze(mistral, sample_image)

        assert outcome.status == AnalysisStatus.SUCCESS
        assert outcome.model_id == MISTRAL
        assert outcome.nutrition_report.dish_name == "Grilled Chicken Salad"
        assert outcome.confidence == 80
        assert outcome.attempts == 1
        assert outcome.analysis_time_ms >= 0
        assert metrics.registry.counter_total(OUTCOMES_TOTAL, backend=MISTRAL, status="success") == 1

    @pytest.mark.asyncio
    async def test_stage_parameters(self, make_chat, settings, retry_policy, mistral, sample_image) -> None:
        chat = make_chat()

        await _analyzer(chat, settings, retry_policy).analyze(
            mistral, sample_image, food_name_hint="Pad Thai", measurement_hint="26cm plate"
        )

        [extraction] = chat.extraction_calls()
        [formatting] = chat.formatting_calls()
        assert extraction["model"] == MISTRAL
        assert extraction["temperature"] == EXTRACTION_TEMPERATURE
        assert extraction["max_tokens"] == EXTRACTION_MAX_TOKENS
        assert formatting["model"] == "qwen3-4b"
        assert formatting["temperature"] == FORMATTING_TEMPERATURE
        assert formatting["max_tokens"] == FORMATTING_MAX_TOKENS
        assert formatting["response_format"]["type"] == "json_schema"
        assert formatting["response_format"]["json_schema"]["name"] == "nutritional_report"
        assert formatting["response_format"]["json_schema"]["strict"] is True

    @pytest.mark.asyncio
    async def test_extraction_prompt_carries_hints_and_image(
        self, make_chat, settings, retry_policy, mistral, sample_image
    ) -> None:
        chat = make_chat()

        await _analyzer(chat, settings, retry_policy).analyze(
            mistral, sample_image, food_name_hint="Pad Thai", measurement_hint="26cm plate"
        )

        text_part, image_part = chat.extraction_calls()[0]["messages"][1]["content"]
        assert '"Pad Thai"' in text_part["text"]
        assert "26cm plate" in text_part["text"]
        assert image_part["image_url"]["url"] == sample_image.as_data_url()

    @pytest.mark.asyncio
    async def test_blank_formatting_model_formats_with_same_backend(
        self, make_chat, retry_policy, mistral, sample_image
    ) -> None:
        chat = make_chat()
        settings = AnalysisSettings(venice_api_key="vk-test", formatting_model=None)

        await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert chat.formatting_calls()[0]["model"] == MISTRAL

    @pytest.mark.asyncio
    async def test_fenced_output_is_parsed(
        self, make_chat, report_json, settings, retry_policy, mistral, sample_image
    ) -> None:
        chat = make_chat(default=f"```json\n{report_json(dish_name='Ramen')}\n```")

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.succeeded
        assert outcome.nutrition_report.dish_name == "Ramen"

    @pytest.mark.asyncio
    async def test_truncated_output_is_repaired(self, make_chat, settings, retry_policy, mistral, sample_image) -> None:
        truncated = '{"dishName": "Ramen", "totalCalories": 540, "macroNutrients": {"protein": 22,'
        chat = make_chat(default=truncated)

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.succeeded
        assert outcome.nutrition_report.total_calories == 540
        assert outcome.nutrition_report.macro_nutrients.protein == 22
        assert outcome.confidence == 75


# ═══════════════════════════════════════════════════════════
# PARSE FAILURES (never retried)
# ═══════════════════════════════════════════════════════════


class TestParseFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("formatted", ['[{"dishName": "Ramen"}]', '"just text"', '{"dishName": }'])
    async def test_unparseable_output_fails_without_retry(
        self, make_chat, settings, retry_policy, sleep_recorder, mistral, sample_image, formatted: str
    ) -> None:
        chat = make_chat(default=formatted)

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.status == AnalysisStatus.ERROR
        assert outcome.attempts == 1
        assert sleep_recorder.delays == []
        assert len(chat.extraction_calls()) == 1

    def test_parse_report_text_rejects_non_object_root(self) -> None:
        with pytest.raises(FormatParseError, match="not a JSON object"):
            parse_report_text("[1, 2, 3]")

    def test_parse_report_text_reports_decode_error(self) -> None:
        with pytest.raises(FormatParseError, match="Failed to parse formatted JSON"):
            parse_report_text("Sorry, I cannot help with that}")


# ═══════════════════════════════════════════════════════════
# RETRIES
# ═══════════════════════════════════════════════════════════


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_failures_then_success(
        self, make_chat, settings, retry_policy, sleep_recorder, metrics, mistral, sample_image
    ) -> None:
        chat = make_chat(
            {MISTRAL: [ServiceUnavailableError("overloaded", status_code=503)] * 2}
        )

        outcome = await _analyzer(chat, settings, retry_policy, metrics).analyze(mistral, sample_image)

        assert outcome.succeeded
        assert outcome.attempts == 3
        assert sleep_recorder.delays == [1.0, 2.0]
        assert metrics.registry.counter_total(RETRIES_TOTAL, backend=MISTRAL, reason="backoff") == 2

    @pytest.mark.asyncio
    async def test_formatting_failure_retries_both_stages(
        self, make_chat, fail_formatting, settings, retry_policy, mistral, sample_image
    ) -> None:
        chat = make_chat({MISTRAL: [fail_formatting(ServiceUnavailableError("busy", status_code=500))]})

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.succeeded
        assert outcome.attempts == 2
        assert len(chat.extraction_calls(MISTRAL)) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_become_error_outcome(
        self, make_chat, settings, retry_policy, sleep_recorder, metrics, mistral, sample_image
    ) -> None:
        chat = make_chat(
            {MISTRAL: [ServiceUnavailableError("upstream overloaded", status_code=503)] * 4}
        )

        outcome = await _analyzer(chat, settings, retry_policy, metrics).analyze(mistral, sample_image)

        assert outcome.status == AnalysisStatus.ERROR
        assert outcome.error == "HTTP 503: upstream overloaded"
        assert outcome.attempts == 4
        assert outcome.confidence == 0
        assert outcome.nutrition_report.dish_name == "Analysis Failed"
        assert sleep_recorder.delays == [1.0, 2.0, 4.0]
        assert metrics.registry.counter_total(OUTCOMES_TOTAL, backend=MISTRAL, status="error") == 1

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(
        self, make_chat, settings, retry_policy, sleep_recorder, mistral, sample_image
    ) -> None:
        chat = make_chat({MISTRAL: [BackendRequestError("model not found", status_code=404)]})

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.error == "HTTP 404: model not found"
        assert outcome.attempts == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_cancellation_is_not_converted(self, make_chat, settings, retry_policy, mistral, sample_image) -> None:
        chat = make_chat({MISTRAL: [asyncio.CancelledError()]})

        with pytest.raises(asyncio.CancelledError):
            await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)


# ═══════════════════════════════════════════════════════════
# STAGE TIMEOUTS AND EMPTY RESPONSES
# ═══════════════════════════════════════════════════════════


class TestStageFailures:
    @pytest.mark.asyncio
    async def test_extraction_timeout(self, single_attempt, mistral, sample_image) -> None:
        settings = AnalysisSettings(venice_api_key="vk-test", extraction_timeout_s=0.01)
        chat = StagedChat(extraction_delay=1.0)

        outcome = await _analyzer(chat, settings, single_attempt).analyze(mistral, sample_image)

        assert outcome.error == "Extraction timeout after 0.01s"

    @pytest.mark.asyncio
    async def test_formatting_timeout(self, single_attempt, mistral, sample_image) -> None:
        settings = AnalysisSettings(venice_api_key="vk-test", formatting_timeout_s=0.01)
        chat = StagedChat(formatting_delay=1.0)

        outcome = await _analyzer(chat, settings, single_attempt).analyze(mistral, sample_image)

        assert outcome.error == "Formatting timeout after 0.01s"

    @pytest.mark.asyncio
    async def test_timeouts_are_retried(self, retry_policy, sleep_recorder, mistral, sample_image) -> None:
        settings = AnalysisSettings(venice_api_key="vk-test", extraction_timeout_s=0.01)
        chat = StagedChat(extraction_delay=1.0)

        outcome = await _analyzer(chat, settings, retry_policy).analyze(mistral, sample_image)

        assert outcome.attempts == 4
        assert sleep_recorder.delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_empty_extraction(self, settings, single_attempt, mistral, sample_image) -> None:
        chat = StagedChat(extraction="   ")

        outcome = await _analyzer(chat, settings, single_attempt).analyze(mistral, sample_image)

        assert outcome.error == "No content returned from extraction step"
        assert chat.calls == 1

    @pytest.mark.asyncio
    async def test_empty_formatting(self, settings, single_attempt, mistral, sample_image) -> None:
        chat = StagedChat(formatting="")

        outcome = await _analyzer(chat, settings, single_attempt).analyze(mistral, sample_image)

        assert outcome.error == "No content returned from formatting step"

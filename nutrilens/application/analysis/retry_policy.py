"""
Retry policy for backend analyses.

One policy governs every backend call: the error class decides whether to
retry and how long to wait. Built on tenacity; sleeping goes through an
injectable coroutine so tests can record delays instead of waiting.

    HTTP 429            → wait retry-after (default 30s), retry
    HTTP 500 / 503      → exponential backoff 1s, 2s, 4s ... (cap 30s)
    HTTP 400 / 404      → fail immediately
    FormatParseError    → fail immediately
    anything else       → exponential backoff
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from nutrilens.domain.shared.errors import (
    BackendRequestError,
    FormatParseError,
    RateLimitError,
)
from nutrilens.infrastructure.config import AnalysisSettings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
OnRetryFn = Callable[[int, BaseException, float], None]

NON_RETRYABLE_STATUSES = frozenset({400, 404})


class RetryAction(str, Enum):
    """What to do after a failed attempt."""

    RATE_LIMIT_WAIT = "rate_limit_wait"
    BACKOFF = "backoff"
    FAIL = "fail"


def classify_error(error: BaseException) -> RetryAction:
    """
    Map an error to a retry action.

    Example:
        >>> classify_error(BackendRequestError("not found", status_code=404))
        <RetryAction.FAIL: 'fail'>
        >>> classify_error(TimeoutError())
        <RetryAction.BACKOFF: 'backoff'>
    """
    # Cancellation and interpreter exits are never retried
    if not isinstance(error, Exception):
        return RetryAction.FAIL
    if isinstance(error, FormatParseError):
        return RetryAction.FAIL
    if isinstance(error, RateLimitError):
        return RetryAction.RATE_LIMIT_WAIT
    if isinstance(error, BackendRequestError):
        if error.status_code == 429:
            return RetryAction.RATE_LIMIT_WAIT
        if error.status_code in NON_RETRYABLE_STATUSES:
            return RetryAction.FAIL
    return RetryAction.BACKOFF


class RetryPolicy:
    """
    Retry ladder around one backend analysis.

    Attributes:
        max_retries: Retries after the first attempt (attempts = max_retries + 1)
        backoff_base_s: First backoff delay; doubles per attempt
        backoff_max_s: Backoff cap
        rate_limit_wait_s: Wait on 429 when the backend advertises none

    Example:
        >>> delays = []
        >>> async def fake_sleep(seconds):
        ...     delays.append(seconds)
        >>> policy = RetryPolicy(sleep=fake_sleep)
        >>> await policy.run(flaky_call)
        >>> delays
        [1.0, 2.0]
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_base_s: float = 1.0,
        backoff_max_s: float = 30.0,
        rate_limit_wait_s: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.backoff_base_s = backoff_base_s
        self.backoff_max_s = backoff_max_s
        self.rate_limit_wait_s = rate_limit_wait_s
        self._sleep = sleep
        self._backoff = wait_exponential(multiplier=backoff_base_s, max=backoff_max_s)

    @classmethod
    def from_settings(cls, settings: AnalysisSettings, sleep: SleepFn = asyncio.sleep) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            backoff_base_s=settings.backoff_base_s,
            backoff_max_s=settings.backoff_max_s,
            rate_limit_wait_s=settings.rate_limit_wait_s,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _should_retry(self, error: BaseException) -> bool:
        return classify_error(error) is not RetryAction.FAIL

    def _wait(self, state: RetryCallState) -> float:
        error = state.outcome.exception() if state.outcome else None
        if error is not None and classify_error(error) is RetryAction.RATE_LIMIT_WAIT:
            retry_after = getattr(error, "retry_after", None)
            return float(retry_after) if retry_after is not None else self.rate_limit_wait_s
        return float(self._backoff(state))

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[OnRetryFn] = None,
    ) -> T:
        """
        Run operation under the retry ladder.

        Args:
            operation: Zero-argument coroutine function, called once per attempt
            on_retry: Called as (attempt_number, error, delay_s) before each sleep

        Returns:
            Result of the first successful attempt

        Raises:
            The last attempt's exception when attempts are exhausted, or the
            first non-retryable exception.
        """

        def _before_sleep(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            logger.info(
                "analysis_retry_scheduled",
                attempt=state.attempt_number,
                max_attempts=self.max_attempts,
                delay_s=delay,
                action=classify_error(error).value if error else None,
                error=str(error) if error else None,
            )
            if on_retry is not None and error is not None:
                on_retry(state.attempt_number, error, delay)

        # Fresh controller per run: tenacity keeps per-instance statistics
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self._should_retry),
            sleep=self._sleep,
            before_sleep=_before_sleep,
            reraise=True,
        )
        return await retrying(operation)

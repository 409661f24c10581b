"""
Venice API client for meal photo analysis.

Thin async adapter over the OpenAI SDK pointed at Venice's
OpenAI-compatible endpoint. Implements the IChatBackend port.

SDK retries are disabled: the analysis retry policy owns the retry ladder,
so every SDK failure is mapped to a typed domain error carrying the HTTP
status and the advertised retry-after.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import openai
import structlog
from openai import AsyncOpenAI

from nutrilens.domain.shared.errors import (
    BackendConnectionError,
    BackendRequestError,
    BackendTimeoutError,
    ExternalServiceError,
    RateLimitError,
    ServiceUnavailableError,
)
from nutrilens.infrastructure.config import AnalysisSettings

logger = structlog.get_logger(__name__)


def _parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    """
    Seconds to wait from rate-limit headers.

    Supports retry-after-ms and retry-after (seconds). HTTP-date values
    are ignored.
    """
    if not headers:
        return None

    raw_ms = headers.get("retry-after-ms")
    if raw_ms:
        try:
            return max(0.0, float(raw_ms) / 1000.0)
        except ValueError:
            pass

    raw = headers.get("retry-after")
    if raw:
        try:
            return max(0.0, float(raw))
        except ValueError:
            return None
    return None


def map_status_error(error: openai.APIStatusError) -> BackendRequestError:
    """
    Map an SDK status error to the domain taxonomy.

    Example:
        >>> err = map_status_error(openai_rate_limit_error)
        >>> isinstance(err, RateLimitError), err.status_code
        (True, 429)
    """
    status = error.status_code
    message = error.message or "Request failed"

    if status == 429:
        headers = error.response.headers if error.response is not None else None
        return RateLimitError(message, status_code=status, retry_after=_parse_retry_after(headers))
    if status >= 500:
        return ServiceUnavailableError(message, status_code=status)
    return BackendRequestError(message, status_code=status)


class VeniceChatClient:
    """
    Async Venice chat client implementing IChatBackend.

    One instance is shared by every analysis in the process; the
    underlying AsyncOpenAI client is opened on enter and closed on exit.

    Example:
        >>> async with VeniceChatClient(settings) as client:
        ...     text = await client.complete(
        ...         model="mistral-31-24b",
        ...         messages=[{"role": "user", "content": "Hello"}],
        ...         temperature=0.3,
        ...         max_tokens=100,
        ...     )
    """

    def __init__(
        self,
        settings: AnalysisSettings,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize Venice client.

        Args:
            settings: Application settings (key, base URL, timeouts)
            client: Optional pre-configured AsyncOpenAI client (for testing)
        """
        self._settings = settings
        self._client: Optional[AsyncOpenAI] = client
        self._owns_client = client is None

    async def __aenter__(self) -> "VeniceChatClient":
        """Open the SDK client when a key is configured."""
        if self._client is None and self._settings.is_configured:
            self._client = AsyncOpenAI(
                api_key=self._settings.venice_api_key,
                base_url=self._settings.venice_base_url,
                # Stage timeouts are enforced by the analyzer; this is the outer bound
                timeout=self._settings.formatting_timeout_s,
                max_retries=0,
            )
            logger.info("venice_client_opened", base_url=self._settings.venice_base_url)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the SDK client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Run one chat completion.

        Args:
            model: Backend id
            messages: Chat messages
            temperature: Sampling temperature
            max_tokens: Max tokens in response
            response_format: Optional structured-output constraint

        Returns:
            Text of the first choice ("" when empty)

        Raises:
            RateLimitError: HTTP 429 (retry_after from headers)
            ServiceUnavailableError: HTTP 5xx
            BackendRequestError: Other HTTP error statuses
            BackendTimeoutError: SDK timeout
            BackendConnectionError: Network failure
            ExternalServiceError: Client not opened
        """
        if self._client is None:
            raise ExternalServiceError("Venice client not initialized. Use async with.")

        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            params["response_format"] = response_format

        try:
            completion = await self._client.chat.completions.create(**params)
        except openai.APITimeoutError as e:
            raise BackendTimeoutError(f"Request to {model} timed out") from e
        except openai.APIConnectionError as e:
            raise BackendConnectionError(f"Connection to {model} failed: {e}") from e
        except openai.APIStatusError as e:
            mapped = map_status_error(e)
            logger.warning(
                "venice_status_error",
                model=model,
                status_code=mapped.status_code,
                retry_after=mapped.retry_after,
            )
            raise mapped from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

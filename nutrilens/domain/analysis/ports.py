"""
Ports (Interfaces) for analysis pipeline dependencies.

The analyzer talks to hosted models only through IChatBackend, so the
Venice adapter can be swapped for a fake in tests.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IChatBackend(Protocol):
    """
    Port for an OpenAI-compatible chat completions API.

    Implementations must raise the typed transport errors from
    nutrilens.domain.shared.errors (BackendRequestError and subclasses,
    BackendTimeoutError, BackendConnectionError) so the retry policy can
    classify them.
    """

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
            messages: Chat messages (system, user)
            temperature: Sampling temperature
            max_tokens: Max tokens in response
            response_format: Optional structured-output constraint

        Returns:
            Text content of the first choice ("" when the backend sent none)

        Raises:
            BackendRequestError: HTTP error status (status_code, retry_after set)
            BackendTimeoutError: Transport timeout
            BackendConnectionError: Backend unreachable
        """
        ...

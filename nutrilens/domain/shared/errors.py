"""
Domain exceptions.

Typed exceptions for explicit error handling across the analysis pipeline.
Backend-scoped errors are caught by the single-backend analyzer and turned
into error outcomes; orchestration errors reach the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from nutrilens.domain.analysis.models import AggregateResult


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    Backend call failed.

    Base class for every transport-level failure talking to a backend.
    """

    pass


class BackendRequestError(ExternalServiceError):
    """
    Backend answered with an HTTP error status.

    Attributes:
        status_code: HTTP status returned by the backend
        retry_after: Seconds advertised by the backend before retrying

    Example:
        >>> err = BackendRequestError("model not found", status_code=404)
        >>> str(err)
        'HTTP 404: model not found'
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"HTTP {self.status_code}: {self.message}"


class RateLimitError(BackendRequestError):
    """
    Backend rate limit hit (HTTP 429).

    Example:
        >>> raise RateLimitError("Too many requests", status_code=429, retry_after=12)
    """

    pass


class ServiceUnavailableError(BackendRequestError):
    """
    Backend server-side failure (HTTP 5xx).

    Example:
        >>> raise ServiceUnavailableError("upstream overloaded", status_code=503)
    """

    pass


class BackendTimeoutError(ExternalServiceError):
    """Transport timeout reported by the HTTP client."""

    pass


class BackendConnectionError(ExternalServiceError):
    """Backend unreachable (DNS, refused connection, reset)."""

    pass


# ═══════════════════════════════════════════════════════════
# ANALYSIS STAGE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AnalysisStageError(DomainError):
    """Base exception for the extract → format protocol."""

    pass


class ExtractionTimeoutError(AnalysisStageError):
    """
    Extraction stage exceeded its hard timeout.

    Example:
        >>> raise ExtractionTimeoutError("Extraction timeout after 120s")
    """

    pass


class ExtractionEmptyError(AnalysisStageError):
    """Extraction stage returned no text."""

    pass


class FormattingTimeoutError(AnalysisStageError):
    """Formatting stage exceeded its hard timeout."""

    pass


class FormattingEmptyError(AnalysisStageError):
    """Formatting stage returned no text."""

    pass


class FormatParseError(AnalysisStageError):
    """
    Formatted output is not parseable JSON, even after truncation repair.

    Never retried: the same prompt tends to produce the same broken output.
    """

    pass


# ═══════════════════════════════════════════════════════════
# ORCHESTRATION EXCEPTIONS (caller visible)
# ═══════════════════════════════════════════════════════════


class OrchestrationError(DomainError):
    """Base exception for failures surfaced to the caller."""

    pass


class NotConfiguredError(OrchestrationError):
    """
    No credential configured for the backend family.

    Example:
        >>> raise NotConfiguredError("Set the VENICE_API_KEY environment variable")
    """

    pass


class NoBackendsAvailableError(OrchestrationError):
    """Backend selection resolved to an empty set."""

    pass


class AllBackendsFailedError(OrchestrationError):
    """
    Every backend in a run ended with an error outcome.

    Carries the full aggregate so the caller can report per-backend detail.

    Attributes:
        result: AggregateResult of the failed run
    """

    def __init__(self, message: str, result: "AggregateResult") -> None:
        super().__init__(message)
        self.result = result


class AnalysisFailedError(OrchestrationError):
    """
    Single-backend analysis ended with an error outcome.

    Attributes:
        backend_id: Backend that failed
    """

    def __init__(self, message: str, backend_id: str) -> None:
        super().__init__(message)
        self.backend_id = backend_id


# ═══════════════════════════════════════════════════════════
# FOOD LOG EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class NotFoundError(DomainError):
    """
    Resource not found.

    Generic not found error. Prefer specific types like
    FoodLogEntryNotFoundError.
    """

    pass


class FoodLogEntryNotFoundError(NotFoundError):
    """
    Food log entry not found.

    Example:
        >>> raise FoodLogEntryNotFoundError("Food log entry abc123 not found")
    """

    pass

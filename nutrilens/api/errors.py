"""Maps domain errors to HTTP responses.

Bodies are always {error, message, details?}; stack traces never leave
the process.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nutrilens.api.schemas import ErrorDetail, ErrorResponse
from nutrilens.domain.shared.errors import (
    AllBackendsFailedError,
    AnalysisFailedError,
    DomainError,
    NoBackendsAvailableError,
    NotConfiguredError,
    NotFoundError,
)

logger = structlog.get_logger(__name__)


def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[List[ErrorDetail]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def _not_configured(_: Request, exc: NotConfiguredError) -> JSONResponse:
    return _error_response(503, "Analysis service not configured", str(exc))


async def _no_backends(_: Request, exc: NoBackendsAvailableError) -> JSONResponse:
    return _error_response(400, "No valid models selected", str(exc))


async def _all_failed(_: Request, exc: AllBackendsFailedError) -> JSONResponse:
    details = [ErrorDetail(model=o.model_id, error=o.error) for o in exc.result.results]
    logger.error("all_backends_failed", details=[d.to_json_dict() for d in details])
    return _error_response(
        502,
        "All AI models failed to analyze the image",
        "Please try again or use a different image",
        details,
    )


async def _analysis_failed(_: Request, exc: AnalysisFailedError) -> JSONResponse:
    return _error_response(
        502,
        "Failed to analyze image",
        str(exc),
        [ErrorDetail(model=exc.backend_id, error=str(exc))],
    )


async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, "Not found", str(exc))


async def _domain_error(_: Request, exc: DomainError) -> JSONResponse:
    logger.error("unhandled_domain_error", error=str(exc), error_type=type(exc).__name__)
    return _error_response(500, "Internal error", str(exc) or type(exc).__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Install the domain error → HTTP status mapping."""
    # Starlette resolves handlers by walking the exception MRO, so the
    # DomainError catch-all only applies to unmapped subclasses
    app.add_exception_handler(NotConfiguredError, _not_configured)  # type: ignore[arg-type]
    app.add_exception_handler(NoBackendsAvailableError, _no_backends)  # type: ignore[arg-type]
    app.add_exception_handler(AllBackendsFailedError, _all_failed)  # type: ignore[arg-type]
    app.add_exception_handler(AnalysisFailedError, _analysis_failed)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(DomainError, _domain_error)  # type: ignore[arg-type]

"""
Analysis pipeline models.

ImagePayload is the per-request input; AnalysisOutcome is the tagged
result of one backend; AggregateResult is the result of a fan-out run.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator

from nutrilens.domain.backends.registry import BackendConfig
from nutrilens.domain.nutrition.models import CanonicalModel, NutritionReport, empty_report

_DATA_URL_MARKER = ";base64,"


class AnalysisStatus(str, Enum):
    """Terminal state of one backend analysis."""

    SUCCESS = "success"
    ERROR = "error"


class ImagePayload(CanonicalModel):
    """
    Base64 image sent by the client.

    A data URL prefix ("data:image/jpeg;base64,") is stripped from data.

    Example:
        >>> image = ImagePayload(data="data:image/png;base64,iVBORw0", mime_type="image/png")
        >>> image.data
        'iVBORw0'
        >>> image.as_data_url()
        'data:image/png;base64,iVBORw0'
    """

    data: str = Field(..., description="Base64-encoded image bytes")
    mime_type: str = Field(..., description="Image MIME type (image/*)")

    @field_validator("data", mode="before")
    @classmethod
    def strip_data_url_prefix(cls, v: Any) -> Any:
        """Drop a data URL header and surrounding whitespace."""
        if not isinstance(v, str):
            return v
        v = v.strip()
        if v.startswith("data:") and _DATA_URL_MARKER in v:
            v = v.split(_DATA_URL_MARKER, 1)[1]
        return v

    @field_validator("data")
    @classmethod
    def require_data(cls, v: str) -> str:
        """Reject empty images."""
        if not v:
            raise ValueError("Image data must not be empty")
        return v

    @field_validator("mime_type")
    @classmethod
    def require_image_mime(cls, v: str) -> str:
        """Only image/* types reach the vision backends."""
        v = v.strip().lower()
        if not v.startswith("image/"):
            raise ValueError(f"Unsupported MIME type: {v or '<empty>'}")
        return v

    def as_data_url(self) -> str:
        """Image as a data URL for the chat completions API."""
        return f"data:{self.mime_type};base64,{self.data}"

    @property
    def size_kb(self) -> int:
        """Approximate encoded size, for logging."""
        return round(len(self.data) / 1024)


class AnalysisOutcome(CanonicalModel):
    """
    Result of one backend analysis.

    success carries the normalized report and its confidence; error carries
    the message, the placeholder report and confidence 0.

    Attributes:
        model_id: Backend id
        model_name: Backend name
        display_name: Human-readable backend name
        color: UI accent color
        nutrition_report: Normalized report (placeholder on error)
        analysis_time_ms: Elapsed time across all attempts
        confidence: Report confidence (0 on error)
        status: success | error
        error: Failure message (error only)
        attempts: Number of attempts made
    """

    # model_id / model_name are wire names, not pydantic internals
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    model_name: str
    display_name: str
    color: str
    nutrition_report: NutritionReport
    analysis_time_ms: int = Field(..., ge=0)
    confidence: int = Field(..., ge=0, le=100)
    status: AnalysisStatus
    error: Optional[str] = None
    attempts: int = Field(1, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.status == AnalysisStatus.SUCCESS

    @classmethod
    def success(
        cls,
        backend: BackendConfig,
        report: NutritionReport,
        analysis_time_ms: int,
        attempts: int = 1,
    ) -> "AnalysisOutcome":
        """Build a success outcome from a normalized report."""
        return cls(
            model_id=backend.id,
            model_name=backend.name,
            display_name=backend.display_name,
            color=backend.color,
            nutrition_report=report,
            analysis_time_ms=max(0, analysis_time_ms),
            confidence=report.confidence,
            status=AnalysisStatus.SUCCESS,
            attempts=attempts,
        )

    @classmethod
    def failure(
        cls,
        backend: BackendConfig,
        message: str,
        analysis_time_ms: int,
        attempts: int = 1,
    ) -> "AnalysisOutcome":
        """Build an error outcome with the placeholder report."""
        return cls(
            model_id=backend.id,
            model_name=backend.name,
            display_name=backend.display_name,
            color=backend.color,
            nutrition_report=empty_report(),
            analysis_time_ms=max(0, analysis_time_ms),
            confidence=0,
            status=AnalysisStatus.ERROR,
            error=message or "Unknown error",
            attempts=attempts,
        )


class AggregateResult(CanonicalModel):
    """
    Result of a multi-backend run.

    results are ordered: successes first, then by descending confidence,
    ties in dispatch order.
    """

    results: List[AnalysisOutcome] = Field(default_factory=list)
    total_time_ms: int = Field(0, ge=0)
    success_count: int = Field(0, ge=0)
    error_count: int = Field(0, ge=0)

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0

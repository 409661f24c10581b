"""
Application settings.

Loaded once at startup from environment variables (.env supported via
python-dotenv) and passed explicitly to every component.
"""

from __future__ import annotations

import os
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from nutrilens.domain.backends.registry import DEFAULT_COMPARISON_IDS

DEFAULT_BASE_URL = "https://api.venice.ai/api/v1"


class AnalysisSettings(BaseModel):
    """
    Immutable runtime configuration.

    Attributes:
        venice_api_key: Venice API key (blank = not configured)
        venice_base_url: OpenAI-compatible endpoint
        extraction_timeout_s: Hard timeout of the extraction stage
        formatting_timeout_s: Hard timeout of the formatting stage
        formatting_model: Backend used for JSON formatting (None = same backend)
        default_model: Backend used by single-backend analysis
        comparison_models: Default multi-backend comparison set
        max_retries: Retries after the first attempt
        backoff_base_s: First exponential backoff delay
        backoff_max_s: Backoff cap
        rate_limit_wait_s: Wait on HTTP 429 without a retry-after header
        log_level: Root log level

    Example:
        >>> settings = AnalysisSettings(venice_api_key="vk-test")
        >>> settings.is_configured
        True
    """

    model_config = ConfigDict(frozen=True)

    venice_api_key: Optional[str] = None
    venice_base_url: str = DEFAULT_BASE_URL
    extraction_timeout_s: float = Field(120.0, gt=0)
    formatting_timeout_s: float = Field(180.0, gt=0)
    formatting_model: Optional[str] = "qwen3-4b"
    default_model: str = "mistral-31-24b"
    comparison_models: Tuple[str, ...] = tuple(DEFAULT_COMPARISON_IDS)
    max_retries: int = Field(3, ge=0)
    backoff_base_s: float = Field(1.0, ge=0)
    backoff_max_s: float = Field(30.0, ge=0)
    rate_limit_wait_s: float = Field(30.0, ge=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def is_configured(self) -> bool:
        """True when a non-blank API key is set."""
        return bool(self.venice_api_key and self.venice_api_key.strip())


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> AnalysisSettings:
    """
    Build settings from the environment.

    Args:
        environ: Variables to read (defaults to os.environ)
        dotenv: Load a .env file into os.environ first

    Returns:
        AnalysisSettings

    Raises:
        pydantic.ValidationError: On malformed numeric values
    """
    if dotenv:
        load_dotenv()
    env = os.environ if environ is None else environ

    values = {}
    simple = {
        "venice_api_key": "VENICE_API_KEY",
        "venice_base_url": "VENICE_BASE_URL",
        "extraction_timeout_s": "VENICE_EXTRACTION_TIMEOUT_S",
        "formatting_timeout_s": "VENICE_FORMATTING_TIMEOUT_S",
        "default_model": "VENICE_DEFAULT_MODEL",
        "max_retries": "ANALYSIS_MAX_RETRIES",
        "backoff_base_s": "ANALYSIS_BACKOFF_BASE_S",
        "backoff_max_s": "ANALYSIS_BACKOFF_MAX_S",
        "rate_limit_wait_s": "ANALYSIS_RATE_LIMIT_WAIT_S",
        "log_level": "LOG_LEVEL",
    }
    for field_name, var in simple.items():
        raw = env.get(var)
        if raw is not None and raw.strip():
            values[field_name] = raw.strip()

    # Explicitly blank means "format with the analyzing backend itself"
    formatting_model = env.get("VENICE_FORMATTING_MODEL")
    if formatting_model is not None:
        values["formatting_model"] = formatting_model.strip() or None

    comparison = env.get("VENICE_COMPARISON_MODELS")
    if comparison and _split_csv(comparison):
        values["comparison_models"] = tuple(_split_csv(comparison))

    return AnalysisSettings(**values)

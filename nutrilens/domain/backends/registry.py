"""
Backend registry.

Static catalogue of the models reachable through the Venice API and the
default subset used for multi-model comparison. Read-only after startup.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import Field

from nutrilens.domain.nutrition.models import CanonicalModel


class Privacy(str, Enum):
    """How the provider treats request content."""

    PRIVATE = "private"
    ANONYMIZED = "anonymized"


class Pricing(CanonicalModel):
    """Cost per million tokens (USD)."""

    input: float = Field(..., ge=0)
    output: float = Field(..., ge=0)


class BackendConfig(CanonicalModel):
    """
    One analysis backend.

    Example:
        >>> backend = BackendConfig(
        ...     id="mistral-31-24b",
        ...     name="mistral-31-24b",
        ...     display_name="Venice Medium",
        ...     description="Balanced blend of speed and capability",
        ...     color="#FF6B6B",
        ...     supports_vision=True,
        ...     privacy=Privacy.PRIVATE,
        ... )
        >>> backend.to_json_dict()["displayName"]
        'Venice Medium'
    """

    id: str = Field(..., min_length=1, description="Model identifier sent to the API")
    name: str
    display_name: str
    description: str = ""
    color: str = Field("#888888", description="UI accent color")
    supports_vision: bool = False
    privacy: Privacy = Privacy.ANONYMIZED
    pricing: Optional[Pricing] = None


VENICE_BACKENDS: List[BackendConfig] = [
    BackendConfig(
        id="mistral-31-24b",
        name="mistral-31-24b",
        display_name="Venice Medium",
        description="Balanced blend of speed and capability with image analysis",
        color="#FF6B6B",
        supports_vision=True,
        privacy=Privacy.PRIVATE,
        pricing=Pricing(input=0.5, output=2),
    ),
    BackendConfig(
        id="google-gemma-3-27b-it",
        name="google-gemma-3-27b-it",
        display_name="Gemma 3 27B",
        description="Google's multimodal model with vision-language support",
        color="#4285F4",
        supports_vision=True,
        privacy=Privacy.PRIVATE,
        pricing=Pricing(input=0.12, output=0.2),
    ),
    BackendConfig(
        id="grok-41-fast",
        name="grok-41-fast",
        display_name="Grok 4.1 Fast",
        description="xAI's agentic tool-calling model with image analysis",
        color="#1DA1F2",
        supports_vision=True,
        privacy=Privacy.ANONYMIZED,
        pricing=Pricing(input=0.5, output=1.25),
    ),
    BackendConfig(
        id="gemini-3-flash-preview",
        name="gemini-3-flash-preview",
        display_name="Gemini 3 Flash",
        description="High speed thinking model for agentic workflows",
        color="#34A853",
        supports_vision=True,
        privacy=Privacy.ANONYMIZED,
        pricing=Pricing(input=0.7, output=3.75),
    ),
    BackendConfig(
        id="minimax-m21",
        name="minimax-m21",
        display_name="MiniMax M2.1",
        description="Lightweight state-of-the-art model with vision",
        color="#8B5CF6",
        supports_vision=True,
        privacy=Privacy.ANONYMIZED,
        pricing=Pricing(input=0.4, output=1.6),
    ),
    # Text-only: used for the JSON formatting stage
    BackendConfig(
        id="qwen3-4b",
        name="qwen3-4b",
        display_name="Venice Small",
        description="Fast text model used to format extracted analyses as JSON",
        color="#F59E0B",
        supports_vision=False,
        privacy=Privacy.PRIVATE,
        pricing=Pricing(input=0.05, output=0.15),
    ),
]

DEFAULT_COMPARISON_IDS: List[str] = [
    "mistral-31-24b",
    "google-gemma-3-27b-it",
    "grok-41-fast",
    "gemini-3-flash-preview",
]


class BackendRegistry:
    """
    Lookup over a fixed backend catalogue.

    Vision callers never get a text-only backend: lookup() filters on
    supports_vision unless vision_only=False.

    Example:
        >>> registry = BackendRegistry()
        >>> [b.id for b in registry.list_default_comparison_set()][:2]
        ['mistral-31-24b', 'google-gemma-3-27b-it']
        >>> registry.lookup("qwen3-4b") is None
        True
    """

    def __init__(
        self,
        backends: Optional[Iterable[BackendConfig]] = None,
        default_comparison_ids: Optional[Sequence[str]] = None,
    ) -> None:
        self._backends: List[BackendConfig] = list(
            VENICE_BACKENDS if backends is None else backends
        )
        self._by_id: Dict[str, BackendConfig] = {b.id: b for b in self._backends}
        self._default_ids = set(
            DEFAULT_COMPARISON_IDS if default_comparison_ids is None else default_comparison_ids
        )

    def list_vision_capable(self) -> List[BackendConfig]:
        """Vision backends in catalogue order."""
        return [b for b in self._backends if b.supports_vision]

    def list_default_comparison_set(self) -> List[BackendConfig]:
        """Default comparison subset, catalogue order, vision only."""
        return [b for b in self.list_vision_capable() if b.id in self._default_ids]

    def lookup(self, backend_id: str, vision_only: bool = True) -> Optional[BackendConfig]:
        """
        Find a backend by id.

        Args:
            backend_id: Backend identifier
            vision_only: Treat text-only backends as unknown

        Returns:
            BackendConfig or None
        """
        backend = self._by_id.get(backend_id)
        if backend is None:
            return None
        if vision_only and not backend.supports_vision:
            return None
        return backend

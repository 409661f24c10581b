"""Tests for the backend registry."""

from nutrilens.domain.backends.registry import (
    DEFAULT_COMPARISON_IDS,
    BackendConfig,
    BackendRegistry,
    Privacy,
)


def _ids(backends: list) -> list:
    return [b.id for b in backends]


class TestBuiltInCatalogue:
    def test_vision_backends_in_catalogue_order(self, registry: BackendRegistry) -> None:
        assert _ids(registry.list_vision_capable()) == [
            "mistral-31-24b",
            "google-gemma-3-27b-it",
            "grok-41-fast",
            "gemini-3-flash-preview",
            "minimax-m21",
        ]

    def test_default_comparison_set(self, registry: BackendRegistry) -> None:
        assert _ids(registry.list_default_comparison_set()) == DEFAULT_COMPARISON_IDS

    def test_text_only_formatter_is_not_listed(self, registry: BackendRegistry) -> None:
        assert "qwen3-4b" not in _ids(registry.list_vision_capable())

    def test_wire_shape_is_camel_case(self, registry: BackendRegistry) -> None:
        backend = registry.lookup("grok-41-fast")
        assert backend is not None

        data = backend.to_json_dict()

        assert data["displayName"] == "Grok 4.1 Fast"
        assert data["supportsVision"] is True
        assert data["privacy"] == "anonymized"
        assert data["pricing"] == {"input": 0.5, "output": 1.25}


class TestLookup:
    def test_known_vision_backend(self, registry: BackendRegistry) -> None:
        backend = registry.lookup("minimax-m21")

        assert backend is not None
        assert backend.display_name == "MiniMax M2.1"

    def test_unknown_id(self, registry: BackendRegistry) -> None:
        assert registry.lookup("gpt-17") is None

    def test_text_only_backend_hidden_from_vision_callers(self, registry: BackendRegistry) -> None:
        assert registry.lookup("qwen3-4b") is None

    def test_text_only_backend_visible_when_asked(self, registry: BackendRegistry) -> None:
        backend = registry.lookup("qwen3-4b", vision_only=False)

        assert backend is not None
        assert backend.supports_vision is False


class TestCustomCatalogue:
    def test_comparison_override_keeps_catalogue_order(self) -> None:
        registry = BackendRegistry(default_comparison_ids=["minimax-m21", "mistral-31-24b"])

        assert _ids(registry.list_default_comparison_set()) == ["mistral-31-24b", "minimax-m21"]

    def test_comparison_set_never_contains_text_only(self) -> None:
        registry = BackendRegistry(default_comparison_ids=["qwen3-4b"])

        assert registry.list_default_comparison_set() == []

    def test_injected_backends(self) -> None:
        local = BackendConfig(
            id="local-llava",
            name="local-llava",
            display_name="Local LLaVA",
            supports_vision=True,
            privacy=Privacy.PRIVATE,
        )
        registry = BackendRegistry(backends=[local], default_comparison_ids=["local-llava"])

        assert registry.list_default_comparison_set() == [local]
        assert registry.lookup("mistral-31-24b") is None

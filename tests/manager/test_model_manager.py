import pytest
import yaml
from pathlib import Path
from unittest.mock import Mock, patch

from fitlab.models.manager import ModelManager, TaskConfig, Provider, DEFAULT_CONFIG_PATH
from fitlab.models.providers.base import GenerationKind, GenerationRequest, ProviderOutput, ModelError


VALID_CONFIG = """
providers:
  gemini:
    type: gemini
    settings:
      api_key_env: TEST_GEMINI_KEY

  ollama_local:
    type: ollama
    settings:
      host: "http://localhost:11434"

tasks:
  text:
    provider: gemini
    kind: text
    model: "gemini-3-flash-preview"
    model_env: TEST_TEXT_MODEL

  image:
    provider: gemini
    kind: image
    model: "gemini-2.5-flash-image"

  rewrite:
    provider: ollama_local
    kind: text
    model: "llama3.1:8b"
    params:
      temperature: 0.0

guard:
  forbidden_terms:
    - scarf
    - belt
"""


def write_config(tmp_path, content):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(content)
    return config_file


class TestModelManager:
    """Test suite for ModelManager configuration, routing and stats"""

    @pytest.fixture
    def valid_config(self, tmp_path):
        return write_config(tmp_path, VALID_CONFIG)

    @pytest.fixture
    def manager(self, valid_config, monkeypatch):
        monkeypatch.delenv("TEST_TEXT_MODEL", raising=False)
        return ModelManager(valid_config)

    def test_initialization_success(self, valid_config):
        """
        Test: Successful ModelManager initialization
        How: Create manager with a valid config file
        Ensures: Config is parsed and providers are created lazily
        """
        manager = ModelManager(valid_config)

        assert manager.config_path == Path(valid_config)
        assert manager.config['providers']['gemini']['type'] == 'gemini'
        assert manager._providers == {}
        assert manager._stats == {}

    def test_packaged_config_is_valid(self):
        manager = ModelManager(DEFAULT_CONFIG_PATH)

        assert manager.task_for("describer", GenerationKind.TEXT).name == "text"
        assert manager.task_for("image", GenerationKind.IMAGE).name == "image"
        assert "necklace" in manager.forbidden_terms

    def test_config_path_from_environment(self, valid_config, monkeypatch):
        monkeypatch.setenv("FITLAB_CONFIG", str(valid_config))

        manager = ModelManager()

        assert manager.config_path == Path(valid_config)

    def test_config_file_not_found(self, tmp_path):
        nonexistent_config = tmp_path / "nonexistent.yaml"

        with pytest.raises(FileNotFoundError) as exc_info:
            ModelManager(nonexistent_config)

        assert "Config not found" in str(exc_info.value)

    @pytest.mark.parametrize("content, message", [
        ("tasks: {}\n", "Config missing 'providers'"),
        ("providers:\n  gemini:\n    type: gemini\n", "Config missing 'tasks'"),
        (
            "providers:\n  x:\n    type: anthropic\ntasks: {}\n",
            "Provider 'x' has unknown type 'anthropic'",
        ),
        (
            "providers:\n  gemini:\n    type: gemini\ntasks:\n  text:\n    kind: text\n    model: m\n",
            "Task 'text' missing provider",
        ),
        (
            "providers:\n  gemini:\n    type: gemini\ntasks:\n  text:\n    provider: gemini\n    kind: text\n",
            "Task 'text' missing model",
        ),
        (
            "providers:\n  gemini:\n    type: gemini\ntasks:\n  text:\n    provider: gemini\n    kind: video\n    model: m\n",
            "Task 'text' has invalid kind 'video'",
        ),
        (
            "providers:\n  gemini:\n    type: gemini\ntasks:\n  text:\n    provider: other\n    kind: text\n    model: m\n",
            "references unknown provider 'other'",
        ),
        (
            "providers:\n  gemini:\n    type: gemini\ntasks:\n  text:\n    provider: gemini\n    kind: text\n    model: m\n",
            "Config missing default 'image' task",
        ),
    ])
    def test_config_validation(self, tmp_path, content, message):
        """
        Test: Configuration validation
        How: Load configs that each break one rule
        Ensures: Manager fails at startup with a message naming the problem
        """
        config_file = write_config(tmp_path, content)

        with pytest.raises(ValueError) as exc_info:
            ModelManager(config_file)

        assert message in str(exc_info.value)

    def test_config_invalid_yaml(self, tmp_path):
        config_file = write_config(tmp_path, "providers:\n  invalid_yaml: [unclosed list\n")

        with pytest.raises(yaml.YAMLError):
            ModelManager(config_file)

    def test_task_for_named_task(self, manager):
        task = manager.task_for("rewrite", GenerationKind.TEXT)

        assert task == TaskConfig(
            name="rewrite",
            provider="ollama_local",
            kind=GenerationKind.TEXT,
            model="llama3.1:8b",
            params={"temperature": 0.0},
        )

    @pytest.mark.parametrize("task_name", [None, "describer", "interpreter"])
    def test_task_for_falls_back_to_kind_default(self, manager, task_name):
        task = manager.task_for(task_name, GenerationKind.TEXT)

        assert task.name == "text"
        assert task.model == "gemini-3-flash-preview"

    def test_task_for_ignores_task_of_other_kind(self, manager):
        task = manager.task_for("rewrite", GenerationKind.IMAGE)

        assert task.name == "image"
        assert task.kind is GenerationKind.IMAGE

    def test_model_env_override(self, manager, monkeypatch):
        monkeypatch.setenv("TEST_TEXT_MODEL", "gemini-2.5-pro")

        assert manager.task_for("describer", GenerationKind.TEXT).model == "gemini-2.5-pro"
        assert manager.task_for("image", GenerationKind.IMAGE).model == "gemini-2.5-flash-image"

    def test_task_params_are_copied(self, manager):
        task = manager.task_for("rewrite", GenerationKind.TEXT)
        task.params["temperature"] = 1.0

        assert manager.config["tasks"]["rewrite"]["params"]["temperature"] == 0.0

    def test_provider_lazy_loading(self, manager):
        """
        Test: Provider lazy loading
        How: Request the same provider twice with the provider class mocked
        Ensures: Provider is constructed once from its settings and then reused
        """
        mock_gemini_class = Mock()
        with patch.dict('fitlab.models.manager._PROVIDER_CLASSES', {Provider.GEMINI: mock_gemini_class}):
            first = manager._get_provider("gemini")
            second = manager._get_provider("gemini")

        assert first is second
        mock_gemini_class.assert_called_once_with(api_key_env="TEST_GEMINI_KEY")

    def test_unknown_provider(self, manager):
        with pytest.raises(ValueError, match="Unknown provider"):
            manager._get_provider("missing")

    def test_generate_dispatches_by_kind(self, manager):
        provider = Mock()
        provider.generate_text.return_value = ProviderOutput(text="coat")
        provider.generate_image.return_value = ProviderOutput(image_data=b"x", media_type="image/png")
        manager._providers["gemini"] = provider

        text_task = manager.task_for("text", GenerationKind.TEXT)
        image_task = manager.task_for("image", GenerationKind.IMAGE)
        text_req = GenerationRequest(kind=GenerationKind.TEXT, model=text_task.model, prompt="p")
        image_req = GenerationRequest(kind=GenerationKind.IMAGE, model=image_task.model, prompt="p")

        assert manager.generate(text_task, text_req).text == "coat"
        assert manager.generate(image_task, image_req).media_type == "image/png"
        provider.generate_text.assert_called_once_with(text_req)
        provider.generate_image.assert_called_once_with(image_req)

    def test_stats_tracking(self, manager):
        """
        Test: Per-task call statistics
        How: One successful and one failing call on the text task
        Ensures: Calls are counted and the provider error propagates
        """
        provider = Mock()
        provider.generate_text.side_effect = [ProviderOutput(text="coat"), ModelError("down", code="503")]
        manager._providers["gemini"] = provider
        task = manager.task_for("text", GenerationKind.TEXT)
        request = GenerationRequest(kind=GenerationKind.TEXT, model=task.model, prompt="p")

        manager.generate(task, request)
        with pytest.raises(ModelError):
            manager.generate(task, request)

        stats = manager.get_stats("text")
        assert stats["total_calls"] == 2
        assert stats["successful_calls"] == 1
        assert stats["total_latency_ms"] >= 0
        assert manager.get_stats("image") == {}

        # returned stats are copies
        stats["total_calls"] = 99
        assert manager.get_stats()["text"]["total_calls"] == 2

    def test_missing_credentials(self, manager, monkeypatch):
        monkeypatch.delenv("TEST_GEMINI_KEY", raising=False)

        assert manager.missing_credentials() == ["gemini"]

    def test_credentials_present(self, valid_config, monkeypatch):
        monkeypatch.setenv("TEST_GEMINI_KEY", "secret")
        manager = ModelManager(valid_config)

        assert manager.missing_credentials() == []

    def test_forbidden_terms(self, manager, tmp_path):
        assert manager.forbidden_terms == ["scarf", "belt"]

        without_guard = VALID_CONFIG.split("guard:")[0]
        assert ModelManager(write_config(tmp_path, without_guard)).forbidden_terms is None

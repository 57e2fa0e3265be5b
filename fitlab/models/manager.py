from __future__ import annotations
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
import os
import yaml
import time
import logging
import threading

from .providers.base import GenerationKind, GenerationRequest, ModelProvider, ProviderOutput, ModelError
from .providers.gemini import GeminiProvider
from .providers.ollama import OllamaProvider
from .providers.openai_sdk import OpenAIProvider

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parents[1] / "config" / "config.yaml"


class Provider(Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    OLLAMA = "ollama"

_PROVIDER_CLASSES = {
    Provider.GEMINI: GeminiProvider,
    Provider.OPENAI: OpenAIProvider,
    Provider.OLLAMA: OllamaProvider,
}


@dataclass(frozen=True)
class TaskConfig:
    name: str
    provider: str
    kind: GenerationKind
    model: str
    params: Dict[str, Any] = field(default_factory=dict)


class ModelManager:
    def __init__(self, config_path: Union[Path, str, None] = None):
        self.config_path = Path(config_path or os.getenv("FITLAB_CONFIG") or DEFAULT_CONFIG_PATH)
        self.config = self._load_config()
        self._providers: Dict[str, ModelProvider] = {}
        self._stats: Dict[str, Dict[str, Any]] = {} #performance tracking
        self._stats_lock = threading.Lock()

    def _load_config(self) -> Dict:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")
        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        if 'providers' not in config:
            raise ValueError("Config missing 'providers'")
        if 'tasks' not in config:
            raise ValueError("Config missing 'tasks'")

        for provider_name, provider_cfg in config['providers'].items():
            provider_type = (provider_cfg or {}).get('type')
            if provider_type not in {p.value for p in Provider}:
                raise ValueError(f"Provider '{provider_name}' has unknown type '{provider_type}'")

        for task_name, task_cfg in config['tasks'].items():
            if 'provider' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing provider")
            if 'model' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing model")
            if task_cfg.get('kind') not in {k.value for k in GenerationKind}:
                raise ValueError(f"Task '{task_name}' has invalid kind '{task_cfg.get('kind')}'")
            if task_cfg['provider'] not in config['providers']:
                raise ValueError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")

        for kind in GenerationKind:
            default = config['tasks'].get(kind.value)
            if default is None or default.get('kind') != kind.value:
                raise ValueError(f"Config missing default '{kind.value}' task")

        return config

    def task_for(self, task_name: Optional[str], kind: GenerationKind) -> TaskConfig:
        """Resolve a named task, falling back to the kind's default task."""
        tasks = self.config["tasks"]
        name = task_name if task_name in tasks and tasks[task_name].get("kind") == kind.value else kind.value
        task_cfg = tasks[name]

        model = task_cfg["model"]
        model_env = task_cfg.get("model_env")
        if model_env and os.getenv(model_env):
            model = os.getenv(model_env)

        return TaskConfig(
            name=name,
            provider=task_cfg["provider"],
            kind=kind,
            model=model,
            params=dict(task_cfg.get("params") or {}),
        )

    def _get_provider(self, provider_name: str) -> ModelProvider:
        if provider_name in self._providers:
            return self._providers[provider_name]
        if provider_name not in self.config['providers']:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_cfg = self.config["providers"][provider_name]
        provider_cls = _PROVIDER_CLASSES[Provider(provider_cfg["type"])]
        provider = provider_cls(**(provider_cfg.get("settings") or {}))

        self._providers[provider_name] = provider
        logger.info(f"initialized provider: {provider_name}")
        return provider

    def generate(self, task: TaskConfig, request: GenerationRequest) -> ProviderOutput:
        start_time = time.perf_counter()
        provider = self._get_provider(task.provider)
        try:
            if request.kind is GenerationKind.IMAGE:
                output = provider.generate_image(request)
            else:
                output = provider.generate_text(request)
        except ModelError:
            self._track_stats(task.name, (time.perf_counter() - start_time) * 1000, success=False)
            raise
        self._track_stats(task.name, (time.perf_counter() - start_time) * 1000, success=True)
        return output

    def missing_credentials(self) -> List[str]:
        """Names of configured providers that have no API credential available."""
        used = {task_cfg["provider"] for task_cfg in self.config["tasks"].values()}
        return sorted(name for name in used if not self._get_provider(name).has_credentials)

    @property
    def forbidden_terms(self) -> Optional[List[str]]:
        guard_cfg = self.config.get("guard") or {}
        return guard_cfg.get("forbidden_terms")

    def _track_stats(self, task: str, latency_ms: float, success: bool):
        with self._stats_lock:
            if task not in self._stats:
                self._stats[task] = {
                    'total_calls': 0,
                    'successful_calls': 0,
                    'total_latency_ms': 0
                }

            stats = self._stats[task]
            stats['total_calls'] += 1
            if success:
                stats['successful_calls'] += 1
                stats['total_latency_ms'] += latency_ms

    def get_stats(self, task: Optional[str] = None) -> Dict:
        with self._stats_lock:
            if task:
                return dict(self._stats.get(task, {}))
            return {name: dict(stats) for name, stats in self._stats.items()}

"""
Configuration loader — YAML file + environment variable overrides.

This is the only place credentials are read from the environment; they reach
providers through the ModelConfiguration built by model_configuration_from().
"""

from __future__ import annotations
import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Any, Optional

from ..core.errors import ErrorCode, InvalidConfiguration
from ..core.providers import ModelConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"

# Env var → (config key, converter)
ENV_MAPPINGS: dict[str, tuple[str, type]] = {
    "HATARAKU_PROVIDER": ("llm.provider", str),
    "HATARAKU_MODEL": ("llm.model", str),
    "HATARAKU_TEMPERATURE": ("llm.temperature", float),
    "HATARAKU_MAX_TURNS": ("agent.max_turns", int),
    "HATARAKU_WORKSPACE": ("agent.workspace_dir", str),
    "ANTHROPIC_API_KEY": ("providers.anthropic.api_key", str),
    "OPENAI_API_KEY": ("providers.openai.api_key", str),
    "OPENAI_BASE_URL": ("providers.openai.base_url", str),
    "OPENROUTER_API_KEY": ("providers.openrouter.api_key", str),
    "MISTRAL_API_KEY": ("providers.mistral.api_key", str),
    "OLLAMA_BASE_URL": ("providers.ollama.base_url", str),
}


class Config:
    """Configuration container with dot-access and env var support."""

    def __init__(self, data: dict):
        self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        keys = key.split(".")
        value = self._data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        keys = key.split(".")
        d = self._data
        for k in keys[:-1]:
            d = d.setdefault(k, {})
        d[keys[-1]] = value

    @property
    def raw(self) -> dict:
        return self._data

    def __repr__(self) -> str:
        # Never print secrets
        return f"Config(sections={sorted(self._data)})"


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with env var overrides.

    Priority (highest to lowest):
    1. Environment variables (see ENV_MAPPINGS)
    2. User config file (if provided)
    3. Default config

    Raises:
        InvalidConfiguration: ``config_path`` was given but does not exist,
            or an environment override is not a valid number
    """
    with open(DEFAULT_CONFIG_PATH) as f:
        data = yaml.safe_load(f) or {}

    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise InvalidConfiguration(
                f"config file not found: {config_path}",
                code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            )
        with open(path) as f:
            user_data = yaml.safe_load(f) or {}
        data = _deep_merge(data, user_data)
        logger.debug(f"Loaded user config from {path}")

    config = Config(data)
    for env_key, (config_key, convert) in ENV_MAPPINGS.items():
        env_val = os.getenv(env_key)
        if env_val is None:
            continue
        try:
            config.set(config_key, convert(env_val))
        except ValueError as e:
            raise InvalidConfiguration(f"{env_key}={env_val!r} is not a valid {convert.__name__}") from e

    return config


def model_configuration_from(
    config: Config,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> ModelConfiguration:
    """
    Build the ModelConfiguration for the configured (or given) provider.

    Generation settings come from ``llm.*``; connection settings (api_key,
    base_url, timeout, ...) from ``providers.<name>.*``.
    """
    provider = provider or config.get("llm.provider", "")
    model = model or config.get("llm.model", "")
    provider_settings = copy.deepcopy(config.get(f"providers.{provider}", {}) or {})

    api_key = provider_settings.pop("api_key", None)
    base_url = provider_settings.pop("base_url", None)
    options = {
        "temperature": config.get("llm.temperature", 0.7),
        "max_tokens": config.get("llm.max_tokens", 4096),
    }
    options.update({k: v for k, v in provider_settings.items() if v is not None})

    return ModelConfiguration(
        provider=provider,
        model_id=model,
        api_key=api_key,
        base_url=base_url,
        options=options,
    )


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay dict into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result

"""
Config tests — defaults, user file overlay, environment overrides.
"""

import pytest
import yaml

from hataraku.config.settings import (
    ENV_MAPPINGS,
    Config,
    load_config,
    model_configuration_from,
)
from hataraku.core.errors import ErrorCode, InvalidConfiguration


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_MAPPINGS:
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config.get("llm.provider") == "anthropic"
        assert config.get("agent.max_turns") == 25
        assert config.get("providers.ollama.base_url") == "http://localhost:11434"

    def test_user_file_overlays_defaults(self, tmp_path):
        path = write_config(tmp_path, {"llm": {"provider": "ollama"}, "agent": {"max_turns": 5}})
        config = load_config(path)
        assert config.get("llm.provider") == "ollama"
        assert config.get("agent.max_turns") == 5
        # Untouched keys keep their defaults
        assert config.get("llm.model") == "claude-sonnet-4-5-20250929"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfiguration) as exc_info:
            load_config(str(tmp_path / "nope.yaml"))
        assert exc_info.value.code is ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, {"llm": {"provider": "ollama"}})
        monkeypatch.setenv("HATARAKU_PROVIDER", "openai")
        monkeypatch.setenv("HATARAKU_MAX_TURNS", "7")
        monkeypatch.setenv("HATARAKU_TEMPERATURE", "0.25")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        config = load_config(path)
        assert config.get("llm.provider") == "openai"
        assert config.get("agent.max_turns") == 7
        assert config.get("llm.temperature") == 0.25
        assert config.get("providers.openai.api_key") == "sk-env"

    def test_bad_number_in_env(self, monkeypatch):
        monkeypatch.setenv("HATARAKU_MAX_TURNS", "lots")
        with pytest.raises(InvalidConfiguration, match="HATARAKU_MAX_TURNS"):
            load_config()


class TestConfigAccess:

    def test_get_and_set_paths(self):
        config = Config({})
        config.set("a.b.c", 1)
        assert config.get("a.b.c") == 1
        assert config.get("a.x", "fallback") == "fallback"
        assert config.get("a.b.c.d", "fallback") == "fallback"
        assert config.raw == {"a": {"b": {"c": 1}}}

    def test_repr_hides_values(self):
        config = Config({"providers": {"openai": {"api_key": "sk-secret"}}})
        assert "sk-secret" not in repr(config)


class TestModelConfiguration:

    def test_anthropic_from_env_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        configuration = model_configuration_from(load_config())
        assert configuration.provider == "anthropic"
        assert configuration.model_id == "claude-sonnet-4-5-20250929"
        assert configuration.api_key == "sk-ant-env"
        assert configuration.base_url is None
        assert configuration.options == {"temperature": 0.7, "max_tokens": 4096}

    def test_ollama_connection_settings(self):
        configuration = model_configuration_from(load_config(), provider="ollama", model="llama3")
        assert configuration.model_id == "llama3"
        assert configuration.base_url == "http://localhost:11434"
        assert configuration.api_key is None
        assert configuration.options["timeout"] == 300

    def test_mistral_defaults_to_codestral_at_zero_temperature(self, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "mistral-env")
        configuration = model_configuration_from(
            load_config(), provider="mistral", model="codestral-latest",
        )
        assert configuration.api_key == "mistral-env"
        assert configuration.base_url == "https://codestral.mistral.ai"
        assert configuration.options["temperature"] == 0.0

    def test_does_not_mutate_config(self):
        config = load_config()
        model_configuration_from(config, provider="openai")
        assert config.get("providers.openai.base_url") == "https://api.openai.com/v1"

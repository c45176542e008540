"""
Unit Tests for LLMProviderFactory and LLMConfig

Tests provider instantiation, aliases, caching, auto-selection and the
ENV > YAML > default precedence of the LLM configuration.
"""

import os

import pytest
import yaml

from enricher.llm.config import AnthropicConfig, LLMConfig, OpenAIConfig, resolve_value
from enricher.llm.errors import ConfigurationError
from enricher.llm.factory import AutoSelectionConfig, LLMProviderFactory
from enricher.llm.providers.cloud_anthropic import CloudAnthropicProvider
from enricher.llm.providers.cloud_openai import CloudOpenAIProvider


class TestLLMProviderFactory:
    """Test provider instantiation by name."""

    @pytest.fixture
    def llm_config(self):
        return LLMConfig(
            anthropic=AnthropicConfig(api_key="test_anthropic_key"),
            openai=OpenAIConfig(api_key="test_openai_key")
        )

    @pytest.fixture
    def factory(self, llm_config):
        return LLMProviderFactory(llm_config)

    def test_create_by_id(self, factory):
        assert isinstance(factory.create_provider("cloud-anthropic"), CloudAnthropicProvider)
        assert isinstance(factory.create_provider("cloud-openai"), CloudOpenAIProvider)

    @pytest.mark.parametrize("alias, provider_class", [
        ("anthropic", CloudAnthropicProvider),
        ("claude", CloudAnthropicProvider),
        ("openai", CloudOpenAIProvider),
    ])
    def test_aliases(self, factory, alias, provider_class):
        assert isinstance(factory.create_provider(alias), provider_class)

    def test_providers_are_cached(self, factory):
        first = factory.create_provider("cloud-openai")
        assert factory.create_provider("openai") is first
        factory.clear_cache()
        assert factory.create_provider("cloud-openai") is not first

    def test_unknown_provider(self, factory):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            factory.create_provider("local-ollama")

    def test_auto_prefers_anthropic(self, factory):
        assert isinstance(factory.create_provider("auto"), CloudAnthropicProvider)

    def test_auto_falls_back_to_openai(self):
        factory = LLMProviderFactory(LLMConfig(openai=OpenAIConfig(api_key="k")))
        assert isinstance(factory.create_provider("auto"), CloudOpenAIProvider)

    def test_auto_custom_priority(self, llm_config):
        factory = LLMProviderFactory(
            llm_config, auto_selection=AutoSelectionConfig(priority_order=["cloud-openai"])
        )
        assert isinstance(factory.create_provider("auto"), CloudOpenAIProvider)

    def test_auto_without_credentials(self):
        factory = LLMProviderFactory(LLMConfig())
        with pytest.raises(ConfigurationError) as exc_info:
            factory.create_provider("auto")
        message = str(exc_info.value)
        assert "No AI provider configured" in message
        assert "ANTHROPIC_API_KEY" in message
        assert "OPENAI_API_KEY" in message

    def test_explicit_provider_without_credential(self):
        factory = LLMProviderFactory(LLMConfig(openai=OpenAIConfig(api_key="k")))
        with pytest.raises(ConfigurationError):
            factory.create_provider("cloud-anthropic")


class TestLLMConfig:
    def test_defaults(self):
        config = LLMConfig.load_from_dict({})
        assert config.anthropic.api_key == ""
        assert config.anthropic.default_model == "claude-3-5-haiku-20241022"
        assert config.openai.base_url == "https://api.openai.com/v1"

    def test_yaml_values(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"llm": {"openai": {"default_model": "gpt-4o", "timeout": 5}}}, f)

        config = LLMConfig.load_from_yaml(str(config_path))

        assert config.openai.default_model == "gpt-4o"
        assert config.openai.timeout == 5

    def test_env_wins_over_yaml(self):
        os.environ["ANTHROPIC_API_KEY"] = "sk-env"
        os.environ["ANTHROPIC_MAX_TOKENS"] = "256"

        config = LLMConfig.load_from_dict({"anthropic": {"api_key": "sk-file", "max_tokens": 64}})

        assert config.anthropic.api_key == "sk-env"
        assert config.anthropic.max_tokens == 256

    def test_missing_file(self, tmp_path):
        config = LLMConfig.load_from_yaml(str(tmp_path / "missing.yaml"))
        assert config.openai.api_key == ""

    def test_resolve_value(self):
        assert resolve_value(None, "SHEET_ENRICHER_UNSET", "d") == "d"
        assert resolve_value("c", "SHEET_ENRICHER_UNSET", "d") == "c"
        os.environ["SHEET_ENRICHER_SET"] = "e"
        assert resolve_value("c", "SHEET_ENRICHER_SET", "d") == "e"

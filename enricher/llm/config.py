"""
LLM Configuration Management

This module provides centralized configuration loading for the AI providers.
Configuration is loaded with the following precedence:
1. Environment variables (highest priority)
2. Config file values (.sheet-enricher/config.yaml, ``llm`` section)
3. Default values (lowest priority)

Usage:
    >>> from enricher.llm.config import LLMConfig
    >>>
    >>> llm_config = LLMConfig.load_from_yaml('.sheet-enricher/config.yaml')
    >>> print(llm_config.anthropic.default_model)
"""

from dataclasses import dataclass, field
from typing import Optional, Any, Dict
import os
import yaml
from pathlib import Path


DEFAULT_CONFIG_PATH = '.sheet-enricher/config.yaml'


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic provider.

    Attributes:
        api_key: Anthropic API key (required)
        base_url: Messages API base URL
        default_model: Default model to use if not specified in request
        max_tokens: Default maximum tokens for responses
        temperature: Default sampling temperature
        timeout: Request timeout in seconds
        pricing_override: Optional pricing override
            Format: {"model_name": {"input": float, "output": float}} (per 1M tokens)
    """
    api_key: str = ""
    base_url: str = "https://api.anthropic.com"
    default_model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1024
    temperature: float = 0.2
    timeout: int = 60
    pricing_override: Optional[Dict[str, Dict[str, float]]] = None


@dataclass
class OpenAIConfig:
    """Configuration for the OpenAI provider.

    Attributes:
        api_key: OpenAI API key (required)
        base_url: API base URL
        default_model: Default model to use if not specified in request
        max_tokens: Default maximum tokens for responses
        temperature: Default sampling temperature
        timeout: Request timeout in seconds
        pricing_override: Optional pricing override
            Format: {"model_name": {"input": float, "output": float}} (per 1M tokens)
    """
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o-mini"
    max_tokens: int = 1024
    temperature: float = 0.2
    timeout: int = 60
    pricing_override: Optional[Dict[str, Dict[str, float]]] = None


@dataclass
class LLMConfig:
    """Complete LLM configuration for all providers.

    Attributes:
        anthropic: Configuration for the Anthropic provider
        openai: Configuration for the OpenAI provider
    """
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)

    @classmethod
    def load_from_yaml(cls, config_path: Optional[str] = None) -> 'LLMConfig':
        """Load LLM configuration from YAML file.

        Args:
            config_path: Path to config YAML file (default: .sheet-enricher/config.yaml)

        Returns:
            LLMConfig instance with all provider configurations loaded
        """
        return cls.load_from_dict(load_config_section('llm', config_path))

    @classmethod
    def load_from_dict(cls, llm_section: Dict[str, Any]) -> 'LLMConfig':
        """Load LLM configuration from dictionary.

        Args:
            llm_section: Dictionary containing llm configuration

        Returns:
            LLMConfig instance with all provider configurations loaded

        Example:
            >>> llm_config = LLMConfig.load_from_dict({'anthropic': {'timeout': 30}})
        """
        anthropic_section = llm_section.get('anthropic', {}) or {}
        openai_section = llm_section.get('openai', {}) or {}

        anthropic_config = AnthropicConfig(
            api_key=resolve_value(
                anthropic_section.get('api_key'),
                'ANTHROPIC_API_KEY',
                ''
            ),
            base_url=resolve_value(
                anthropic_section.get('base_url'),
                'ANTHROPIC_BASE_URL',
                'https://api.anthropic.com'
            ),
            default_model=resolve_value(
                anthropic_section.get('default_model'),
                'ANTHROPIC_MODEL',
                'claude-3-5-haiku-20241022'
            ),
            max_tokens=int(resolve_value(
                anthropic_section.get('max_tokens'),
                'ANTHROPIC_MAX_TOKENS',
                1024
            )),
            temperature=float(resolve_value(
                anthropic_section.get('temperature'),
                'ANTHROPIC_TEMPERATURE',
                0.2
            )),
            timeout=int(resolve_value(
                anthropic_section.get('timeout'),
                'ANTHROPIC_TIMEOUT',
                60
            )),
            pricing_override=anthropic_section.get('pricing_override')
        )

        openai_config = OpenAIConfig(
            api_key=resolve_value(
                openai_section.get('api_key'),
                'OPENAI_API_KEY',
                ''
            ),
            base_url=resolve_value(
                openai_section.get('base_url'),
                'OPENAI_BASE_URL',
                'https://api.openai.com/v1'
            ),
            default_model=resolve_value(
                openai_section.get('default_model'),
                'OPENAI_MODEL',
                'gpt-4o-mini'
            ),
            max_tokens=int(resolve_value(
                openai_section.get('max_tokens'),
                'OPENAI_MAX_TOKENS',
                1024
            )),
            temperature=float(resolve_value(
                openai_section.get('temperature'),
                'OPENAI_TEMPERATURE',
                0.2
            )),
            timeout=int(resolve_value(
                openai_section.get('timeout'),
                'OPENAI_TIMEOUT',
                60
            )),
            pricing_override=openai_section.get('pricing_override')
        )

        return cls(anthropic=anthropic_config, openai=openai_config)


def load_config_section(section: str, config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read one top-level section of the YAML config file.

    Returns an empty dict when the file does not exist or lacks the section.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_file = Path(config_path)
    if not config_file.exists():
        return {}

    with open(config_file, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}
    return config_data.get(section, {}) or {}


def resolve_value(config_value: Any, env_var: str, default: Any) -> Any:
    """Resolve configuration value with precedence: ENV > Config > Default.

    Example:
        >>> # With ANTHROPIC_MODEL="claude-3-opus-20240229" in environment
        >>> resolve_value(None, 'ANTHROPIC_MODEL', 'claude-3-5-haiku-20241022')
        'claude-3-opus-20240229'
    """
    env_value = os.getenv(env_var)
    if env_value is not None:
        return env_value

    if config_value is not None:
        return config_value

    return default

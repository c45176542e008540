"""
LLM Provider Factory

Factory pattern for creating LLM providers with auto-selection support.
Handles provider instantiation, caching, and selection of the first
provider that has a credential configured.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass, field

from enricher.llm.config import LLMConfig
from enricher.llm.providers.base import BaseLLMProvider
from enricher.llm.providers.cloud_anthropic import CloudAnthropicProvider
from enricher.llm.providers.cloud_openai import CloudOpenAIProvider
from enricher.llm.errors import ConfigurationError


PROVIDER_IDS = ("cloud-anthropic", "cloud-openai")

# Short names accepted on the command line and in config files
PROVIDER_ALIASES = {
    "anthropic": "cloud-anthropic",
    "claude": "cloud-anthropic",
    "openai": "cloud-openai",
}


@dataclass
class AutoSelectionConfig:
    """Configuration for auto-selection behavior.

    Attributes:
        priority_order: List of providers to try in order
    """
    priority_order: List[str] = field(
        default_factory=lambda: list(PROVIDER_IDS)
    )


class LLMProviderFactory:
    """Factory for creating LLM providers with auto-selection support.

    Example:
        >>> llm_config = LLMConfig.load_from_yaml('.sheet-enricher/config.yaml')
        >>> factory = LLMProviderFactory(llm_config)
        >>> provider = factory.create_provider("cloud-anthropic")
        >>> # Or use auto-selection
        >>> provider = factory.create_provider("auto")
    """

    def __init__(
        self,
        config: LLMConfig,
        auto_selection: Optional[AutoSelectionConfig] = None
    ):
        self.config = config
        self.auto_selection = auto_selection or AutoSelectionConfig()
        self._provider_cache: Dict[str, BaseLLMProvider] = {}

    def create_provider(self, provider: str) -> BaseLLMProvider:
        """Create provider for specified provider name.

        Args:
            provider: Provider ID, alias, or "auto"

        Returns:
            Instantiated LLM provider

        Raises:
            ConfigurationError: If provider is unknown or has no credential
        """
        provider = PROVIDER_ALIASES.get(provider, provider)

        if provider == "auto":
            return self._auto_select_provider()

        if provider in self._provider_cache:
            return self._provider_cache[provider]

        provider_instance = self._instantiate_provider(provider)
        self._provider_cache[provider] = provider_instance
        return provider_instance

    def _auto_select_provider(self) -> BaseLLMProvider:
        """Return the first provider in priority order that can be built."""
        errors = []

        for provider in self.auto_selection.priority_order:
            if provider in self._provider_cache:
                return self._provider_cache[provider]
            try:
                provider_instance = self._instantiate_provider(provider)
            except ConfigurationError as e:
                errors.append(f"{provider}: {e}")
                continue
            self._provider_cache[provider] = provider_instance
            return provider_instance

        error_details = "\n".join(f"  - {err}" for err in errors)
        raise ConfigurationError(
            f"No AI provider configured. Tried:\n{error_details}\n\n"
            "Setup instructions:\n"
            "  - cloud-anthropic: Set ANTHROPIC_API_KEY environment variable\n"
            "  - cloud-openai: Set OPENAI_API_KEY environment variable"
        )

    def _instantiate_provider(self, provider: str) -> BaseLLMProvider:
        if provider == "cloud-anthropic":
            return CloudAnthropicProvider(self.config.anthropic)
        elif provider == "cloud-openai":
            return CloudOpenAIProvider(self.config.openai)
        else:
            raise ConfigurationError(
                f"Unknown provider: {provider}. "
                f"Valid options: {', '.join(PROVIDER_IDS)}, auto"
            )

    def clear_cache(self):
        """Clear the provider cache (forces re-instantiation)."""
        self._provider_cache.clear()

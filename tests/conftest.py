"""
Pytest configuration and shared fixtures.

Provides a scripted AI provider so no test makes a real HTTP call, a
recording sleep function, and isolated settings/registry instances.
"""
import os

import pytest

from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.templates.registry import TemplateRegistry
from enricher.llm.client import AIClient
from enricher.llm.providers.base import BaseLLMProvider, LLMResponse


class ScriptedProvider(BaseLLMProvider):
    """Provider returning queued answers.

    Each queued item is answer text, an exception to raise, or a callable
    taking the request and returning either of those.
    """

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected AI call: {request.prompt[:80]}")
        item = self.responses.pop(0)
        if callable(item) and not isinstance(item, Exception):
            item = item(request)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(
            content=item,
            model_used=request.model or "test-model",
            input_tokens=10,
            output_tokens=5,
            cost_usd=0.001
        )

    def calculate_cost(self, model, input_tokens, output_tokens):
        # $1 / $2 per 1M tokens
        return (input_tokens * 1.0 + output_tokens * 2.0) / 1_000_000

    def get_capabilities(self):
        return {
            "provider": "scripted",
            "default_model": "test-model",
            "supported_models": ["test-model"],
        }


@pytest.fixture(autouse=True, scope="function")
def reset_environment():
    """Reset environment variables between tests."""
    original_env = os.environ.copy()
    for name in list(os.environ):
        if name.startswith(("SHEET_ENRICHER_", "ANTHROPIC_", "OPENAI_")):
            del os.environ[name]
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def sleeps():
    """List collecting every delay passed to the fake sleep."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def make_client(fake_sleep):
    """Build an AIClient over a ScriptedProvider.

    Returns (client, provider).
    """
    def _make(responses=(), **kwargs):
        provider = ScriptedProvider(responses)
        kwargs.setdefault("max_attempts", 3)
        kwargs.setdefault("base_delay", 1.0)
        kwargs.setdefault("sleep", fake_sleep)
        return AIClient(provider=provider, **kwargs), provider
    return _make


@pytest.fixture
def settings(tmp_path):
    """Settings with every pause disabled and files under tmp_path."""
    return EnrichmentSettings(
        field_delay_seconds=0,
        batch_pause_seconds=0,
        calls_per_minute=0,
        cache_dir=str(tmp_path / "cache"),
        user_templates_path=str(tmp_path / "templates.yaml"),
    )


@pytest.fixture
def registry(settings):
    return TemplateRegistry(user_templates_path=settings.user_templates_path)

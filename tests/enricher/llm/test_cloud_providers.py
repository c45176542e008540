"""
Unit Tests: Cloud providers

Tests for the Anthropic and OpenAI providers and the shared SDK error
translation. The SDK client classes are mocked; no test touches the network.
"""

from types import SimpleNamespace
from unittest.mock import patch

import anthropic
import httpx
import openai
import pytest

from enricher.llm.client import AIClient
from enricher.llm.config import AnthropicConfig, OpenAIConfig
from enricher.llm.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidRequestError,
    NetworkError,
    RateLimitError,
    TimeoutError,
    TransportError,
)
from enricher.llm.providers.base import LLMRequest
from enricher.llm.providers.cloud_anthropic import CloudAnthropicProvider
from enricher.llm.providers.cloud_openai import CloudOpenAIProvider
from enricher.llm.providers.sdk_errors import parse_retry_after, translate_sdk_error


ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def status_error(sdk, error_class, status, url, headers=None):
    """An SDK status error as the client raises it for an HTTP response."""
    response = httpx.Response(
        status,
        headers=headers or {},
        request=httpx.Request("POST", url)
    )
    return error_class(f"Error code: {status}", response=response, body=None)


def anthropic_message(text="Retail", input_tokens=1000, output_tokens=200):
    return SimpleNamespace(
        id="msg_1",
        model="claude-3-haiku-20240307",
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason="end_turn",
    )


def openai_completion(text="Retail"):
    return SimpleNamespace(
        id="chatcmpl-1",
        model="gpt-4o-mini",
        choices=[SimpleNamespace(message=SimpleNamespace(content=text), finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=1000, completion_tokens=200),
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def anthropic_client():
    with patch("enricher.llm.providers.cloud_anthropic.anthropic.Anthropic") as client_class:
        yield client_class


@pytest.fixture
def openai_client():
    with patch("enricher.llm.providers.cloud_openai.openai.OpenAI") as client_class:
        yield client_class


@pytest.fixture
def anthropic_provider(anthropic_client):
    return CloudAnthropicProvider(AnthropicConfig(
        api_key="sk-ant-test-key",
        default_model="claude-3-haiku-20240307",
        timeout=30
    ))


@pytest.fixture
def openai_provider(openai_client):
    return CloudOpenAIProvider(OpenAIConfig(api_key="sk-test", default_model="gpt-4o-mini"))


@pytest.fixture
def sample_request():
    return LLMRequest(prompt="Which industry is Acme in?", max_tokens=100, temperature=0.2)


# ============================================================================
# Test: Initialization
# ============================================================================

def test_anthropic_requires_api_key():
    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        CloudAnthropicProvider(AnthropicConfig(api_key=""))


def test_openai_requires_api_key():
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        CloudOpenAIProvider(OpenAIConfig(api_key=""))


def test_sdk_clients_do_not_retry(anthropic_provider, openai_provider, anthropic_client, openai_client):
    assert anthropic_provider.client is anthropic_client.return_value
    assert openai_provider.client is openai_client.return_value

    anthropic_kwargs = anthropic_client.call_args.kwargs
    assert anthropic_kwargs["api_key"] == "sk-ant-test-key"
    assert anthropic_kwargs["timeout"] == 30
    assert anthropic_kwargs["max_retries"] == 0
    assert openai_client.call_args.kwargs["max_retries"] == 0


def test_client_built_once(anthropic_provider, anthropic_client):
    anthropic_provider.client
    anthropic_provider.client
    assert anthropic_client.call_count == 1


# ============================================================================
# Test: Anthropic
# ============================================================================

def test_anthropic_generate(anthropic_provider, anthropic_client, sample_request):
    create = anthropic_client.return_value.messages.create
    create.return_value = anthropic_message()

    response = anthropic_provider.generate(sample_request)

    assert response.content == "Retail"
    assert response.input_tokens == 1000
    assert response.output_tokens == 200
    # claude-3-haiku: $0.25 in / $1.25 out per 1M
    assert response.cost_usd == pytest.approx(0.00025 + 0.00025)
    assert response.metadata["stop_reason"] == "end_turn"

    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "claude-3-haiku-20240307"
    assert kwargs["messages"] == [{"role": "user", "content": "Which industry is Acme in?"}]
    assert kwargs["max_tokens"] == 100


def test_anthropic_request_model_overrides_default(anthropic_provider, anthropic_client):
    create = anthropic_client.return_value.messages.create
    create.return_value = anthropic_message()

    anthropic_provider.generate(
        LLMRequest(prompt="Hi", max_tokens=10, temperature=0.0, model="claude-3-5-haiku-20241022")
    )

    assert create.call_args.kwargs["model"] == "claude-3-5-haiku-20241022"


def test_anthropic_malformed_payload(anthropic_provider, anthropic_client, sample_request):
    anthropic_client.return_value.messages.create.return_value = SimpleNamespace(content=None)
    with pytest.raises(TransportError, match="Malformed"):
        anthropic_provider.generate(sample_request)


def test_anthropic_rate_limit(anthropic_provider, anthropic_client, sample_request):
    anthropic_client.return_value.messages.create.side_effect = status_error(
        anthropic, anthropic.RateLimitError, 429, ANTHROPIC_URL, {"retry-after": "12"}
    )

    with pytest.raises(RateLimitError) as exc_info:
        anthropic_provider.generate(sample_request)

    assert exc_info.value.retry_after == 12.0
    assert exc_info.value.status_code == 429


def test_anthropic_pricing_override(anthropic_client):
    provider = CloudAnthropicProvider(AnthropicConfig(
        api_key="k",
        pricing_override={"claude-3-haiku-20240307": {"input": 1.0, "output": 1.0}}
    ))
    assert provider.calculate_cost("claude-3-haiku-20240307", 1_000_000, 1_000_000) == pytest.approx(2.0)


def test_unknown_model_costs_nothing(anthropic_provider):
    assert anthropic_provider.calculate_cost("claude-unknown", 1000, 1000) == 0.0


# ============================================================================
# Test: OpenAI
# ============================================================================

def test_openai_generate(openai_provider, openai_client, sample_request):
    create = openai_client.return_value.chat.completions.create
    create.return_value = openai_completion()

    response = openai_provider.generate(sample_request)

    assert response.content == "Retail"
    assert response.tokens_used == 1200
    # gpt-4o-mini: $0.15 in / $0.60 out per 1M
    assert response.cost_usd == pytest.approx(0.00015 + 0.00012)
    assert response.metadata["finish_reason"] == "stop"
    assert create.call_args.kwargs["messages"] == [{"role": "user", "content": "Which industry is Acme in?"}]


def test_openai_empty_choices(openai_provider, openai_client, sample_request):
    openai_client.return_value.chat.completions.create.return_value = SimpleNamespace(choices=[])
    with pytest.raises(TransportError):
        openai_provider.generate(sample_request)


def test_openai_timeout(openai_provider, openai_client, sample_request):
    openai_client.return_value.chat.completions.create.side_effect = openai.APITimeoutError(
        request=httpx.Request("POST", OPENAI_URL)
    )
    with pytest.raises(TimeoutError):
        openai_provider.generate(sample_request)


def test_openai_connection_error(openai_provider, openai_client, sample_request):
    openai_client.return_value.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", OPENAI_URL)
    )
    with pytest.raises(NetworkError):
        openai_provider.generate(sample_request)


def test_capabilities(anthropic_provider, openai_provider):
    assert anthropic_provider.get_capabilities()["provider"] == "cloud-anthropic"
    assert openai_provider.get_capabilities()["default_model"] == "gpt-4o-mini"


# ============================================================================
# Test: SDK error translation
# ============================================================================

@pytest.mark.parametrize("sdk, url", [(anthropic, ANTHROPIC_URL), (openai, OPENAI_URL)])
@pytest.mark.parametrize("error_name, status, error_class", [
    ("AuthenticationError", 401, AuthenticationError),
    ("PermissionDeniedError", 403, AuthenticationError),
    ("BadRequestError", 400, InvalidRequestError),
    ("NotFoundError", 404, InvalidRequestError),
    ("UnprocessableEntityError", 422, InvalidRequestError),
    ("InternalServerError", 500, TransportError),
    ("InternalServerError", 503, TransportError),
])
def test_status_mapping(sdk, url, error_name, status, error_class):
    error = status_error(sdk, getattr(sdk, error_name), status, url)

    translated = translate_sdk_error(error, sdk, "Provider")

    assert type(translated) is error_class
    assert translated.status_code == status


@pytest.mark.parametrize("sdk, url", [(anthropic, ANTHROPIC_URL), (openai, OPENAI_URL)])
def test_rate_limit_without_hint(sdk, url):
    error = status_error(sdk, sdk.RateLimitError, 429, url)

    translated = translate_sdk_error(error, sdk, "Provider")

    assert isinstance(translated, RateLimitError)
    assert translated.retry_after is None


def test_other_sdk_errors_are_transport_errors():
    error = anthropic.APIError("boom", request=httpx.Request("POST", ANTHROPIC_URL), body=None)
    assert type(translate_sdk_error(error, anthropic, "Anthropic")) is TransportError


@pytest.mark.parametrize("value, expected", [
    ("5", 5.0),
    (" 2.5 ", 2.5),
    ("-3", 0.0),
    ("", None),
    (None, None),
    ("soon", None),
    ("Wed, 21 Oct 2015 07:28:00 GMT", 0.0),
])
def test_parse_retry_after(value, expected):
    assert parse_retry_after(value) == expected


# ============================================================================
# Test: Retry over the SDK
# ============================================================================

def test_two_429_then_success_through_client(anthropic_provider, anthropic_client, sleeps, fake_sleep):
    create = anthropic_client.return_value.messages.create
    create.side_effect = [
        status_error(anthropic, anthropic.RateLimitError, 429, ANTHROPIC_URL, {"retry-after": "3"}),
        status_error(anthropic, anthropic.RateLimitError, 429, ANTHROPIC_URL),
        anthropic_message(),
    ]
    client = AIClient(provider=anthropic_provider, max_attempts=3, base_delay=1.0, sleep=fake_sleep)

    result = client.invoke("Which industry is Acme in?", max_tokens=50)

    assert result.success
    assert result.text == "Retail"
    assert create.call_count == 3
    assert sleeps == [3.0, 2.0]

"""Tests for provider selection and the model gateway."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from litreview.config import ProviderConfig
from litreview.errors import (
    AuthenticationError,
    ConfigurationError,
    EmptyResponseError,
    ProviderError,
)
from litreview.services.llm_service import (
    GeminiProvider,
    ModelGateway,
    ModelProvider,
    ProxyChatProvider,
    ResponseMode,
    create_provider,
)


class ScriptedProvider(ModelProvider):
    name = "scripted"

    def __init__(self, config, text="answer"):
        super().__init__(config)
        self.text = text
        self.calls = []

    def generate(self, prompt, system_instruction, mode):
        self.calls.append((prompt, system_instruction, mode))
        return self.text


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_create_provider_selects_implementation():
    assert isinstance(create_provider(ProviderConfig(provider="proxy", proxy_api_key="k")), ProxyChatProvider)
    assert isinstance(create_provider(ProviderConfig(provider="gemini", gemini_api_key="k")), GeminiProvider)


@pytest.mark.parametrize("provider", ["proxy", "gemini"])
def test_missing_key_is_authentication_error(provider):
    with pytest.raises(AuthenticationError):
        create_provider(ProviderConfig(provider=provider))


def test_gateway_reads_config_on_every_call():
    configs = iter([
        ProviderConfig(provider="proxy", proxy_api_key="first"),
        ProviderConfig(provider="proxy", proxy_api_key=""),
    ])
    gateway = ModelGateway(lambda: next(configs), provider_factory=ScriptedProvider)

    assert gateway.invoke("hello") == "answer"
    with pytest.raises(AuthenticationError):
        gateway.invoke("hello again")


def test_gateway_passes_prompt_instruction_and_mode():
    provider = ScriptedProvider(ProviderConfig(proxy_api_key="k"))
    gateway = ModelGateway(lambda: provider.config, provider_factory=lambda config: provider)

    gateway.invoke("prompt", system_instruction="be terse", mode=ResponseMode.FREE_TEXT)

    assert provider.calls == [("prompt", "be terse", ResponseMode.FREE_TEXT)]


@pytest.mark.parametrize("text", ["", "   \n"])
def test_blank_answer_is_empty_response(text):
    config = ProviderConfig(proxy_api_key="k")
    gateway = ModelGateway(lambda: config, provider_factory=lambda c: ScriptedProvider(c, text))
    with pytest.raises(EmptyResponseError):
        gateway.invoke("prompt")


def test_gateway_returns_text_untouched():
    config = ProviderConfig(proxy_api_key="k")
    fenced = '```json\n{"a": 1}\n```'
    gateway = ModelGateway(lambda: config, provider_factory=lambda c: ScriptedProvider(c, fenced))
    assert gateway.invoke("prompt") == fenced


def test_proxy_provider_json_mode_and_system_message():
    provider = ProxyChatProvider(ProviderConfig(proxy_api_key="k"))
    provider.client = MagicMock()
    provider.client.chat.completions.create.return_value = _chat_response('{"ok": true}')

    assert provider.generate("user prompt", "system text", ResponseMode.STRUCTURED_JSON) == '{"ok": true}'

    kwargs = provider.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "vertex_ai/claude4-sonnet"
    assert kwargs["temperature"] == 0.3
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user prompt"},
    ]


def test_proxy_provider_free_text_has_no_response_format():
    provider = ProxyChatProvider(ProviderConfig(proxy_api_key="k"))
    provider.client = MagicMock()
    provider.client.chat.completions.create.return_value = _chat_response(None)

    assert provider.generate("p", None, ResponseMode.FREE_TEXT) == ""
    kwargs = provider.client.chat.completions.create.call_args.kwargs
    assert "response_format" not in kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "p"}]


def _openai_error(cls, status):
    request = httpx.Request("POST", "https://llmproxy.example/v1/chat/completions")
    return cls("rejected", response=httpx.Response(status, request=request), body=None)


def test_proxy_provider_maps_errors():
    provider = ProxyChatProvider(ProviderConfig(proxy_api_key="k"))
    provider.client = MagicMock()

    provider.client.chat.completions.create.side_effect = _openai_error(openai.AuthenticationError, 401)
    with pytest.raises(AuthenticationError):
        provider.generate("p", None, ResponseMode.STRUCTURED_JSON)

    provider.client.chat.completions.create.side_effect = _openai_error(openai.InternalServerError, 500)
    with pytest.raises(ProviderError):
        provider.generate("p", None, ResponseMode.STRUCTURED_JSON)


def test_gemini_provider_prepends_system_instruction():
    provider = GeminiProvider(ProviderConfig(provider="gemini", gemini_api_key="k"))
    provider.client = MagicMock()
    provider.client.models.generate_content.return_value = SimpleNamespace(text="## Draft")

    assert provider.generate("prompt", "system", ResponseMode.FREE_TEXT) == "## Draft"

    kwargs = provider.client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-3-flash-preview"
    assert kwargs["contents"] == "system\n\nprompt"
    assert kwargs["config"].response_mime_type == "text/plain"


def test_gemini_provider_maps_errors():
    provider = GeminiProvider(ProviderConfig(provider="gemini", gemini_api_key="k"))
    provider.client = MagicMock()

    provider.client.models.generate_content.side_effect = genai_errors.ClientError(
        403, {"error": {"code": 403, "message": "bad key", "status": "PERMISSION_DENIED"}}
    )
    with pytest.raises(AuthenticationError):
        provider.generate("p", None, ResponseMode.STRUCTURED_JSON)

    provider.client.models.generate_content.side_effect = genai_errors.ServerError(
        503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
    )
    with pytest.raises(ProviderError):
        provider.generate("p", None, ResponseMode.STRUCTURED_JSON)


def test_gemini_provider_wraps_transport_errors():
    provider = GeminiProvider(ProviderConfig(provider="gemini", gemini_api_key="k"))
    provider.client = MagicMock()
    provider.client.models.generate_content.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(ProviderError, match="unreachable"):
        provider.generate("p", None, ResponseMode.STRUCTURED_JSON)


def test_unknown_provider_is_configuration_error():
    with pytest.raises(ConfigurationError):
        create_provider(ProviderConfig(provider="mystery", proxy_api_key="k"))

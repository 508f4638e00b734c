"""Model invocation gateway.

Two providers sit behind one ``ModelProvider`` interface:

* ``ProxyChatProvider`` – OpenAI-compatible chat completions through an
  LLM proxy, authenticated with a bearer key.
* ``GeminiProvider``    – Google's native ``google-genai`` SDK, authenticated
  with a Gemini API key.

``create_provider`` picks the implementation from a ``ProviderConfig``.
``ModelGateway`` re-reads that config on every call, so a provider or key
change takes effect on the next upload.

The gateway returns the provider's text untouched; stripping code fences
is the caller's job.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

import httpx
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from openai import OpenAI

from litreview.config import PROVIDER_GEMINI, PROVIDER_PROXY, ProviderConfig
from litreview.errors import (
    AuthenticationError,
    ConfigurationError,
    EmptyResponseError,
    ProviderError,
)

logger = logging.getLogger(__name__)


class ResponseMode(str, Enum):
    """Whether the provider is asked to constrain output to JSON."""

    STRUCTURED_JSON = "structured-json"
    FREE_TEXT = "free-text"

    @property
    def mime_type(self) -> str:
        return "application/json" if self is ResponseMode.STRUCTURED_JSON else "text/plain"


class ModelProvider(ABC):
    """A chat model reachable over the network."""

    name: str = ""

    def __init__(self, config: ProviderConfig):
        if not config.api_key:
            raise AuthenticationError(
                f"No API key configured for the '{config.provider}' provider. "
                "Add it to .metadata/provider.yaml."
            )
        self.config = config

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_instruction: Optional[str],
        mode: ResponseMode,
    ) -> str:
        """Send one prompt, return the raw answer text ('' if none)."""


class ProxyChatProvider(ModelProvider):
    """OpenAI-compatible chat completion through the LLM proxy."""

    name = PROVIDER_PROXY

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = OpenAI(api_key=config.proxy_api_key, base_url=config.proxy_base_url)

    def generate(self, prompt, system_instruction, mode):
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if mode is ResponseMode.STRUCTURED_JSON:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(
                model=self.config.proxy_model,
                messages=messages,
                temperature=self.config.temperature,
                **kwargs,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthenticationError(f"LLM proxy rejected the API key: {e}") from e
        except openai.APIError as e:
            raise ProviderError(f"LLM proxy call failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class GeminiProvider(ModelProvider):
    """Gemini through the native ``google-genai`` SDK."""

    name = PROVIDER_GEMINI

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = genai.Client(api_key=config.gemini_api_key)

    def generate(self, prompt, system_instruction, mode):
        full_prompt = f"{system_instruction}\n\n{prompt}" if system_instruction else prompt
        try:
            response = self.client.models.generate_content(
                model=self.config.gemini_model,
                contents=full_prompt,
                config=types.GenerateContentConfig(
                    temperature=self.config.temperature,
                    response_mime_type=mode.mime_type,
                ),
            )
        except genai_errors.APIError as e:
            if e.code in (401, 403) or "API_KEY_INVALID" in str(e):
                raise AuthenticationError(f"Gemini rejected the API key: {e}") from e
            raise ProviderError(f"Gemini call failed: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini is unreachable: {e}") from e

        return response.text or ""


_PROVIDERS: dict[str, type[ModelProvider]] = {
    PROVIDER_PROXY: ProxyChatProvider,
    PROVIDER_GEMINI: GeminiProvider,
}


def create_provider(config: ProviderConfig) -> ModelProvider:
    """Instantiate the provider selected by *config*.

    Raises:
        AuthenticationError: If the selected provider has no credential
        ConfigurationError: If the provider name is unknown
    """
    try:
        provider_cls = _PROVIDERS[config.provider]
    except KeyError:
        raise ConfigurationError(f"Unknown model provider '{config.provider}'") from None
    return provider_cls(config)


class ModelGateway:
    """Prompt in, text out, whichever provider is currently selected."""

    def __init__(
        self,
        config_source: Callable[[], ProviderConfig],
        provider_factory: Callable[[ProviderConfig], ModelProvider] = create_provider,
    ):
        """Initialize gateway.

        Args:
            config_source: Called on every invocation to get the current
                provider selection and credential
            provider_factory: Builds a provider from a config
        """
        self.config_source = config_source
        self.provider_factory = provider_factory

    def invoke(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        mode: ResponseMode = ResponseMode.STRUCTURED_JSON,
    ) -> str:
        """Send *prompt* to the selected provider.

        Raises:
            AuthenticationError: Credential missing or rejected
            ProviderError: The call completed but signalled failure
            EmptyResponseError: The call succeeded with no text
        """
        config = self.config_source()
        provider = self.provider_factory(config)
        logger.info("Calling %s (%s, %s)", provider.name, config.model, mode.value)

        text = provider.generate(prompt, system_instruction, mode)
        if not text or not text.strip():
            raise EmptyResponseError(f"No response text from the {provider.name} provider")
        logger.debug("Response received: %s...", text[:100])
        return text

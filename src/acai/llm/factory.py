"""Factory function for creating LLM backends.

Public API (the "studs"):
    create_backend: Factory function to create adapter instances
"""

import httpx

from acai.llm.config import LLMConfig, Provider, ProviderSpec
from acai.llm.exceptions import ProviderSpecError
from acai.llm.providers.anthropic import AnthropicBackend
from acai.llm.providers.base import BaseBackend
from acai.llm.providers.google import GoogleBackend
from acai.llm.providers.mistral import MistralBackend
from acai.llm.providers.ollama import OllamaBackend
from acai.llm.providers.openai import OpenAIBackend

_BACKEND_REGISTRY: dict[Provider, type[BaseBackend]] = {
    Provider.ANTHROPIC: AnthropicBackend,
    Provider.OPENAI: OpenAIBackend,
    Provider.MISTRAL: MistralBackend,
    Provider.GOOGLE: GoogleBackend,
    Provider.OLLAMA: OllamaBackend,
}


def create_backend(
    spec: str | ProviderSpec | LLMConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> BaseBackend:
    """Create a backend for a "provider/model" specifier.

    The specifier is validated and the credential read before any network
    activity.

    Args:
        spec: "provider/model" string, parsed spec, or a full LLMConfig
        http_client: Optional httpx client used as the transport

    Returns:
        BaseBackend: Configured adapter instance

    Raises:
        ProviderSpecError: If the specifier is malformed or names an unknown provider
        ConfigurationError: If the provider's credential is not set

    Example:
        >>> backend = create_backend("anthropic/sonnet")
        >>> message = await backend.chat(ChatCompletionRequest(messages=[UserMessage(content="Hi")]))
    """
    config = spec if isinstance(spec, LLMConfig) else LLMConfig.from_spec(spec)
    try:
        backend_cls = _BACKEND_REGISTRY[config.provider]
    except KeyError:
        raise ProviderSpecError(f"Unknown provider: {config.provider.value}") from None
    return backend_cls(config, http_client=http_client)


__all__ = ["create_backend"]

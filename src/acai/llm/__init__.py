"""Multi-provider LLM abstraction layer.

This module provides one chat contract over several vendors:
- Anthropic Claude
- OpenAI
- Google Gemini
- Mistral (chat and fill-in-the-middle)
- Ollama (local, OpenAI-compatible)

Public API (the "studs"):
    create_backend: Factory function to create adapter instances
    parse_provider_spec: Parse a "provider/model" string
    LLMConfig: Configuration model for a backend
    ChatCompletionRequest: Vendor-neutral request
    Message: Common message union (system, user, assistant, tool)
    BaseBackend: Abstract base class for adapters (for custom vendors)
    ChatSession: Multi-turn history bound to a backend

Example:
    >>> from acai.llm import ChatCompletionRequest, UserMessage, create_backend
    >>>
    >>> backend = create_backend("anthropic/sonnet")
    >>> request = ChatCompletionRequest(
    ...     system_prompt="You are terse.",
    ...     messages=[UserMessage(content="Hello!")],
    ... )
    >>> message = asyncio.run(backend.chat(request))
    >>> print(message.content)
"""

from acai.llm.config import LLMConfig, Provider, ProviderSpec, parse_provider_spec
from acai.llm.exceptions import (
    BackendError,
    BackendTransportError,
    ConfigurationError,
    NoMessageError,
    ProviderSpecError,
    RequestError,
    ServiceUnavailableError,
    TurnLimitExceededError,
    UnsupportedRoleError,
)
from acai.llm.factory import create_backend
from acai.llm.providers.base import BaseBackend
from acai.llm.session import ChatSession
from acai.llm.types import (
    AssistantMessage,
    ChatCompletionRequest,
    Message,
    SystemMessage,
    ToolCall,
    ToolDefinition,
    ToolMessage,
    UserMessage,
)

__all__ = [
    # Factory
    "create_backend",
    "parse_provider_spec",
    # Config
    "LLMConfig",
    "Provider",
    "ProviderSpec",
    # Types
    "ChatCompletionRequest",
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolCall",
    "ToolDefinition",
    # Base class (for custom vendors)
    "BaseBackend",
    "ChatSession",
    # Exceptions
    "ConfigurationError",
    "ProviderSpecError",
    "UnsupportedRoleError",
    "BackendError",
    "BackendTransportError",
    "RequestError",
    "ServiceUnavailableError",
    "NoMessageError",
    "TurnLimitExceededError",
]

"""Configuration model for LLM providers.

Public API (the "studs"):
    Provider: Supported vendors
    ProviderSpec: Parsed "provider/model" specifier
    parse_provider_spec: Parse a "provider/model" string
    LLMConfig: Configuration model for a backend
    get_api_key: Read a vendor credential from the environment
"""

import os
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from acai.llm.exceptions import ConfigurationError, ProviderSpecError
from acai.llm.types import Message, SystemMessage


class Provider(str, Enum):
    """Vendors reachable through the common chat contract."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    MISTRAL = "mistral"
    GOOGLE = "google"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"


# Data-driven mapping: provider -> credential env var (None = unauthenticated)
_PROVIDER_ENV_MAP: dict[Provider, str | None] = {
    Provider.ANTHROPIC: "CLAUDE_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.MISTRAL: "MISTRAL_API_KEY",
    Provider.GOOGLE: "GOOGLE_API_KEY",
    Provider.OLLAMA: None,
    Provider.OPENROUTER: "OPENROUTER_API_KEY",
}

# Vendors that take the system prompt as a message rather than a request field
_SYSTEM_MESSAGE_PROVIDERS = {Provider.OPENAI, Provider.MISTRAL, Provider.OLLAMA}

# Providers selectable with a "provider/model" specifier
_CHAT_PROVIDERS = {
    Provider.ANTHROPIC,
    Provider.OPENAI,
    Provider.MISTRAL,
    Provider.GOOGLE,
    Provider.OLLAMA,
}


class ProviderSpec(BaseModel):
    """A parsed "provider/model" specifier."""

    provider: Provider
    model: str = Field(..., min_length=1)

    def init_messages(self, system_prompt: str) -> list[Message]:
        """Seed history for a new conversation with this provider.

        OpenAI, Mistral and Ollama carry the system prompt as the first
        message; Anthropic and Google take it as a dedicated field.
        """
        if self.provider in _SYSTEM_MESSAGE_PROVIDERS:
            return [SystemMessage(content=system_prompt)]
        return []

    def __str__(self) -> str:
        return f"{self.provider.value}/{self.model}"


def parse_provider_spec(spec: str) -> ProviderSpec:
    """Parse "provider/model" (or "provider/org/model") into a ProviderSpec.

    Args:
        spec: Specifier such as "anthropic/sonnet" or "ollama/library/llama3"

    Returns:
        ProviderSpec

    Raises:
        ProviderSpecError: If the format is wrong or the provider is unknown
    """
    parts = [part.strip() for part in spec.split("/")]
    if len(parts) == 2:
        provider_name, model = parts
    elif len(parts) == 3:
        provider_name, model = parts[0], f"{parts[1]}/{parts[2]}"
    else:
        raise ProviderSpecError("Invalid format. Expected 'provider/model'")

    try:
        provider = Provider(provider_name.lower())
    except ValueError:
        raise ProviderSpecError(f"Unknown provider: {provider_name}") from None
    if provider not in _CHAT_PROVIDERS:
        raise ProviderSpecError(f"Unknown provider: {provider_name}")
    if not model:
        raise ProviderSpecError("Invalid format. Expected 'provider/model'")

    return ProviderSpec(provider=provider, model=model)


def get_api_key(provider: Provider) -> str | None:
    """Read the credential for a provider from its environment variable.

    Returns:
        The key, or None for providers that need no credential

    Raises:
        ConfigurationError: If the provider needs a key and it is not set
    """
    env_var = _PROVIDER_ENV_MAP[provider]
    if env_var is None:
        return None
    value = os.environ.get(env_var)
    if not value:
        raise ConfigurationError(f"Error: {env_var} not set.")
    return value


class LLMConfig(BaseModel):
    """Configuration model for a backend.

    Attributes:
        provider: Provider name
        model: Model name or short alias
        api_key: API key (not needed for Ollama)
        base_url: Override for the vendor endpoint root
        timeout_seconds: Request timeout
    """

    provider: Provider = Field(..., description="Provider name")
    model: str = Field(..., min_length=1, description="Model name or alias")
    api_key: SecretStr | None = Field(None, description="API key")
    base_url: str | None = Field(None, description="Endpoint root override")
    timeout_seconds: int = Field(120, ge=1, le=600, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Validate base_url is an http(s) URL."""
        if v is not None and not v.startswith(("https://", "http://")):
            raise ValueError(f"base_url must start with 'http://' or 'https://': {v!r}")
        return v

    @model_validator(mode="after")
    def validate_provider_config(self) -> "LLMConfig":
        """Validate provider-specific requirements."""
        if _PROVIDER_ENV_MAP[self.provider] is not None and not self.api_key:
            raise ValueError(f"api_key is required for {self.provider.value} provider")
        return self

    @property
    def secret(self) -> str:
        """Plain-text API key, or an empty string."""
        return self.api_key.get_secret_value() if self.api_key else ""

    @classmethod
    def from_spec(cls, spec: str | ProviderSpec, **overrides: Any) -> "LLMConfig":
        """Create LLMConfig from a specifier, reading the key from the environment.

        Environment variables:
            CLAUDE_API_KEY: Anthropic API key
            OPENAI_API_KEY: OpenAI API key
            MISTRAL_API_KEY: Mistral API key
            GOOGLE_API_KEY: Google API key

        Raises:
            ProviderSpecError: If the specifier is invalid
            ConfigurationError: If the provider's key is not set
        """
        if isinstance(spec, str):
            spec = parse_provider_spec(spec)
        kwargs: dict[str, Any] = {"provider": spec.provider, "model": spec.model}
        if "api_key" not in overrides:
            kwargs["api_key"] = get_api_key(spec.provider)
        kwargs.update(overrides)
        return cls(**kwargs)


__all__ = [
    "Provider",
    "ProviderSpec",
    "parse_provider_spec",
    "LLMConfig",
    "get_api_key",
]

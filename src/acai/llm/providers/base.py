"""Abstract base classes for LLM backends.

Public API (the "studs"):
    BaseBackend: Abstract base class for vendor adapters
    HttpxBackend: Base class for adapters that speak HTTP through httpx directly
    format_error_body: Render a failed response body for an error message
    parse_tool_arguments: Decode tool call arguments into a JSON object
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, ClassVar, TypeVar

import httpx

from acai.llm.config import LLMConfig, Provider
from acai.llm.exceptions import (
    BackendTransportError,
    NoMessageError,
    RequestError,
    ServiceUnavailableError,
)
from acai.llm.types import ChatCompletionRequest, Message, ToolCall, ToolDefinition

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def format_error_body(response: httpx.Response) -> str:
    """Pretty-print a JSON error body, falling back to the raw text."""
    try:
        return json.dumps(response.json(), indent=2)
    except ValueError:
        return response.text


def parse_tool_arguments(call: ToolCall) -> dict[str, Any]:
    """Decode a tool call's JSON arguments for vendors that want an object.

    Raises:
        ValueError: If the arguments are not a JSON object
    """
    try:
        arguments = json.loads(call.arguments or "{}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Tool call {call.id} arguments are not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise ValueError(f"Tool call {call.id} arguments must be a JSON object")
    return arguments


class BaseBackend(ABC):
    """Abstract base class for vendor adapters.

    All adapters implement the same ``chat`` contract: translate a
    ChatCompletionRequest into the vendor's wire body, POST it once, and
    map the reply back to a common Message. Status handling is shared:

        2xx          -> parsed Message, or NoMessageError after one
                        diagnostic re-request when the body is unusable
        5xx          -> ServiceUnavailableError
        other        -> RequestError carrying the pretty-printed body
        no response  -> BackendTransportError
    """

    provider: ClassVar[Provider]

    # Short alias -> vendor model identifier. Unknown names pass through.
    MODEL_ALIASES: ClassVar[dict[str, str]] = {}

    def __init__(self, config: LLMConfig) -> None:
        self._config = config
        self._model = self.resolve_model(config.model)
        self._client: Any = None

    @classmethod
    def resolve_model(cls, model: str) -> str:
        """Resolve a short alias such as "sonnet" to a vendor model id."""
        return cls.MODEL_ALIASES.get(model.lower(), model)

    @property
    def model(self) -> str:
        """Resolved vendor model identifier."""
        return self._model

    @property
    def name(self) -> str:
        return f"{self.provider.value}/{self._config.model}"

    @abstractmethod
    def build_request_body(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> dict[str, Any]:
        """Build the vendor-specific JSON body for a request."""
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> Message | None:
        """Map a decoded vendor response to a common Message.

        Returns None (or raises ValueError) when the body has no usable message.
        """
        ...

    @abstractmethod
    async def _post(self, body: dict[str, Any], path: str | None = None) -> httpx.Response:
        """Send one request and return the response whatever its status.

        Raises:
            BackendTransportError: If no response was received
        """
        ...

    async def chat(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> Message:
        """Send a chat completion request and return the assistant message.

        Args:
            request: Vendor-neutral request; messages must not be empty
            tools: Tool declarations the model may call

        Returns:
            The common Message parsed from the vendor reply

        Raises:
            ValueError: If request.messages is empty, or a tool call carries
                arguments that are not a JSON object
            BackendError: On transport failure or a non-success response
        """
        if not request.messages:
            raise ValueError("request.messages must not be empty")

        body = self.build_request_body(request, tools)
        _logger.debug("%s request body: %s", self.name, json.dumps(body))
        return await self._exchange(body, self.parse_response)

    async def _exchange(
        self,
        body: dict[str, Any],
        parse: Callable[[Any], T | None],
        path: str | None = None,
    ) -> T:
        response = await self._post(body, path)
        _logger.debug("Response status: %s", response.status_code)

        if response.is_success:
            result = self._parse_or_none(response, parse)
            if result is None:
                await self._send_debug_request(body, path)
                raise NoMessageError(status_code=response.status_code)
            return result

        if response.is_server_error:
            raise ServiceUnavailableError(status_code=response.status_code)

        raise RequestError(format_error_body(response), status_code=response.status_code)

    def _parse_or_none(self, response: httpx.Response, parse: Callable[[Any], T | None]) -> T | None:
        try:
            data = response.json()
        except ValueError as e:
            _logger.error("Error parsing response: %s", e)
            return None

        try:
            result = parse(data)
        except (ValueError, KeyError, TypeError, IndexError) as e:
            _logger.error("Error parsing message: %s", e)
            return None

        _logger.debug("%s message: %r", self.name, result)
        return result

    async def _send_debug_request(self, body: dict[str, Any], path: str | None = None) -> None:
        """Re-issue a request purely to log what the vendor sends back."""
        try:
            debug_response = await self._post(body, path)
        except BackendTransportError as e:
            _logger.debug("Diagnostic request failed: %s", e)
            return
        _logger.debug("%s", debug_response.status_code)
        _logger.debug("%r", debug_response.text)

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close the underlying HTTP client. Safe to call multiple times."""
        close = getattr(self._client, "aclose", None) or getattr(self._client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class HttpxBackend(BaseBackend):
    """Base class for adapters without a vendor SDK.

    Subclasses define the endpoint, headers and query parameters; the
    request is sent with an ``httpx.AsyncClient``.
    """

    DEFAULT_BASE_URL: ClassVar[str] = ""

    def __init__(self, config: LLMConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        super().__init__(config)
        self._base_url = (config.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @abstractmethod
    def _request_path(self) -> str:
        """Path of the chat endpoint, relative to the base URL."""
        ...

    def _request_headers(self) -> dict[str, str]:
        return {"content-type": "application/json"}

    def _request_params(self) -> dict[str, str]:
        return {}

    async def _post(self, body: dict[str, Any], path: str | None = None) -> httpx.Response:
        url = f"{self._base_url}{path or self._request_path()}"
        _logger.debug("%s", url)
        try:
            return await self._client.post(
                url,
                json=body,
                headers=self._request_headers(),
                params=self._request_params(),
            )
        except httpx.RequestError as e:
            raise BackendTransportError(f"{self.name} request failed: {e}") from e


__all__ = ["BaseBackend", "HttpxBackend", "format_error_body", "parse_tool_arguments"]

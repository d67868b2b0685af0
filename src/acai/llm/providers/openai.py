"""OpenAI chat completions provider implementation.

The message conversion helpers here are shared by every vendor that
speaks the OpenAI chat completions dialect (Mistral, Ollama).

Public API (the "studs"):
    OpenAIBackend: OpenAI chat completions adapter
    to_openai_message: Convert a common Message to the OpenAI wire form
    from_openai_message: Convert an OpenAI wire message to a common Message
    build_chat_body: Build an OpenAI-style chat completions body
    parse_chat_response: Extract the first choice's message from a response
"""

from collections.abc import Sequence
from typing import Any, Literal

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from pydantic import BaseModel, Field

from acai.llm.config import LLMConfig, Provider
from acai.llm.exceptions import BackendTransportError
from acai.llm.providers.base import BaseBackend
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


class OpenAIFunction(BaseModel):
    name: str
    arguments: str = "{}"


class OpenAIToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: OpenAIFunction


class OpenAIMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    name: str | None = None
    tool_calls: list[OpenAIToolCall] | None = None
    tool_call_id: str | None = None


class OpenAIFunctionDefinition(BaseModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class OpenAITool(BaseModel):
    type: Literal["function"] = "function"
    function: OpenAIFunctionDefinition


class OpenAIChatRequest(BaseModel):
    """Wire body for ``POST /chat/completions``."""

    model: str
    messages: list[OpenAIMessage]
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stop: list[str] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    logit_bias: dict[str, float] | None = None
    user: str | None = None
    tools: list[OpenAITool] | None = None
    stream: bool = False


class OpenAIChoice(BaseModel):
    index: int = 0
    message: OpenAIMessage
    finish_reason: str | None = None


class OpenAIChatResponse(BaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[OpenAIChoice] = Field(default_factory=list)


def to_openai_message(message: Message) -> OpenAIMessage:
    """Convert a common Message to the OpenAI wire form."""
    if isinstance(message, AssistantMessage):
        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                OpenAIToolCall(id=call.id, function=OpenAIFunction(name=call.name, arguments=call.arguments))
                for call in message.tool_calls
            ]
        return OpenAIMessage(role="assistant", content=message.content, tool_calls=tool_calls)
    if isinstance(message, ToolMessage):
        return OpenAIMessage(role="tool", content=message.content, tool_call_id=message.tool_call_id)
    return OpenAIMessage(role=message.role, content=message.content)


def from_openai_message(message: OpenAIMessage) -> Message:
    """Convert an OpenAI wire message to a common Message.

    Raises:
        ValueError: If the message is not a valid common Message
            (e.g. an assistant message with neither content nor tool calls)
    """
    if message.role == "assistant":
        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments)
                for call in message.tool_calls
            ]
        return AssistantMessage(content=message.content, tool_calls=tool_calls)
    if message.role == "tool":
        return ToolMessage(content=message.content or "", tool_call_id=message.tool_call_id or "")
    if message.role == "system":
        return SystemMessage(content=message.content or "")
    return UserMessage(content=message.content or "")


def to_openai_tool(tool: ToolDefinition) -> OpenAITool:
    return OpenAITool(
        function=OpenAIFunctionDefinition(
            name=tool.name(),
            description=tool.description(),
            parameters=tool.parameters(),
        )
    )


def build_chat_body(
    model: str, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
) -> dict[str, Any]:
    """Build an OpenAI-style chat completions body.

    The system prompt becomes a leading system message unless the history
    already starts with one. Unset sampling parameters are omitted.
    """
    messages = [to_openai_message(m) for m in request.messages]
    if request.system_prompt and not (messages and messages[0].role == "system"):
        messages.insert(0, OpenAIMessage(role="system", content=request.system_prompt))

    body = OpenAIChatRequest(
        model=model,
        messages=messages,
        temperature=request.temperature,
        top_p=request.top_p,
        max_tokens=request.max_tokens,
        stop=request.stop,
        presence_penalty=request.presence_penalty,
        frequency_penalty=request.frequency_penalty,
        logit_bias=request.logit_bias,
        user=request.user,
        tools=[to_openai_tool(t) for t in tools] or None,
        stream=request.stream,
    )
    return body.model_dump(exclude_none=True)


def parse_chat_response(data: Any) -> Message | None:
    """Return the first choice's message, or None when there is no choice."""
    response = OpenAIChatResponse.model_validate(data)
    if not response.choices:
        return None
    return from_openai_message(response.choices[0].message)


class OpenAIBackend(BaseBackend):
    """OpenAI chat completions adapter.

    Uses the OpenAI SDK client as transport so that authentication,
    timeouts and connection pooling follow the SDK; the body is built
    and parsed here.
    """

    provider = Provider.OPENAI
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    CHAT_PATH = "/chat/completions"

    MODEL_ALIASES = {
        "gpt-4o": "gpt-4o",
        "gpt4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt4omini": "gpt-4o-mini",
        "gpt-4-turbo": "gpt-4-turbo-preview",
        "gtp4turbo": "gpt-4-turbo-preview",
        "gpt-4": "gpt-4-0314",
        "gtp4": "gpt-4-0314",
        "gpt-3.5-turbo": "gpt-3.5-turbo",
        "gpt35turbo": "gpt-3.5-turbo",
    }

    def __init__(self, config: LLMConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        super().__init__(config)
        self._client = AsyncOpenAI(
            api_key=config.secret,
            base_url=config.base_url or self.DEFAULT_BASE_URL,
            timeout=config.timeout_seconds,
            max_retries=0,
            http_client=http_client,
        )

    def build_request_body(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> dict[str, Any]:
        return build_chat_body(self._model, request, tools)

    def parse_response(self, data: Any) -> Message | None:
        return parse_chat_response(data)

    async def _post(self, body: dict[str, Any], path: str | None = None) -> httpx.Response:
        try:
            return await self._client.post(path or self.CHAT_PATH, cast_to=httpx.Response, body=body)
        except APIStatusError as e:
            return e.response
        except APIConnectionError as e:
            raise BackendTransportError(f"{self.name} request failed: {e}") from e


__all__ = [
    "OpenAIBackend",
    "to_openai_message",
    "from_openai_message",
    "build_chat_body",
    "parse_chat_response",
]

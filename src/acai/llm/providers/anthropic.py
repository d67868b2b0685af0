"""Anthropic Claude provider implementation.

Public API (the "studs"):
    AnthropicBackend: Anthropic messages API adapter
    to_anthropic_message: Convert a common Message to the Anthropic wire form
    from_anthropic_message: Convert an Anthropic wire message to a common Message
"""

import json
from collections.abc import Sequence
from typing import Annotated, Any, Literal, Union

import httpx
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic
from pydantic import BaseModel, Field

from acai.llm.config import LLMConfig, Provider
from acai.llm.exceptions import BackendTransportError, UnsupportedRoleError
from acai.llm.providers.base import BaseBackend, parse_tool_arguments
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

ANTHROPIC_VERSION = "2023-06-01"

# 3.5 Sonnet accepts a larger output budget behind a beta header
_EXTENDED_OUTPUT_MODEL = "claude-3-5-sonnet-20240620"
_EXTENDED_OUTPUT_BETA = "max-tokens-3-5-sonnet-2024-07-15"


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = Annotated[Union[TextBlock, ToolUseBlock, ToolResultBlock], Field(discriminator="type")]


class AnthropicMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: list[ContentBlock]


class AnthropicTool(BaseModel):
    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(default_factory=dict)


class AnthropicRequest(BaseModel):
    """Wire body for ``POST /v1/messages``."""

    model: str
    max_tokens: int
    system: str | None = None
    messages: list[AnthropicMessage]
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    stop_sequences: list[str] | None = None
    tools: list[AnthropicTool] | None = None
    stream: bool = False


class AnthropicResponse(BaseModel):
    id: str | None = None
    role: str = "assistant"
    model: str | None = None
    # Kept loose: the API may add block types (e.g. thinking) we do not map
    content: list[dict[str, Any]] = Field(default_factory=list)
    stop_reason: str | None = None


def to_anthropic_message(message: Message) -> AnthropicMessage:
    """Convert a common Message to the Anthropic wire form.

    Raises:
        UnsupportedRoleError: For system messages, which Anthropic only
            accepts in the request's ``system`` field
    """
    if isinstance(message, SystemMessage):
        raise UnsupportedRoleError("Anthropic has no system role; use the request system field")
    if isinstance(message, UserMessage):
        return AnthropicMessage(role="user", content=[TextBlock(text=message.content)])
    if isinstance(message, ToolMessage):
        return AnthropicMessage(
            role="user",
            content=[ToolResultBlock(tool_use_id=message.tool_call_id, content=message.content)],
        )

    blocks: list[ContentBlock] = []
    if message.content:
        blocks.append(TextBlock(text=message.content))
    for call in message.tool_calls or []:
        blocks.append(ToolUseBlock(id=call.id, name=call.name, input=parse_tool_arguments(call)))
    return AnthropicMessage(role="assistant", content=blocks)


def from_anthropic_message(message: AnthropicMessage) -> Message:
    """Convert an Anthropic wire message to a common Message.

    Raises:
        UnsupportedRoleError: For a user message mixing several blocks,
            which has no single common equivalent
    """
    if message.role == "assistant":
        text = "".join(b.text for b in message.content if isinstance(b, TextBlock))
        tool_calls = [
            ToolCall(id=b.id, name=b.name, arguments=json.dumps(b.input, separators=(",", ":")))
            for b in message.content
            if isinstance(b, ToolUseBlock)
        ]
        return AssistantMessage(content=text or None, tool_calls=tool_calls or None)

    if len(message.content) != 1:
        raise UnsupportedRoleError("Anthropic user message with several blocks has no common form")
    block = message.content[0]
    if isinstance(block, ToolResultBlock):
        return ToolMessage(content=block.content, tool_call_id=block.tool_use_id)
    if isinstance(block, TextBlock):
        return UserMessage(content=block.text)
    raise UnsupportedRoleError("Anthropic user message cannot carry tool_use blocks")


def _merge_consecutive(messages: list[AnthropicMessage]) -> list[AnthropicMessage]:
    # The API requires alternating roles; tool results for parallel calls
    # must travel together in one user message.
    merged: list[AnthropicMessage] = []
    for message in messages:
        if merged and merged[-1].role == message.role:
            merged[-1].content.extend(message.content)
        else:
            merged.append(message)
    return merged


class AnthropicBackend(BaseBackend):
    """Anthropic messages API adapter.

    The system prompt and any SystemMessage in the history are folded into
    the request's ``system`` field. Tool calls travel as ``tool_use``
    blocks and tool results as ``tool_result`` blocks in a user message.
    """

    provider = Provider.ANTHROPIC
    DEFAULT_BASE_URL = "https://api.anthropic.com"
    MESSAGES_PATH = "/v1/messages"

    MODEL_ALIASES = {
        "opus": "claude-3-opus-20240229",
        "sonnet": "claude-3-5-sonnet-20240620",
        "sonnet3": "claude-3-sonnet-20240229",
        "haiku": "claude-3-haiku-20240307",
    }

    def __init__(self, config: LLMConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        super().__init__(config)
        self._client = AsyncAnthropic(
            api_key=config.secret,
            base_url=config.base_url or self.DEFAULT_BASE_URL,
            timeout=config.timeout_seconds,
            max_retries=0,
            default_headers={"anthropic-version": ANTHROPIC_VERSION},
            http_client=http_client,
        )

    @property
    def default_max_tokens(self) -> int:
        return 8192 if self._model == _EXTENDED_OUTPUT_MODEL else 4096

    def build_request_body(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> dict[str, Any]:
        system_parts = [request.system_prompt] if request.system_prompt else []
        history: list[AnthropicMessage] = []
        for message in request.messages:
            if isinstance(message, SystemMessage):
                system_parts.append(message.content)
            else:
                history.append(to_anthropic_message(message))

        body = AnthropicRequest(
            model=self._model,
            max_tokens=request.max_tokens or self.default_max_tokens,
            system="\n\n".join(system_parts) or None,
            messages=_merge_consecutive(history),
            temperature=request.temperature,
            top_p=request.top_p,
            top_k=request.top_k,
            stop_sequences=request.stop,
            tools=[
                AnthropicTool(name=t.name(), description=t.description(), input_schema=t.parameters())
                for t in tools
            ]
            or None,
            stream=request.stream,
        )
        return body.model_dump(exclude_none=True)

    def parse_response(self, data: Any) -> Message | None:
        response = AnthropicResponse.model_validate(data)
        blocks = [b for b in response.content if b.get("type") in ("text", "tool_use")]
        if not blocks:
            return None
        message = AnthropicMessage.model_validate({"role": "assistant", "content": blocks})
        return from_anthropic_message(message)

    def _request_headers(self) -> dict[str, str]:
        if self._model == _EXTENDED_OUTPUT_MODEL:
            return {"anthropic-beta": _EXTENDED_OUTPUT_BETA}
        return {}

    async def _post(self, body: dict[str, Any], path: str | None = None) -> httpx.Response:
        try:
            return await self._client.post(
                path or self.MESSAGES_PATH,
                cast_to=httpx.Response,
                body=body,
                options={"headers": self._request_headers()},
            )
        except APIStatusError as e:
            return e.response
        except APIConnectionError as e:
            raise BackendTransportError(f"{self.name} request failed: {e}") from e


__all__ = ["AnthropicBackend", "to_anthropic_message", "from_anthropic_message"]

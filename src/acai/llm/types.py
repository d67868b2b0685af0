"""Type definitions for the provider abstraction layer.

Public API (the "studs"):
    ToolCall: A model request to run a named tool with JSON arguments
    SystemMessage, UserMessage, AssistantMessage, ToolMessage: Message variants
    Message: Discriminated union of the message variants
    ChatCompletionRequest: Vendor-neutral chat completion request
    ToolDefinition: Protocol every tool declaration implements
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field, TypeAdapter, model_validator


class ToolCall(BaseModel):
    """A structured request from the model to run a tool.

    Attributes:
        id: Correlation id, echoed back by the matching tool result
        name: Tool name
        arguments: Raw JSON string; only the tool itself parses it
    """

    id: str = Field(..., description="Tool call correlation id")
    name: str = Field(..., description="Name of the tool to call")
    arguments: str = Field(default="{}", description="Raw JSON arguments")


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str = Field(..., description="System instructions")


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str = Field(..., description="User text")


class AssistantMessage(BaseModel):
    """Assistant turn: text, tool calls, or both.

    An assistant message always has non-empty content or at least one
    tool call.
    """

    role: Literal["assistant"] = "assistant"
    content: str | None = Field(default=None, description="Assistant text")
    tool_calls: list[ToolCall] | None = Field(default=None, description="Requested tool calls")

    @model_validator(mode="after")
    def validate_not_empty(self) -> "AssistantMessage":
        if not self.content and not self.tool_calls:
            raise ValueError("assistant message needs content or tool_calls")
        return self


class ToolMessage(BaseModel):
    """Result of a tool call, answering the call with the same id."""

    role: Literal["tool"] = "tool"
    content: str = Field(..., description="Tool output")
    tool_call_id: str = Field(..., min_length=1, description="Id of the answered tool call")


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage],
    Field(discriminator="role"),
]

MessageList = TypeAdapter(list[Message])


class ChatCompletionRequest(BaseModel):
    """Vendor-neutral chat completion request.

    Sampling parameters left as None are omitted from the vendor body.
    """

    system_prompt: str = Field(default="", description="System prompt")
    messages: list[Message] = Field(default_factory=list, description="Conversation history")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, ge=1)
    stop: list[str] | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    logit_bias: dict[str, float] | None = None
    user: str | None = None
    top_k: int | None = Field(default=None, ge=1)
    stream: bool = False


@runtime_checkable
class ToolDefinition(Protocol):
    """Protocol for tool declarations sent to a model.

    Tools are added by implementing these three methods; there is no
    base class to inherit from.
    """

    def name(self) -> str:
        """Tool name, unique within a request."""
        ...

    def description(self) -> str:
        """Human-readable description shown to the model."""
        ...

    def parameters(self) -> dict[str, Any]:
        """JSON Schema for the tool arguments."""
        ...


__all__ = [
    "ToolCall",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "Message",
    "MessageList",
    "ChatCompletionRequest",
    "ToolDefinition",
]

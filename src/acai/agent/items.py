"""Conversation items and usage for the Responses agent loop.

Items mirror the Responses API ``input``/``output`` arrays. Each item
knows its wire form (``to_input``) so history can be replayed verbatim.

Public API (the "studs"):
    MessageItem, FunctionCallItem, FunctionCallOutputItem, ReasoningItem: Item variants
    ConversationItem: Discriminated union of the item variants
    Usage: Token counters accumulated across round trips
    ResponsesResponse: Decoded ``POST /responses`` reply
    parse_output_items: Convert reply output to ConversationItems
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class MessageItem(BaseModel):
    """A system, user or assistant message.

    Assistant messages keep the ``id`` and ``status`` the API returned;
    the API requires them when the message is sent back as input.
    """

    type: Literal["message"] = "message"
    role: Literal["system", "user", "assistant"]
    content: str
    id: str | None = None
    status: str | None = None

    def to_input(self) -> dict[str, Any]:
        if self.role == "assistant":
            parts = [{"type": "output_text", "text": self.content, "annotations": []}]
        else:
            parts = [{"type": "input_text", "text": self.content}]
        wire: dict[str, Any] = {"type": "message", "role": self.role, "content": parts}
        if self.id is not None:
            wire["id"] = self.id
        if self.status is not None:
            wire["status"] = self.status
        return wire


class FunctionCallItem(BaseModel):
    type: Literal["function_call"] = "function_call"
    id: str = ""
    call_id: str
    name: str
    arguments: str = "{}"

    def to_input(self) -> dict[str, Any]:
        return {
            "type": "function_call",
            "id": self.id,
            "call_id": self.call_id,
            "name": self.name,
            "arguments": self.arguments,
        }


class FunctionCallOutputItem(BaseModel):
    type: Literal["function_call_output"] = "function_call_output"
    call_id: str
    output: str

    def to_input(self) -> dict[str, Any]:
        return {"type": "function_call_output", "call_id": self.call_id, "output": self.output}


class ReasoningItem(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    id: str
    summary: list[str] = Field(default_factory=list)

    def to_input(self) -> dict[str, Any]:
        return {
            "type": "reasoning",
            "id": self.id,
            "summary": [{"type": "summary_text", "text": s} for s in self.summary],
        }


ConversationItem = Annotated[
    Union[MessageItem, FunctionCallItem, FunctionCallOutputItem, ReasoningItem],
    Field(discriminator="type"),
]


# --- response models -------------------------------------------------------


class OutputContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    text: str | None = None


class OutputItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    id: str | None = None
    call_id: str | None = None
    name: str | None = None
    arguments: str | None = None
    role: str | None = None
    status: str | None = None
    content: list[OutputContent] | None = None
    summary: list[OutputContent] | None = None


class InputTokensDetails(BaseModel):
    cached_tokens: int = 0


class OutputTokensDetails(BaseModel):
    reasoning_tokens: int = 0


class ResponseUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int | None = None
    input_tokens_details: InputTokensDetails | None = None
    output_tokens_details: OutputTokensDetails | None = None


class ResponsesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    status: str | None = None
    output: list[OutputItem] = Field(default_factory=list)
    usage: ResponseUsage | None = None
    error: dict[str, Any] | None = None


class Usage(BaseModel):
    """Token usage accumulated across round trips. Counters only grow."""

    input_tokens: int = 0
    cached_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0
    total_tokens: int = 0
    turn_count: int = 0

    def add(self, usage: ResponseUsage | None) -> None:
        """Record one successful round trip and its token counts."""
        self.turn_count += 1
        if usage is None:
            return
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        if usage.input_tokens_details is not None:
            self.cached_tokens += usage.input_tokens_details.cached_tokens
        if usage.output_tokens_details is not None:
            self.reasoning_tokens += usage.output_tokens_details.reasoning_tokens
        if usage.total_tokens is not None:
            self.total_tokens += usage.total_tokens
        else:
            self.total_tokens += usage.input_tokens + usage.output_tokens


def _first_text(parts: list[OutputContent] | None, part_type: str) -> str | None:
    for part in parts or []:
        if part.type == part_type and part.text is not None:
            return part.text
    return None


def parse_output_items(response: ResponsesResponse) -> list[ConversationItem]:
    """Convert reply output to ConversationItems, keeping wire order.

    Reasoning without an id or text, and unknown item types, are dropped.
    """
    items: list[ConversationItem] = []
    for output in response.output:
        if output.type == "reasoning":
            text = _first_text(output.content, "reasoning_text")
            if text is None:
                text = _first_text(output.summary, "summary_text")
            if output.id and text is not None:
                items.append(ReasoningItem(id=output.id, summary=[text]))
        elif output.type == "function_call":
            items.append(
                FunctionCallItem(
                    id=output.id or "",
                    call_id=output.call_id or "",
                    name=output.name or "",
                    arguments=output.arguments or "",
                )
            )
        elif output.type == "message":
            items.append(
                MessageItem(
                    role="assistant",
                    content=_first_text(output.content, "output_text") or "",
                    id=output.id,
                    status=output.status,
                )
            )
    return items


__all__ = [
    "MessageItem",
    "FunctionCallItem",
    "FunctionCallOutputItem",
    "ReasoningItem",
    "ConversationItem",
    "Usage",
    "ResponseUsage",
    "ResponsesResponse",
    "parse_output_items",
]

"""Streaming JSON events emitted while the agent loop runs.

Public API (the "studs"):
    EventSink: Protocol receiving events
    JsonLinesEventSink: Writes each event as one line of JSON
    InitEvent, MessageEvent, FunctionCallEvent, ReasoningEvent, ResultEvent: Event shapes
    event_for_item: Event describing a produced ConversationItem
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal, Protocol, Union, runtime_checkable

import click
from pydantic import BaseModel, Field

from acai.agent.items import (
    ConversationItem,
    FunctionCallItem,
    MessageItem,
    ReasoningItem,
    Usage,
)


class InitEvent(BaseModel):
    type: Literal["init"] = "init"
    session_id: str
    cwd: str
    model: str
    tools: list[str] = Field(default_factory=list)


class MessageEvent(BaseModel):
    type: Literal["message"] = "message"
    role: str
    content: str
    id: str | None = None


class FunctionCallEvent(BaseModel):
    type: Literal["function_call"] = "function_call"
    id: str
    call_id: str
    name: str
    arguments: str


class ReasoningEvent(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    id: str
    summary: list[str]


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    success: bool
    error: str | None = None
    duration_ms: int
    turn_count: int
    usage: Usage
    result: str | None = None


AgentEvent = Union[InitEvent, MessageEvent, FunctionCallEvent, ReasoningEvent, ResultEvent]


@runtime_checkable
class EventSink(Protocol):
    """Receives agent events as they happen."""

    def emit(self, event: AgentEvent) -> None: ...


class JsonLinesEventSink:
    """Writes each event as one line of compact JSON (stdout by default)."""

    def __init__(self, write: Callable[[str], Any] = click.echo) -> None:
        self._write = write

    def emit(self, event: AgentEvent) -> None:
        self._write(event.model_dump_json(exclude_none=True))


def event_for_item(item: ConversationItem) -> AgentEvent | None:
    """Event describing a produced item; None for items that are not announced."""
    if isinstance(item, MessageItem):
        return MessageEvent(role=item.role, content=item.content, id=item.id)
    if isinstance(item, FunctionCallItem):
        return FunctionCallEvent(id=item.id, call_id=item.call_id, name=item.name, arguments=item.arguments)
    if isinstance(item, ReasoningItem):
        return ReasoningEvent(id=item.id, summary=item.summary)
    return None


__all__ = [
    "EventSink",
    "JsonLinesEventSink",
    "AgentEvent",
    "InitEvent",
    "MessageEvent",
    "FunctionCallEvent",
    "ReasoningEvent",
    "ResultEvent",
    "event_for_item",
]

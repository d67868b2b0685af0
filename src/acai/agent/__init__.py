"""Agent loop over the Responses API.

Public API (the "studs"):
    ResponsesClient: Conversation state and the request/execute/append loop
    AgentState: States of the loop
    EventSink: Protocol for streaming events
    JsonLinesEventSink: Newline-delimited JSON event writer
    Usage: Accumulated token counters
"""

from .events import EventSink, JsonLinesEventSink
from .items import (
    ConversationItem,
    FunctionCallItem,
    FunctionCallOutputItem,
    MessageItem,
    ReasoningItem,
    Usage,
)
from .responses import AgentState, ResponsesClient

__all__ = [
    "ResponsesClient",
    "AgentState",
    "EventSink",
    "JsonLinesEventSink",
    "ConversationItem",
    "MessageItem",
    "FunctionCallItem",
    "FunctionCallOutputItem",
    "ReasoningItem",
    "Usage",
]

"""Agent loop over the OpenRouter Responses API.

``ResponsesClient.send`` appends the user turn, then repeats:

    AWAITING_MODEL   POST /responses with the whole history
                     -> append every output item, account usage
                     -> no function calls: DONE, return the assistant text
    EXECUTING_TOOLS  run each call, append one function_call_output per call
                     -> back to AWAITING_MODEL

Tool failures become tool output. Any other failure moves the client to
FAILED and propagates; nothing is retried.

Public API (the "studs"):
    ResponsesClient: Conversation state and the agent loop
    AgentState: States of the loop
    OPENROUTER_BASE_URL: Default endpoint root
"""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from enum import Enum
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from acai.agent.events import AgentEvent, EventSink, InitEvent, ResultEvent, event_for_item
from acai.agent.items import (
    ConversationItem,
    FunctionCallItem,
    FunctionCallOutputItem,
    MessageItem,
    ResponsesResponse,
    Usage,
    parse_output_items,
)
from acai.llm.config import Provider, get_api_key
from acai.llm.exceptions import (
    BackendTransportError,
    NoMessageError,
    RequestError,
    ServiceUnavailableError,
    TurnLimitExceededError,
)
from acai.llm.providers.base import format_error_body
from acai.tools.base import ToolError, ToolRegistry
from acai.tools.shell import ShellTool

_logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TEMPERATURE = 0.0


class AgentState(str, Enum):
    """States of the agent loop."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"


class ResponsesTool(BaseModel):
    type: str = "function"
    name: str
    description: str
    parameters: dict[str, Any]


class ResponsesRequest(BaseModel):
    """Wire body for ``POST /responses``."""

    model: str
    input: list[dict[str, Any]]
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    tools: list[ResponsesTool] | None = None
    tool_choice: str | None = None


class ResponsesClient:
    """Conversation state and the agent loop for one model.

    History starts with the system message and only grows. One client must
    not run two ``send`` calls at once; separate clients are independent.

    Args:
        model: OpenRouter model id, e.g. "minimax/minimax-m2.5"
        system_prompt: Seeded as the first history item
        tools: Tools offered to the model (default: the shell tool)
        temperature: Sampling temperature (default 0.0)
        top_p: Nucleus sampling
        max_output_tokens: Output cap per round trip
        max_turns: Cap on round trips per ``send`` (default: unbounded)
        api_key: Overrides OPENROUTER_API_KEY
        base_url: Overrides the OpenRouter endpoint root
        http_client: Optional httpx client used as the transport

    Raises:
        ConfigurationError: If no key is given and OPENROUTER_API_KEY is not set
    """

    RESPONSES_PATH = "/responses"

    def __init__(
        self,
        model: str,
        system_prompt: str,
        *,
        tools: ToolRegistry | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        max_output_tokens: int | None = None,
        max_turns: int | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 120,
    ) -> None:
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be at least 1")

        self.model = model
        self.tools = tools if tools is not None else ToolRegistry([ShellTool()])
        self.temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
        self.top_p = top_p
        self.max_output_tokens = max_output_tokens
        self.max_turns = max_turns
        self.state = AgentState.IDLE
        self.usage = Usage()
        self.session_id = uuid.uuid4().hex
        self.history: list[ConversationItem] = [MessageItem(role="system", content=system_prompt)]

        self._base_url = base_url or OPENROUTER_BASE_URL
        self._client = AsyncOpenAI(
            api_key=api_key or get_api_key(Provider.OPENROUTER),
            base_url=self._base_url,
            timeout=timeout_seconds,
            max_retries=0,
            http_client=http_client,
        )

    async def send(self, content: str, events: EventSink | None = None) -> str | None:
        """Run the agent loop for one user turn.

        Args:
            content: User message text
            events: Optional sink for streaming events

        Returns:
            The first assistant message of the final response, or None

        Raises:
            BackendError: On transport failure, non-success status or turn limit
        """
        started = time.monotonic()
        self._emit(
            events,
            InitEvent(session_id=self.session_id, cwd=os.getcwd(), model=self.model, tools=self.tools.names()),
        )
        self.history.append(MessageItem(role="user", content=content))

        try:
            result = await self._run(events)
        except Exception as e:
            self.state = AgentState.FAILED
            self._emit(events, self._result_event(started, success=False, error=str(e)))
            raise

        self.state = AgentState.DONE
        self._emit(events, self._result_event(started, success=True, result=result))
        return result

    async def _run(self, events: EventSink | None) -> str | None:
        turns = 0
        while True:
            if self.max_turns is not None and turns >= self.max_turns:
                raise TurnLimitExceededError(f"{self.model}\n\nExceeded the limit of {self.max_turns} turns")

            self.state = AgentState.AWAITING_MODEL
            response = await self._request()
            turns += 1
            self.usage.add(response.usage)

            items = parse_output_items(response)
            self.history.extend(items)
            for item in items:
                event = event_for_item(item)
                if event is not None:
                    self._emit(events, event)

            calls = [item for item in items if isinstance(item, FunctionCallItem)]
            if not calls:
                return next(
                    (i.content for i in items if isinstance(i, MessageItem) and i.role == "assistant"),
                    None,
                )

            self.state = AgentState.EXECUTING_TOOLS
            for call in calls:
                output = await self._execute_tool(call)
                self.history.append(FunctionCallOutputItem(call_id=call.call_id, output=output))

    async def _execute_tool(self, call: FunctionCallItem) -> str:
        try:
            result = await self.tools.execute(call.name, call.arguments)
        except ToolError as e:
            _logger.warning("Tool %s failed: %s", call.name, e)
            return f"Error: {e}"
        except Exception as e:
            # Every function_call must get an output, whatever the tool raised
            _logger.error("Tool %s raised unexpectedly", call.name, exc_info=True)
            return f"Error: {e}"
        return result.output

    def build_request_body(self) -> dict[str, Any]:
        tools = [
            ResponsesTool(name=t.name(), description=t.description(), parameters=t.parameters())
            for t in self.tools.definitions()
        ]
        request = ResponsesRequest(
            model=self.model,
            input=self.get_message_history(),
            temperature=self.temperature,
            top_p=self.top_p,
            max_output_tokens=self.max_output_tokens,
            tools=tools or None,
            tool_choice="auto" if tools else None,
        )
        return request.model_dump(exclude_none=True)

    async def _request(self) -> ResponsesResponse:
        body = self.build_request_body()
        _logger.debug("%s%s", self._base_url, self.RESPONSES_PATH)
        _logger.debug("%s", json.dumps(body))

        try:
            response = await self._client.post(self.RESPONSES_PATH, cast_to=httpx.Response, body=body)
        except APIStatusError as e:
            response = e.response
        except APIConnectionError as e:
            raise BackendTransportError(f"{self.model}\n\n{e}") from e

        if not response.is_success:
            _logger.debug("%s", response.text)
            message = f"{self.model}\n\n{format_error_body(response)}"
            if response.is_server_error:
                raise ServiceUnavailableError(message, status_code=response.status_code)
            raise RequestError(message, status_code=response.status_code)

        try:
            parsed = ResponsesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            _logger.error("Error parsing response: %s", e)
            raise NoMessageError(f"{self.model}\n\nNo message. Try again.", status_code=response.status_code) from e

        _logger.debug("%r", parsed)
        return parsed

    def _result_event(
        self, started: float, *, success: bool, error: str | None = None, result: str | None = None
    ) -> ResultEvent:
        return ResultEvent(
            success=success,
            error=error,
            duration_ms=int((time.monotonic() - started) * 1000),
            turn_count=self.usage.turn_count,
            usage=self.usage.model_copy(),
            result=result,
        )

    def _emit(self, events: EventSink | None, event: AgentEvent) -> None:
        if events is None:
            return
        try:
            events.emit(event)
        except Exception:
            _logger.warning("Event sink failed on %s event", event.type, exc_info=True)

    def get_message_history(self) -> list[dict[str, Any]]:
        """History in Responses API wire form."""
        return [item.to_input() for item in self.history]

    async def aclose(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "ResponsesClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["ResponsesClient", "AgentState", "OPENROUTER_BASE_URL"]

"""Google Gemini provider implementation.

Public API (the "studs"):
    GoogleBackend: Gemini generateContent adapter
"""

import json
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from acai.llm.config import Provider
from acai.llm.exceptions import UnsupportedRoleError
from acai.llm.providers.base import HttpxBackend, parse_tool_arguments
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


class _GoogleModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GoogleFunctionCall(_GoogleModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None


class GoogleFunctionResponse(_GoogleModel):
    name: str
    response: dict[str, Any]
    id: str | None = None


class GooglePart(_GoogleModel):
    text: str | None = None
    function_call: GoogleFunctionCall | None = Field(None, alias="functionCall")
    function_response: GoogleFunctionResponse | None = Field(None, alias="functionResponse")


class GoogleContent(_GoogleModel):
    role: Literal["user", "model"] | None = None
    parts: list[GooglePart] = Field(default_factory=list)


class GoogleFunctionDeclaration(_GoogleModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


class GoogleTool(_GoogleModel):
    function_declarations: list[GoogleFunctionDeclaration] = Field(alias="functionDeclarations")


class GoogleGenerationConfig(_GoogleModel):
    temperature: float | None = None
    top_p: float | None = Field(None, alias="topP")
    top_k: int | None = Field(None, alias="topK")
    max_output_tokens: int | None = Field(None, alias="maxOutputTokens")
    stop_sequences: list[str] | None = Field(None, alias="stopSequences")
    presence_penalty: float | None = Field(None, alias="presencePenalty")
    frequency_penalty: float | None = Field(None, alias="frequencyPenalty")


class GoogleRequest(_GoogleModel):
    """Wire body for ``POST /v1beta/models/{model}:generateContent``."""

    system_instruction: GoogleContent | None = Field(None, alias="systemInstruction")
    contents: list[GoogleContent]
    tools: list[GoogleTool] | None = None
    generation_config: GoogleGenerationConfig | None = Field(None, alias="generationConfig")


class GoogleCandidate(_GoogleModel):
    content: GoogleContent | None = None
    finish_reason: str | None = Field(None, alias="finishReason")


class GoogleResponse(_GoogleModel):
    candidates: list[GoogleCandidate] = Field(default_factory=list)


def _to_google_contents(messages: list[Message]) -> list[GoogleContent]:
    call_names: dict[str, str] = {}
    contents: list[GoogleContent] = []

    for message in messages:
        if isinstance(message, UserMessage):
            content = GoogleContent(role="user", parts=[GooglePart(text=message.content)])
        elif isinstance(message, AssistantMessage):
            parts = [GooglePart(text=message.content)] if message.content else []
            for call in message.tool_calls or []:
                call_names[call.id] = call.name
                parts.append(
                    GooglePart(
                        function_call=GoogleFunctionCall(
                            name=call.name, args=parse_tool_arguments(call), id=call.id
                        )
                    )
                )
            content = GoogleContent(role="model", parts=parts)
        elif isinstance(message, ToolMessage):
            name = call_names.get(message.tool_call_id)
            if name is None:
                raise UnsupportedRoleError(
                    f"No tool call with id {message.tool_call_id} precedes this tool result"
                )
            content = GoogleContent(
                role="user",
                parts=[
                    GooglePart(
                        function_response=GoogleFunctionResponse(
                            name=name, response={"content": message.content}, id=message.tool_call_id
                        )
                    )
                ],
            )
        else:
            raise UnsupportedRoleError(f"Google contents cannot carry role {message.role!r}")

        if contents and contents[-1].role == content.role:
            contents[-1].parts.extend(content.parts)
        else:
            contents.append(content)

    return contents


def _from_google_content(content: GoogleContent) -> Message:
    text = "".join(p.text for p in content.parts if p.text)
    tool_calls = [
        ToolCall(
            id=p.function_call.id or f"call_{i}_{p.function_call.name}",
            name=p.function_call.name,
            arguments=json.dumps(p.function_call.args, separators=(",", ":")),
        )
        for i, p in enumerate(content.parts)
        if p.function_call is not None
    ]
    return AssistantMessage(content=text or None, tool_calls=tool_calls or None)


class GoogleBackend(HttpxBackend):
    """Gemini generateContent adapter.

    The system prompt and any SystemMessage in the history become the
    ``systemInstruction``. The API key travels in the ``key`` query
    parameter.
    """

    provider = Provider.GOOGLE
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"

    MODEL_ALIASES = {
        "gemini-flash": "gemini-1.5-flash-latest",
        "gemini-pro": "gemini-1.5-pro-latest",
    }

    def _request_path(self) -> str:
        return f"/v1beta/models/{self._model}:generateContent"

    def _request_params(self) -> dict[str, str]:
        return {"key": self._config.secret}

    def build_request_body(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> dict[str, Any]:
        system_parts = [request.system_prompt] if request.system_prompt else []
        system_parts += [m.content for m in request.messages if isinstance(m, SystemMessage)]
        history = [m for m in request.messages if not isinstance(m, SystemMessage)]

        system_instruction = None
        if system_parts:
            system_instruction = GoogleContent(parts=[GooglePart(text="\n\n".join(system_parts))])

        google_tools = None
        if tools:
            google_tools = [
                GoogleTool(
                    function_declarations=[
                        GoogleFunctionDeclaration(
                            name=t.name(), description=t.description(), parameters=t.parameters()
                        )
                        for t in tools
                    ]
                )
            ]

        generation_config = GoogleGenerationConfig(
            temperature=request.temperature,
            top_p=request.top_p,
            top_k=request.top_k,
            max_output_tokens=request.max_tokens,
            stop_sequences=request.stop,
            presence_penalty=request.presence_penalty,
            frequency_penalty=request.frequency_penalty,
        )

        body = GoogleRequest(
            system_instruction=system_instruction,
            contents=_to_google_contents(history),
            tools=google_tools,
            generation_config=generation_config,
        )
        dumped = body.model_dump(by_alias=True, exclude_none=True)
        if not dumped.get("generationConfig"):
            dumped.pop("generationConfig", None)
        return dumped

    def parse_response(self, data: Any) -> Message | None:
        response = GoogleResponse.model_validate(data)
        if not response.candidates or response.candidates[0].content is None:
            return None
        return _from_google_content(response.candidates[0].content)


__all__ = ["GoogleBackend"]

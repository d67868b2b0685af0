"""Ollama provider implementation.

Talks to a local Ollama server through its OpenAI-compatible endpoint.
No credential is sent.

Public API (the "studs"):
    OllamaBackend: Local Ollama adapter
"""

from collections.abc import Sequence
from typing import Any

from acai.llm.config import Provider
from acai.llm.providers.base import HttpxBackend
from acai.llm.providers.openai import build_chat_body, parse_chat_response
from acai.llm.types import ChatCompletionRequest, Message, ToolDefinition


class OllamaBackend(HttpxBackend):
    """Local Ollama adapter (OpenAI-compatible wire format)."""

    provider = Provider.OLLAMA
    DEFAULT_BASE_URL = "http://localhost:11434"

    def _request_path(self) -> str:
        return "/v1/chat/completions"

    def build_request_body(
        self, request: ChatCompletionRequest, tools: Sequence[ToolDefinition] = ()
    ) -> dict[str, Any]:
        return build_chat_body(self._model, request, tools)

    def parse_response(self, data: Any) -> Message | None:
        return parse_chat_response(data)


__all__ = ["OllamaBackend"]

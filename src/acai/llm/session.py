"""Multi-turn chat session over a single backend.

Public API (the "studs"):
    ChatSession: Conversation history bound to a backend
"""

import logging

from acai.llm.config import ProviderSpec
from acai.llm.providers.base import BaseBackend
from acai.llm.types import ChatCompletionRequest, Message, UserMessage

_logger = logging.getLogger(__name__)


class ChatSession:
    """Conversation history bound to a backend.

    History is seeded the way the provider expects (a system message for
    OpenAI-style vendors, nothing for vendors with a dedicated system
    field). Each ``send`` appends the user turn and the reply.
    """

    def __init__(
        self,
        backend: BaseBackend,
        spec: ProviderSpec,
        system_prompt: str,
        *,
        temperature: float | None = None,
        top_p: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.backend = backend
        self.spec = spec
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._top_p = top_p
        self._max_tokens = max_tokens
        self._messages: list[Message] = spec.init_messages(system_prompt)

    def add_user_message(self, content: str) -> None:
        """Append a user turn without sending it."""
        self._messages.append(UserMessage(content=content))

    async def send(self, content: str) -> str:
        """Send a user turn and return the assistant's text.

        On failure the unanswered user turn is removed from history and
        the backend error propagates.
        """
        self.add_user_message(content)
        request = ChatCompletionRequest(
            system_prompt=self._system_prompt,
            messages=list(self._messages),
            temperature=self._temperature,
            top_p=self._top_p,
            max_tokens=self._max_tokens,
        )
        try:
            reply = await self.backend.chat(request)
        except Exception:
            self._messages.pop()
            raise

        self._messages.append(reply)
        return reply.content or ""

    def get_message_history(self) -> list[Message]:
        return list(self._messages)


__all__ = ["ChatSession"]

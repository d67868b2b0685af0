"""Mistral provider implementation.

Mistral speaks the OpenAI chat completions dialect, so the chat adapter
reuses the OpenAI SDK client pointed at Mistral's endpoint. It adds the
fill-in-the-middle completion endpoint used by ``acai complete``.

Public API (the "studs"):
    MistralBackend: Mistral chat and FIM adapter
"""

from pydantic import BaseModel

from acai.llm.config import Provider
from acai.llm.providers.openai import OpenAIBackend, parse_chat_response


class MistralFimRequest(BaseModel):
    """Wire body for ``POST /fim/completions``."""

    model: str
    prompt: str
    suffix: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class MistralBackend(OpenAIBackend):
    """Mistral chat completions and FIM adapter."""

    provider = Provider.MISTRAL
    DEFAULT_BASE_URL = "https://api.mistral.ai/v1"
    FIM_PATH = "/fim/completions"

    MODEL_ALIASES = {
        "codestral": "codestral-latest",
    }

    async def complete(
        self,
        prompt: str,
        suffix: str | None = None,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Fill in the text between ``prompt`` and ``suffix``.

        Status handling is the same as for ``chat``.

        Returns:
            The generated middle section
        """
        body = MistralFimRequest(
            model=self._model,
            prompt=prompt,
            suffix=suffix,
            temperature=temperature,
            max_tokens=max_tokens,
        ).model_dump(exclude_none=True)
        message = await self._exchange(body, parse_chat_response, self.FIM_PATH)
        return message.content or ""


__all__ = ["MistralBackend"]

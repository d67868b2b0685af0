"""Shared test fixtures."""

import json
import logging

import httpx
import pytest


class ScriptedTransport:
    """httpx transport that replays scripted responses and records requests.

    Each script entry is ``(status_code, body)`` where body is a dict/list
    (sent as JSON), a str or bytes (sent raw), or an exception instance to
    raise. The last entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        entry = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(entry, Exception):
            raise entry
        status, body = entry
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        if isinstance(body, str):
            body = body.encode()
        return httpx.Response(status, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def bodies(self) -> list:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def scripted():
    """Factory for ScriptedTransport instances."""
    return ScriptedTransport


@pytest.fixture
def api_keys(monkeypatch):
    """Set every vendor credential to a dummy value."""
    for var in ("CLAUDE_API_KEY", "OPENAI_API_KEY", "MISTRAL_API_KEY", "GOOGLE_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.setenv(var, f"test-{var.lower()}")


@pytest.fixture(autouse=True)
def _reset_acai_logger():
    """Remove handlers installed by the CLI between tests."""
    yield
    logger = logging.getLogger("acai")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

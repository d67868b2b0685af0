"""Tests for the Responses agent loop."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import click
import pytest

from acai.agent.events import JsonLinesEventSink
from acai.agent.items import FunctionCallItem, MessageItem, ReasoningItem
from acai.agent.responses import AgentState, ResponsesClient
from acai.files import FileInfo
from acai.llm.config import Provider
from acai.llm.exceptions import (
    ConfigurationError,
    NoMessageError,
    RequestError,
    ServiceUnavailableError,
    TurnLimitExceededError,
)
from acai.llm.types import AssistantMessage
from acai.tools.base import ToolOutput, ToolRegistry
from acai.tools.generate_edits import GenerateEditsTool

MODEL = "minimax/minimax-m2.5"


def _run(coro):
    return asyncio.run(coro)


class _RecordingTool:
    """Echo tool that records the arguments it was called with."""

    def __init__(self):
        self.calls = []

    def name(self):
        return "echo"

    def description(self):
        return "Echo the text argument"

    def parameters(self):
        return {"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]}

    async def call(self, arguments):
        self.calls.append(arguments)
        return ToolOutput(output=json.loads(arguments)["text"])


class _CrashingTool(_RecordingTool):
    def __init__(self, error):
        super().__init__()
        self.error = error

    async def call(self, arguments):
        raise self.error


class _ListSink:
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)


def _usage(input_tokens, output_tokens, **extra):
    return {"input_tokens": input_tokens, "output_tokens": output_tokens, **extra}


def _message(text, usage=None, msg_id="msg_1"):
    return {
        "id": "resp_msg",
        "status": "completed",
        "output": [
            {
                "type": "message",
                "id": msg_id,
                "role": "assistant",
                "status": "completed",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            }
        ],
        "usage": usage or _usage(10, 5),
    }


def _function_call(call_id, text, usage=None, name="echo"):
    return {
        "id": "resp_call",
        "status": "completed",
        "output": [
            {
                "type": "function_call",
                "id": f"fc_{call_id}",
                "call_id": call_id,
                "name": name,
                "arguments": json.dumps({"text": text}),
            }
        ],
        "usage": usage or _usage(10, 5),
    }


def _client(transport, tools=None, **kwargs):
    return ResponsesClient(
        MODEL,
        "You are helpful.",
        tools=tools if tools is not None else ToolRegistry([_RecordingTool()]),
        api_key="test-openrouter",
        http_client=transport.client(),
        **kwargs,
    )


class TestConstruction:
    """Tests for ResponsesClient initialization."""

    def test_history_seeded_with_system_message(self, scripted):
        client = _client(scripted((200, _message("hi"))))
        assert client.state == AgentState.IDLE
        assert client.history == [MessageItem(role="system", content="You are helpful.")]

    def test_reads_openrouter_key(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        client = ResponsesClient(MODEL, "sys")
        assert client.tools.names() == ["shell"]

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY"):
            ResponsesClient(MODEL, "sys")

    def test_max_turns_must_be_positive(self, scripted):
        with pytest.raises(ValueError, match="max_turns"):
            _client(scripted((200, _message("hi"))), max_turns=0)


class TestAgentLoop:
    """Tests for the request and tool-execution loop."""

    def test_plain_answer(self, scripted):
        transport = scripted((200, _message("Hello!")))
        client = _client(transport)

        result = _run(client.send("Hi"))

        assert result == "Hello!"
        assert client.state == AgentState.DONE
        assert len(transport.requests) == 1

        request = transport.requests[0]
        assert request.url.path == "/api/v1/responses"
        assert request.headers["authorization"] == "Bearer test-openrouter"

        body = transport.bodies()[0]
        assert body["model"] == MODEL
        assert body["temperature"] == 0.0
        assert body["tool_choice"] == "auto"
        assert body["tools"][0] == {
            "type": "function",
            "name": "echo",
            "description": "Echo the text argument",
            "parameters": _RecordingTool().parameters(),
        }
        assert body["input"] == [
            {"type": "message", "role": "system", "content": [{"type": "input_text", "text": "You are helpful."}]},
            {"type": "message", "role": "user", "content": [{"type": "input_text", "text": "Hi"}]},
        ]

    def test_function_calls_then_answer(self, scripted):
        transport = scripted(
            (200, _function_call("call_1", "one")),
            (200, _function_call("call_2", "two")),
            (200, _message("Done")),
        )
        tool = _RecordingTool()
        client = _client(transport, tools=ToolRegistry([tool]))

        result = _run(client.send("Go"))

        assert result == "Done"
        assert len(transport.requests) == 3
        assert tool.calls == ['{"text": "one"}', '{"text": "two"}']

        second_input = transport.bodies()[1]["input"]
        assert second_input[-2] == {
            "type": "function_call",
            "id": "fc_call_1",
            "call_id": "call_1",
            "name": "echo",
            "arguments": '{"text": "one"}',
        }
        assert second_input[-1] == {"type": "function_call_output", "call_id": "call_1", "output": "one"}

        third_input = transport.bodies()[2]["input"]
        assert third_input[-1] == {"type": "function_call_output", "call_id": "call_2", "output": "two"}

    def test_every_call_in_a_response_is_answered(self, scripted):
        both = _function_call("call_1", "one")
        both["output"].append(_function_call("call_2", "two")["output"][0])
        transport = scripted((200, both), (200, _message("Done")))
        client = _client(transport)

        _run(client.send("Go"))

        outputs = [i for i in transport.bodies()[1]["input"] if i["type"] == "function_call_output"]
        assert [o["call_id"] for o in outputs] == ["call_1", "call_2"]

    def test_tool_failure_reported_to_model(self, scripted):
        transport = scripted((200, _function_call("call_1", "x", name="nope")), (200, _message("Sorry")))
        client = _client(transport)

        result = _run(client.send("Go"))

        assert result == "Sorry"
        last = transport.bodies()[1]["input"][-1]
        assert last == {"type": "function_call_output", "call_id": "call_1", "output": "Error: Unknown tool: nope"}

    @pytest.mark.parametrize("error", [RuntimeError("boom"), click.Abort(), ValueError("boom")])
    def test_unexpected_tool_exception_reported_to_model(self, scripted, error):
        transport = scripted((200, _function_call("call_1", "x")), (200, _message("Recovered")))
        client = _client(transport, tools=ToolRegistry([_CrashingTool(error)]))

        result = _run(client.send("Go"))

        assert result == "Recovered"
        assert client.state == AgentState.DONE
        assert len(transport.requests) == 2
        last = transport.bodies()[1]["input"][-1]
        assert last["type"] == "function_call_output"
        assert last["call_id"] == "call_1"
        assert last["output"].startswith("Error:")

    def test_edit_prompt_without_terminal_is_rejection(self, scripted, tmp_path):
        (tmp_path / "app.py").write_text("x = 1\n")
        backend = MagicMock()
        backend.provider = Provider.ANTHROPIC
        backend.model = "claude-3-5-sonnet-20240620"
        backend.chat = AsyncMock(
            return_value=AssistantMessage(content="<BLOCK><PATH>app.py</PATH><SEARCH>1</SEARCH><REPLACE>2</REPLACE></BLOCK>")
        )
        edits = GenerateEditsTool(
            [FileInfo(path=tmp_path / "app.py", content="x = 1\n")],
            backend=backend,
            confirm=MagicMock(side_effect=click.Abort()),
            echo=lambda s: None,
            root=tmp_path,
        )
        call = _function_call("call_1", "x", name="generate_edits")
        call["output"][0]["arguments"] = json.dumps({"instructions": "Bump x"})
        transport = scripted((200, call), (200, _message("Left as is")))
        client = _client(transport, tools=ToolRegistry([edits]))

        assert _run(client.send("Bump x")) == "Left as is"
        last = transport.bodies()[1]["input"][-1]
        assert last == {"type": "function_call_output", "call_id": "call_1", "output": "Changes rejected by user."}
        assert (tmp_path / "app.py").read_text() == "x = 1\n"

    def test_assistant_message_replayed_with_id(self, scripted):
        transport = scripted((200, _message("First")), (200, _message("Second", msg_id="msg_2")))
        client = _client(transport)

        _run(client.send("One"))
        _run(client.send("Two"))

        replayed = transport.bodies()[1]["input"][2]
        assert replayed == {
            "type": "message",
            "role": "assistant",
            "content": [{"type": "output_text", "text": "First", "annotations": []}],
            "id": "msg_1",
            "status": "completed",
        }

    def test_reasoning_kept_in_history(self, scripted):
        reply = _message("Answer")
        reply["output"].insert(
            0, {"type": "reasoning", "id": "rs_1", "summary": [{"type": "summary_text", "text": "Thinking"}]}
        )
        transport = scripted((200, reply), (200, _message("Again")))
        client = _client(transport)

        _run(client.send("Q1"))
        _run(client.send("Q2"))

        assert ReasoningItem(id="rs_1", summary=["Thinking"]) in client.history
        assert {
            "type": "reasoning",
            "id": "rs_1",
            "summary": [{"type": "summary_text", "text": "Thinking"}],
        } in transport.bodies()[1]["input"]

    def test_no_assistant_message_returns_none(self, scripted):
        transport = scripted((200, {"output": [], "usage": _usage(1, 1)}))
        client = _client(transport)

        assert _run(client.send("Hi")) is None
        assert client.state == AgentState.DONE

    def test_no_tools_omits_tool_fields(self, scripted):
        transport = scripted((200, _message("Hi")))
        client = _client(transport, tools=ToolRegistry())

        _run(client.send("Hi"))

        body = transport.bodies()[0]
        assert "tools" not in body
        assert "tool_choice" not in body

    def test_sampling_parameters(self, scripted):
        transport = scripted((200, _message("Hi")))
        client = _client(transport, temperature=0.7, top_p=0.9, max_output_tokens=256)

        _run(client.send("Hi"))

        body = transport.bodies()[0]
        assert body["temperature"] == 0.7
        assert body["top_p"] == 0.9
        assert body["max_output_tokens"] == 256

    def test_history_wire_form(self, scripted):
        transport = scripted((200, _function_call("call_1", "one")), (200, _message("Done")))
        client = _client(transport)

        _run(client.send("Go"))

        assert [item["type"] for item in client.get_message_history()] == [
            "message",
            "message",
            "function_call",
            "function_call_output",
            "message",
        ]
        assert isinstance(client.history[2], FunctionCallItem)


class TestUsage:
    """Tests for token usage accounting across round trips."""

    def test_accumulates_across_round_trips(self, scripted):
        transport = scripted(
            (200, _function_call("call_1", "one", usage=_usage(10, 5))),
            (200, _message("Done", usage=_usage(7, 3))),
        )
        client = _client(transport)

        _run(client.send("Go"))

        assert client.usage.input_tokens == 17
        assert client.usage.output_tokens == 8
        assert client.usage.total_tokens == 25
        assert client.usage.turn_count == 2

    def test_details_and_reported_total(self, scripted):
        usage = _usage(
            100,
            40,
            total_tokens=150,
            input_tokens_details={"cached_tokens": 60},
            output_tokens_details={"reasoning_tokens": 12},
        )
        transport = scripted((200, _message("Hi", usage=usage)))
        client = _client(transport)

        _run(client.send("Hi"))

        assert client.usage.cached_tokens == 60
        assert client.usage.reasoning_tokens == 12
        assert client.usage.total_tokens == 150

    def test_carries_over_between_sends(self, scripted):
        transport = scripted((200, _message("Hi")))
        client = _client(transport)

        _run(client.send("One"))
        _run(client.send("Two"))

        assert client.usage.turn_count == 2
        assert client.usage.input_tokens == 20


class TestFailures:
    """Tests for failed round trips and the turn limit."""

    def test_turn_limit(self, scripted):
        transport = scripted((200, _function_call("call_1", "one")))
        client = _client(transport, max_turns=2)

        with pytest.raises(TurnLimitExceededError) as exc_info:
            _run(client.send("Loop"))

        assert str(exc_info.value) == f"{MODEL}\n\nExceeded the limit of 2 turns"
        assert len(transport.requests) == 2
        assert client.state == AgentState.FAILED

    def test_turn_limit_allows_final_answer(self, scripted):
        transport = scripted((200, _function_call("call_1", "one")), (200, _message("Done")))
        client = _client(transport, max_turns=2)

        assert _run(client.send("Go")) == "Done"

    def test_client_error(self, scripted):
        error = {"error": {"message": "No such model"}}
        transport = scripted((404, error))
        client = _client(transport)

        with pytest.raises(RequestError) as exc_info:
            _run(client.send("Hi"))

        assert str(exc_info.value) == f"{MODEL}\n\n{json.dumps(error, indent=2)}"
        assert exc_info.value.status_code == 404
        assert client.state == AgentState.FAILED

    def test_server_error(self, scripted):
        transport = scripted((502, "bad gateway"))
        client = _client(transport)

        with pytest.raises(ServiceUnavailableError) as exc_info:
            _run(client.send("Hi"))

        assert str(exc_info.value) == f"{MODEL}\n\nbad gateway"
        assert len(transport.requests) == 1

    def test_unparseable_body(self, scripted):
        transport = scripted((200, "<html>"))
        client = _client(transport)

        with pytest.raises(NoMessageError) as exc_info:
            _run(client.send("Hi"))

        assert str(exc_info.value) == f"{MODEL}\n\nNo message. Try again."

    def test_user_turn_kept_after_failure(self, scripted):
        transport = scripted((500, "down"))
        client = _client(transport)

        with pytest.raises(ServiceUnavailableError):
            _run(client.send("Hi"))

        assert client.history[-1] == MessageItem(role="user", content="Hi")


class TestEvents:
    """Tests for streaming events emitted by the loop."""

    def test_event_sequence(self, scripted):
        transport = scripted((200, _function_call("call_1", "one")), (200, _message("Done")))
        client = _client(transport)
        sink = _ListSink()

        _run(client.send("Go", sink))

        assert [e.type for e in sink.events] == ["init", "function_call", "message", "result"]
        init, call, message, result = sink.events
        assert init.model == MODEL
        assert init.tools == ["echo"]
        assert init.session_id == client.session_id
        assert call.call_id == "call_1"
        assert message.content == "Done"
        assert result.success is True
        assert result.result == "Done"
        assert result.turn_count == 2
        assert result.usage.input_tokens == 20

    def test_failure_result_event(self, scripted):
        transport = scripted((503, "down"))
        client = _client(transport)
        sink = _ListSink()

        with pytest.raises(ServiceUnavailableError):
            _run(client.send("Hi", sink))

        result = sink.events[-1]
        assert result.type == "result"
        assert result.success is False
        assert result.error == f"{MODEL}\n\ndown"

    def test_failing_sink_does_not_stop_loop(self, scripted):
        class _BrokenSink:
            def emit(self, event):
                raise RuntimeError("closed pipe")

        transport = scripted((200, _message("Hello")))
        client = _client(transport)

        assert _run(client.send("Hi", _BrokenSink())) == "Hello"

    def test_json_lines_sink(self, scripted):
        lines = []
        transport = scripted((200, _message("Hello")))
        client = _client(transport)

        _run(client.send("Hi", JsonLinesEventSink(write=lines.append)))

        events = [json.loads(line) for line in lines]
        assert [e["type"] for e in events] == ["init", "message", "result"]
        assert events[1] == {"type": "message", "role": "assistant", "content": "Hello", "id": "msg_1"}
        assert events[2]["usage"]["turn_count"] == 1
        assert "error" not in events[2]

"""Tests for the tool-augmented inference loop."""

from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock

from ai_inference.core.errors import TransportError
from ai_inference.core.llm import InferenceRequest, Message, ResponseFormat
from ai_inference.core.tool_executor import (
    MAX_ITERATIONS,
    LoopState,
    LoopStep,
    ToolExecutor,
    last_assistant_content,
    mcp_inference,
    next_step,
)

TOOLS = [{
    "type": "function",
    "function": {"name": "echo", "description": "Echoes", "parameters": {"type": "object"}},
}]


def make_request(**kwargs) -> InferenceRequest:
    defaults = dict(
        messages=(Message(role="user", content="ping"),),
        model_name="openai/gpt-4o",
        max_tokens=100,
        endpoint="https://models.github.ai/inference",
        token="t0k3n",
    )
    defaults.update(kwargs)
    return InferenceRequest(**defaults)


def reply(content, *tool_call_ids):
    message = {"content": content}
    if tool_call_ids:
        message["tool_calls"] = [
            {
                "id": tc_id,
                "type": "function",
                "function": {"name": "echo", "arguments": f'{{"text": "{tc_id}"}}'},
            }
            for tc_id in tool_call_ids
        ]
    return {"choices": [{"message": message}]}


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.create = AsyncMock()
    return client


@pytest.fixture
def session():
    s = AsyncMock()
    s.call_tool = AsyncMock(side_effect=lambda name, args: f"echo:{args['text']}")
    return s


@pytest.fixture
def executor(mock_client, session):
    return ToolExecutor(mock_client, session, TOOLS)


class TestNextStep:
    def test_tool_calls_await_tools(self):
        step = next_step(LoopStep(), has_tool_calls=True, wants_format=True)
        assert step == LoopStep(LoopState.AWAITING_TOOLS, False)

    def test_no_tools_no_format_is_done(self):
        assert next_step(LoopStep(), False, False).state is LoopState.DONE

    def test_no_tools_with_format_finalizes(self):
        step = next_step(LoopStep(), False, True)
        assert step == LoopStep(LoopState.FINALIZING, True)

    def test_finalizing_pass_is_done(self):
        step = next_step(LoopStep(LoopState.FINALIZING, True), False, True)
        assert step.state is LoopState.DONE

    def test_final_message_is_sticky_across_tool_calls(self):
        step = next_step(LoopStep(LoopState.FINALIZING, True), True, True)
        assert step == LoopStep(LoopState.AWAITING_TOOLS, True)


class TestToolExecutor:
    async def test_no_tool_calls_returns_content(self, executor, mock_client, session):
        mock_client.create.return_value = reply("Hello!")
        result = await executor.run(make_request())
        assert result == "Hello!"
        assert mock_client.create.await_count == 1
        session.call_tool.assert_not_awaited()

        params = mock_client.create.call_args.kwargs
        assert params["tools"] == TOOLS
        assert "response_format" not in params

    async def test_tool_call_executes_and_returns(self, executor, mock_client, session):
        mock_client.create.side_effect = [reply("", "tc1"), reply("Done: pong")]
        result = await executor.run(make_request())
        assert result == "Done: pong"
        assert mock_client.create.await_count == 2
        session.call_tool.assert_awaited_once_with("echo", {"text": "tc1"})

        second = mock_client.create.call_args_list[1].kwargs["messages"]
        assert second[1] == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{
                "id": "tc1",
                "type": "function",
                "function": {"name": "echo", "arguments": '{"text": "tc1"}'},
            }],
        }
        assert second[2] == {"role": "tool", "content": "echo:tc1", "tool_call_id": "tc1"}

    async def test_forced_reformat_pass(self, executor, mock_client):
        schema = {"name": "answer", "schema": {"type": "object"}}
        request = make_request(response_format=ResponseFormat(schema=schema))
        mock_client.create.side_effect = [reply("plain answer"), reply('{"answer": 42}')]

        result = await executor.run(request)

        assert result == '{"answer": 42}'
        assert mock_client.create.await_count == 2
        first, second = (c.kwargs for c in mock_client.create.call_args_list)
        assert "tools" in first and "response_format" not in first
        assert "tools" not in second
        assert second["response_format"] == {"type": "json_schema", "json_schema": schema}

        user_messages = [m for m in second["messages"] if m["role"] == "user"]
        assert len(user_messages) == 2
        assert user_messages[-1]["content"] == (
            "Please provide your response in the exact json_schema format specified."
        )

    async def test_reformat_only_after_tool_free_pass(self, executor, mock_client):
        request = make_request(response_format=ResponseFormat(schema={}))
        mock_client.create.side_effect = [reply("", "a"), reply("draft"), reply("{}")]
        result = await executor.run(request)
        assert result == "{}"
        calls = [c.kwargs for c in mock_client.create.call_args_list]
        assert ["tools" in c for c in calls] == [True, True, False]

    async def test_cap_exhaustion_returns_last_assistant_content(self, executor, mock_client, session):
        mock_client.create.side_effect = [
            reply(f"pass {i}", f"id{i}") for i in range(1, MAX_ITERATIONS + 1)
        ]
        result = await executor.run(make_request())
        assert result == "pass 5"
        assert mock_client.create.await_count == MAX_ITERATIONS
        assert session.call_tool.await_count == MAX_ITERATIONS

    async def test_cap_exhaustion_with_empty_content_returns_none(self, executor, mock_client):
        mock_client.create.side_effect = [reply("", "x")] * MAX_ITERATIONS
        assert await executor.run(make_request()) is None

    async def test_completion_failure_is_fatal(self, executor, mock_client, session):
        mock_client.create.side_effect = [reply("", "a"), TransportError("down")]
        with pytest.raises(TransportError):
            await executor.run(make_request())
        assert mock_client.create.await_count == 2

    async def test_tool_failure_is_reported_to_model(self, executor, mock_client, session):
        session.call_tool.side_effect = RuntimeError("rate limited")
        mock_client.create.side_effect = [reply("", "a"), reply("Sorry")]
        result = await executor.run(make_request())
        assert result == "Sorry"
        messages = mock_client.create.call_args_list[1].kwargs["messages"]
        assert messages[-1] == {"role": "tool", "content": "Error: rate limited", "tool_call_id": "a"}

    async def test_request_messages_not_mutated(self, executor, mock_client):
        request = make_request()
        mock_client.create.side_effect = [reply("", "a"), reply("done")]
        await executor.run(request)
        assert request.messages == (Message(role="user", content="ping"),)


class TestLastAssistantContent:
    def test_finds_latest(self):
        history = [
            Message(role="user", content="q"),
            Message(role="assistant", content="first"),
            Message(role="tool", content="r", tool_call_id="1"),
            Message(role="assistant", content="second"),
            Message(role="tool", content="r", tool_call_id="2"),
        ]
        assert last_assistant_content(history) == "second"

    def test_none_without_assistant(self):
        assert last_assistant_content([Message(role="user", content="q")]) is None


class TestMcpInference:
    async def test_uses_client_session_and_tools(self, mock_client, session):
        github = SimpleNamespace(session=session, tools=TOOLS)
        mock_client.create.side_effect = [reply("", "a"), reply("final")]
        result = await mcp_inference(make_request(), github, client=mock_client)
        assert result == "final"
        session.call_tool.assert_awaited_once()

"""Tool-use loop: completion calls with iterative MCP tool execution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

import structlog

from ai_inference.core.inference import build_params
from ai_inference.core.llm import InferenceRequest, Message, create_client
from ai_inference.core.llm.completion import CompletionTransport, call_completion
from ai_inference.tools.base import ToolSession, execute_tool_calls
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

MAX_ITERATIONS = 5


class LoopState(Enum):
    REQUESTING = "requesting"
    AWAITING_TOOLS = "awaiting_tools"
    FINALIZING = "finalizing"
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class LoopStep:
    state: LoopState = LoopState.REQUESTING
    # Once set, every later pass asks for the response format instead of tools
    final_message: bool = False


def next_step(current: LoopStep, has_tool_calls: bool, wants_format: bool) -> LoopStep:
    """Transition after one completion pass."""
    if has_tool_calls:
        return LoopStep(LoopState.AWAITING_TOOLS, current.final_message)
    if wants_format and not current.final_message:
        return LoopStep(LoopState.FINALIZING, True)
    return LoopStep(LoopState.DONE, current.final_message)


def reformat_message(request: InferenceRequest) -> Message:
    kind = request.response_format.kind if request.response_format else "json_schema"
    return Message(
        role="user",
        content=f"Please provide your response in the exact {kind} format specified.",
    )


def last_assistant_content(history: Sequence[Message]) -> str | None:
    for message in reversed(history):
        if message.role == "assistant":
            return message.content or None
    return None


class ToolExecutor:
    """Runs the completion + tool-use loop for a single request."""

    def __init__(
        self,
        client: CompletionTransport,
        session: ToolSession,
        tools: list[dict[str, Any]],
        log: structlog.stdlib.BoundLogger = log,
    ) -> None:
        self._client = client
        self._session = session
        self._tools = tools
        self._log = log

    def _params(self, request: InferenceRequest, history: list[Message], step: LoopStep) -> dict[str, Any]:
        params = build_params(request, history)
        if step.final_message and request.response_format is not None:
            params["response_format"] = request.response_format.to_dict()
        else:
            params["tools"] = self._tools
        return params

    async def run(self, request: InferenceRequest) -> str | None:
        """Run the loop. Returns the final text, or the latest assistant text
        when the iteration cap is reached."""
        history: list[Message] = list(request.messages)
        wants_format = request.response_format is not None
        step = LoopStep()

        for iteration in range(1, MAX_ITERATIONS + 1):
            self._log.info("mcp_inference_iteration", iteration=iteration, state=step.state.value)
            params = self._params(request, history, step)
            result = await call_completion(
                self._client, params, f"mcpInference iteration {iteration}", log=self._log,
            )

            content = result.content
            tool_calls = result.tool_calls
            self._log.info("model_response", content=content or "No response content")
            history.append(Message(role="assistant", content=content or "", tool_calls=tool_calls))

            step = next_step(step, bool(tool_calls), wants_format)

            if step.state is LoopState.DONE:
                self._log.info("mcp_inference_done", iterations=iteration)
                return content or None

            if step.state is LoopState.FINALIZING:
                self._log.info("requesting_response_format", format=request.response_format.kind)
                history.append(reformat_message(request))
                continue

            self._log.info("tool_calls_requested", count=len(tool_calls))
            history.extend(await execute_tool_calls(self._session, tool_calls, log=self._log))
            step = LoopStep(LoopState.REQUESTING, step.final_message)

        self._log.warning(
            "mcp_inference_loop_exceeded",
            state=LoopState.EXHAUSTED.value,
            max_iterations=MAX_ITERATIONS,
        )
        return last_assistant_content(history)


async def mcp_inference(
    request: InferenceRequest,
    github_mcp_client: Any,
    client: CompletionTransport | None = None,
    log: structlog.stdlib.BoundLogger = log,
) -> str | None:
    """Tool-augmented inference against a connected GitHub MCP client.

    ``github_mcp_client`` needs a ``session`` with ``call_tool`` and a
    ``tools`` list in chat-completion tool format.
    """
    log.info("mcp_inference_start", model=request.model_name, tools=len(github_mcp_client.tools))

    owned = client is None
    transport = client if client is not None else create_client(request)
    try:
        executor = ToolExecutor(transport, github_mcp_client.session, github_mcp_client.tools, log=log)
        return await executor.run(request)
    finally:
        if owned:
            await transport.close()

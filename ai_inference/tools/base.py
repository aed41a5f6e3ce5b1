"""Tool session interface and tool-call execution."""

from __future__ import annotations

import json
from typing import Any, Protocol, Sequence

import structlog

from ai_inference.core.llm.types import Message, ToolCallRequest
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)


class ToolSession(Protocol):
    """A connected tool provider. Matches ``mcp.ClientSession.call_tool``."""

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any: ...


def _decode_arguments(raw: str) -> dict[str, Any]:
    if not raw or not raw.strip():
        return {}
    args = json.loads(raw)
    if not isinstance(args, dict):
        raise ValueError(f"tool arguments must be a JSON object, got {type(args).__name__}")
    return args


def _block_text(block: Any) -> str:
    text = getattr(block, "text", None)
    if isinstance(text, str):
        return text
    if isinstance(block, dict):
        if isinstance(block.get("text"), str):
            return block["text"]
        return json.dumps(block)
    if hasattr(block, "model_dump"):
        return json.dumps(block.model_dump(mode="json"))
    return str(block)


def render_tool_result(result: Any) -> str:
    """Flatten a ``CallToolResult``-shaped value into message text."""
    if isinstance(result, str):
        return result
    content = getattr(result, "content", None)
    if content is None and isinstance(result, dict):
        content = result.get("content")
    if content is None:
        return str(result)

    text = "\n".join(_block_text(block) for block in content)
    is_error = getattr(result, "isError", False) or (
        isinstance(result, dict) and result.get("isError", False)
    )
    return f"Error: {text}" if is_error else text


async def execute_tool_calls(
    session: ToolSession,
    tool_calls: Sequence[ToolCallRequest],
    log: structlog.stdlib.BoundLogger = log,
) -> list[Message]:
    """Run each tool call in order and return one ``tool`` message per call.

    Failures are reported to the model as message content so the
    conversation stays well-formed.
    """
    results: list[Message] = []
    for tc in tool_calls:
        log.info("tool_executing", tool=tc.name, tool_call_id=tc.id)
        try:
            args = _decode_arguments(tc.arguments)
            result = await session.call_tool(tc.name, args)
            output = render_tool_result(result)
        except Exception as e:
            log.warning("tool_failed", tool=tc.name, tool_call_id=tc.id, error=str(e))
            output = f"Error: {e}"
        results.append(Message(role="tool", content=output, tool_call_id=tc.id))
    return results

"""Connection to the GitHub MCP server over streamable HTTP.

Requires the ``mcp`` package.
"""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import structlog
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

from ai_inference.core.errors import ToolServerConnectionError
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

GITHUB_MCP_URL = "https://api.githubcopilot.com/mcp/"


@dataclass
class GitHubMCPClient:
    session: ClientSession
    tools: list[dict[str, Any]] = field(default_factory=list)


def to_chat_tool(tool: Any) -> dict[str, Any]:
    """Convert an ``mcp.types.Tool`` to the chat-completion tool format."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or "",
            "parameters": tool.inputSchema,
        },
    }


def build_headers(token: str, toolsets: str = "") -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {token}",
        "X-MCP-Readonly": "true",
    }
    if toolsets:
        headers["X-MCP-Toolsets"] = toolsets
    return headers


@asynccontextmanager
async def connect_github_mcp(
    token: str,
    toolsets: str = "",
    url: str = GITHUB_MCP_URL,
    log: structlog.stdlib.BoundLogger = log,
) -> AsyncIterator[GitHubMCPClient]:
    """Open an MCP session, list its tools and yield the connected client.

    Raises ``ToolServerConnectionError`` if the handshake or tool listing
    fails. The session is closed when the context exits.
    """
    log.info("github_mcp_connecting", url=url, toolsets=toolsets or "default")

    stack = AsyncExitStack()
    try:
        read, write, _ = await stack.enter_async_context(
            streamablehttp_client(url, headers=build_headers(token, toolsets))
        )
        session = await stack.enter_async_context(ClientSession(read, write))
        await session.initialize()
        listed = await session.list_tools()
    except Exception as e:
        try:
            await stack.aclose()
        except Exception as close_error:
            log.debug("github_mcp_teardown_failed", error=str(close_error))
        raise ToolServerConnectionError(
            f"Failed to connect to GitHub MCP server at {url}: {e}"
        ) from e

    tools = [to_chat_tool(t) for t in listed.tools]
    log.info("github_mcp_connected", tools=len(tools))

    async with stack:
        yield GitHubMCPClient(session=session, tools=tools)

"""Tool session adapters."""

from ai_inference.tools.base import ToolSession, execute_tool_calls, render_tool_result
from ai_inference.tools.github_mcp import GitHubMCPClient, connect_github_mcp

__all__ = [
    "ToolSession",
    "execute_tool_calls",
    "render_tool_result",
    "GitHubMCPClient",
    "connect_github_mcp",
]

"""Exception hierarchy for the inference action."""

from __future__ import annotations


class InferenceError(Exception):
    """Base class for every failure the action reports to the runner."""


class MalformedResponseError(InferenceError):
    """The completion endpoint returned an unparseable or shapeless value."""

    def __init__(self, context: str, reason: str, preview: str) -> None:
        self.context = context
        self.reason = reason
        self.preview = preview
        super().__init__(f"{context}: {reason}. Preview: {preview}")


class TransportError(InferenceError, ConnectionError):
    """Network or HTTP failure while talking to the completion endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConfigError(InferenceError):
    """Invalid action inputs, prompt file, template variables or schema."""


class ToolServerConnectionError(InferenceError):
    """The MCP tool server could not be reached or refused the handshake."""

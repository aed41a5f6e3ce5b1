"""Chat-completion transport, data types and the defensive caller."""

from ai_inference.core.llm.types import (
    CompletionResult,
    InferenceRequest,
    Message,
    ResponseFormat,
    ToolCallRequest,
    Usage,
)
from ai_inference.core.llm.client import ChatCompletionsClient
from ai_inference.core.llm.completion import call_completion, decode_completion

__all__ = [
    "CompletionResult",
    "InferenceRequest",
    "Message",
    "ResponseFormat",
    "ToolCallRequest",
    "Usage",
    "ChatCompletionsClient",
    "call_completion",
    "decode_completion",
    "create_client",
]


def create_client(request: InferenceRequest) -> ChatCompletionsClient:
    """Build a transport bound to the request's endpoint, token and headers."""
    return ChatCompletionsClient(
        endpoint=request.endpoint,
        token=request.token,
        headers=request.custom_headers,
    )

"""One-shot inference without tools."""

from __future__ import annotations

import re
from typing import Any, Sequence

import structlog

from ai_inference.core.llm import (
    CompletionResult,
    InferenceRequest,
    Message,
    create_client,
)
from ai_inference.core.llm.completion import CompletionTransport, call_completion
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

_THOUGHT_RE = re.compile(r"^\s*<thought>(.*?)</thought>")

# Model families that can return a visible thought summary when asked
_THINKING_MODEL_PREFIXES = ("gemini-3",)

_THINKING_EXTRA_BODY = {
    "google": {
        "thinking_config": {
            "include_thoughts": True,
            "thinking_level": "high",
        },
    },
}


def build_params(request: InferenceRequest, messages: Sequence[Message]) -> dict[str, Any]:
    """Completion parameters shared by both inference modes."""
    return {
        "messages": [m.to_dict() for m in messages],
        "max_tokens": request.max_tokens,
        "model": request.model_name,
        "temperature": request.temperature,
        "top_p": request.top_p,
    }


def split_thought(content: str) -> tuple[str | None, str]:
    """Split a leading ``<thought>...</thought>`` block off ``content``."""
    match = _THOUGHT_RE.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end():]


def log_usage(result: CompletionResult, log: structlog.stdlib.BoundLogger = log) -> None:
    if result.usage is None:
        return
    usage = result.usage
    log.info(
        "token_usage",
        total=usage.total_tokens,
        prompt=usage.prompt_tokens,
        completion=usage.completion_tokens,
    )
    if usage.reasoning_tokens:
        log.info("reasoning_tokens", count=usage.reasoning_tokens)


async def simple_inference(
    request: InferenceRequest,
    client: CompletionTransport | None = None,
    log: structlog.stdlib.BoundLogger = log,
) -> str | None:
    """Send the request once and return the model's text, if any."""
    log.info("simple_inference_start", model=request.model_name)

    params = build_params(request, request.messages)
    if request.model_name.startswith(_THINKING_MODEL_PREFIXES):
        params["extra_body"] = _THINKING_EXTRA_BODY
    if request.response_format is not None:
        params["response_format"] = request.response_format.to_dict()

    log.info("chat_completion_request", model=request.model_name, params=params)

    owned = client is None
    transport = client if client is not None else create_client(request)
    try:
        result = await call_completion(transport, params, "simpleInference", log=log)
    finally:
        if owned:
            await transport.close()

    log.debug("chat_completion_raw_response", response=result.raw)
    log_usage(result, log=log)

    content = result.content
    if not content:
        log.info("chat_completion_response", content=None)
        return None

    thought, content = split_thought(content)
    if thought is not None:
        log.info("chat_completion_thoughts", thought=thought)
    log.info("chat_completion_response", content=content)
    return content or None

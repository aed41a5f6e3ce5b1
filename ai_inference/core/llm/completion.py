"""Defensive wrapper around a single chat-completion call."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, Union

import structlog

from ai_inference.core.errors import MalformedResponseError
from ai_inference.core.llm.types import CompletionResult
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

STRING_PREVIEW_CHARS = 400
VALUE_PREVIEW_CHARS = 800


class CompletionTransport(Protocol):
    async def create(self, **params: Any) -> Any: ...


@dataclass(frozen=True)
class Decoded:
    response: dict[str, Any]


@dataclass(frozen=True)
class DecodeFailure:
    reason: str
    preview: str


DecodeOutcome = Union[Decoded, DecodeFailure]


def decode_completion(raw: Any) -> DecodeOutcome:
    """Normalize whatever the transport returned into a response object.

    Strings are decoded as JSON first; the result must be a mapping with a
    ``choices`` key.
    """
    value = raw
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            return DecodeFailure(
                reason=f"Chat completion response was a string and not valid JSON ({e})",
                preview=raw[:STRING_PREVIEW_CHARS],
            )

    if not isinstance(value, dict) or "choices" not in value:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError):
            serialized = repr(value)
        return DecodeFailure(
            reason="Unexpected response shape (no choices)",
            preview=serialized[:VALUE_PREVIEW_CHARS],
        )

    if not _tool_calls_well_formed(value):
        return DecodeFailure(
            reason="Unexpected tool_calls shape",
            preview=json.dumps(value, default=repr)[:VALUE_PREVIEW_CHARS],
        )

    return Decoded(value)


def _tool_calls_well_formed(response: dict[str, Any]) -> bool:
    """``tool_calls``, when present, must be a list of objects with object ``function``."""
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return True
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return True
    tool_calls = message.get("tool_calls")
    if tool_calls is None:
        return True
    if not isinstance(tool_calls, list):
        return False
    for call in tool_calls:
        if not isinstance(call, dict):
            return False
        if not isinstance(call.get("function") or {}, dict):
            return False
    return True


async def call_completion(
    client: CompletionTransport,
    params: dict[str, Any],
    context: str,
    log: structlog.stdlib.BoundLogger = log,
) -> CompletionResult:
    """Run one completion call and validate its shape.

    Raises ``MalformedResponseError`` for unusable responses; transport errors
    propagate unchanged. Both are logged with ``context`` first.
    """
    try:
        raw = await client.create(**params)
        log.debug("raw_completion_response", context=context, response_type=type(raw).__name__)

        outcome = decode_completion(raw)
        if isinstance(outcome, DecodeFailure):
            raise MalformedResponseError(context, outcome.reason, outcome.preview)
        return CompletionResult.from_response(outcome.response)
    except Exception as e:
        log.error("chat_completion_failed", context=context, error=str(e))
        raise

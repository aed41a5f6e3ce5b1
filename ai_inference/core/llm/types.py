"""Chat-completion data types."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool call emitted by the model. ``arguments`` stays raw JSON text."""

    id: str
    name: str
    arguments: str = ""
    kind: str = "function"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolCallRequest:
        func = data.get("function") or {}
        arguments = func.get("arguments", "")
        if not isinstance(arguments, str):
            # Some servers send already-decoded arguments; keep them as JSON text
            arguments = json.dumps(arguments)
        return cls(
            id=str(data.get("id", "")),
            name=func.get("name", ""),
            arguments=arguments,
            kind=data.get("type", "function"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class Message:
    role: Role
    content: str | None = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()
    tool_call_id: str | None = None

    def __post_init__(self) -> None:
        if self.tool_calls and self.role != "assistant":
            raise ValueError(f"Only assistant messages carry tool calls, got role={self.role}")
        if self.tool_call_id is not None and self.role != "tool":
            raise ValueError(f"Only tool messages carry a tool_call_id, got role={self.role}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        return cls(
            role=data["role"],
            content=data.get("content"),
            tool_calls=tuple(ToolCallRequest.from_dict(tc) for tc in data.get("tool_calls") or ()),
            tool_call_id=data.get("tool_call_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire form. ``content`` is always present, even when empty."""
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        return payload


@dataclass(frozen=True)
class ResponseFormat:
    schema: Any
    kind: str = "json_schema"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "json_schema": self.schema}


@dataclass(frozen=True)
class InferenceRequest:
    messages: tuple[Message, ...]
    model_name: str
    max_tokens: int
    endpoint: str
    token: str = field(repr=False)
    temperature: float | None = None
    top_p: float | None = None
    response_format: ResponseFormat | None = None
    custom_headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        # Freeze the containers so both inference modes can share the request
        object.__setattr__(self, "messages", tuple(self.messages))
        object.__setattr__(self, "custom_headers", MappingProxyType(dict(self.custom_headers)))

    def describe(self) -> dict[str, Any]:
        """Loggable view of the request without the credential."""
        return {
            "model": self.model_name,
            "endpoint": self.endpoint,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "messages": [m.to_dict() for m in self.messages],
            "response_format": self.response_format.to_dict() if self.response_format else None,
            "custom_headers": sorted(self.custom_headers),
        }


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    reasoning_tokens: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Usage:
        details = data.get("completion_tokens_details") or {}
        return cls(
            prompt_tokens=data.get("prompt_tokens") or 0,
            completion_tokens=data.get("completion_tokens") or 0,
            total_tokens=data.get("total_tokens") or 0,
            reasoning_tokens=details.get("reasoning_tokens"),
        )


@dataclass
class CompletionResult:
    """A validated chat-completion response.

    ``raw`` is the response object exactly as the transport (or the string
    re-decoding step) produced it.
    """

    raw: dict[str, Any]
    message: Message | None = None
    usage: Usage | None = None

    @classmethod
    def from_response(cls, raw: dict[str, Any]) -> CompletionResult:
        message: Message | None = None
        choices = raw.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        if isinstance(first, Mapping) and isinstance(first.get("message"), Mapping):
            data = first["message"]
            message = Message(
                role="assistant",
                content=data.get("content"),
                tool_calls=tuple(
                    ToolCallRequest.from_dict(tc) for tc in data.get("tool_calls") or ()
                ),
            )

        usage_data = raw.get("usage")
        usage = Usage.from_dict(usage_data) if isinstance(usage_data, Mapping) else None
        return cls(raw=raw, message=message, usage=usage)

    @property
    def content(self) -> str | None:
        return self.message.content if self.message else None

    @property
    def tool_calls(self) -> tuple[ToolCallRequest, ...]:
        return self.message.tool_calls if self.message else ()

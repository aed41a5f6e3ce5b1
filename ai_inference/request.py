"""Assemble an ``InferenceRequest`` from action inputs and prompt files."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Mapping

import yaml

from ai_inference.core.errors import ConfigError
from ai_inference.core.llm import InferenceRequest, Message, ResponseFormat
from ai_inference.prompt import PromptConfig
from ai_inference.utils.actions import set_secret
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

_HEADER_NAME_RE = re.compile(r"^[A-Za-z0-9-]+$")
_SENSITIVE_HEADER_WORDS = ("key", "token", "secret", "password", "auth")


def load_content_from_file_or_input(
    file_path: str | None,
    value: str | None,
    default: str | None = None,
    name: str = "prompt",
) -> str:
    """Content from a file if one is given, else the inline value, else the default."""
    if file_path:
        path = Path(file_path)
        if not path.exists():
            raise ConfigError(f"File for {name} was not found: {file_path}")
        return path.read_text(encoding="utf-8")
    if value:
        return value
    if default is not None:
        return default
    raise ConfigError(f"Neither {name}-file nor {name} was set")


def is_sensitive_header(name: str) -> bool:
    lowered = name.lower()
    return any(word in lowered for word in _SENSITIVE_HEADER_WORDS)


def parse_custom_headers(text: str | None) -> dict[str, str]:
    """Parse the ``custom-headers`` input (JSON or YAML mapping).

    Bad input is reported and ignored rather than failing the run.
    """
    if not text or not text.strip():
        return {}

    try:
        parsed = yaml.safe_load(text.strip())
    except yaml.YAMLError as e:
        log.warning("custom_headers_unparseable", error=str(e))
        return {}

    if not isinstance(parsed, dict):
        log.warning("custom_headers_not_mapping", type=type(parsed).__name__)
        return {}

    headers: dict[str, str] = {}
    for name, value in parsed.items():
        name = str(name)
        if not _HEADER_NAME_RE.match(name):
            log.warning("custom_header_invalid_name", header=name)
            continue
        string_value = value if isinstance(value, str) else json.dumps(value)
        if is_sensitive_header(name):
            set_secret(string_value)
            log.info("custom_header_added", header=name, value="***MASKED***")
        else:
            log.info("custom_header_added", header=name, value=string_value)
        headers[name] = string_value
    return headers


def build_response_format(prompt_config: PromptConfig | None) -> ResponseFormat | None:
    if prompt_config is None or prompt_config.response_format != "json_schema":
        return None
    if not prompt_config.json_schema:
        raise ConfigError('jsonSchema is required when responseFormat is "json_schema"')
    try:
        schema = json.loads(prompt_config.json_schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON schema: {e}") from e
    return ResponseFormat(schema=schema)


def build_messages(
    prompt_config: PromptConfig | None,
    system_prompt: str | None,
    prompt: str | None,
) -> tuple[Message, ...]:
    if prompt_config is not None:
        return tuple(Message(role=m.role, content=m.content) for m in prompt_config.messages)
    return (
        Message(role="system", content=system_prompt or ""),
        Message(role="user", content=prompt or ""),
    )


def build_inference_request(
    prompt_config: PromptConfig | None,
    system_prompt: str | None,
    prompt: str | None,
    model_name: str,
    max_tokens: int,
    endpoint: str,
    token: str,
    custom_headers: Mapping[str, str] | None = None,
) -> InferenceRequest:
    params = prompt_config.model_parameters if prompt_config else None
    return InferenceRequest(
        messages=build_messages(prompt_config, system_prompt, prompt),
        model_name=model_name,
        max_tokens=max_tokens,
        endpoint=endpoint,
        token=token,
        response_format=build_response_format(prompt_config),
        temperature=params.temperature if params else None,
        top_p=params.top_p if params else None,
        custom_headers=dict(custom_headers or {}),
    )

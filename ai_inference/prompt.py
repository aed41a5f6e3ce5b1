"""Prompt YAML files and ``{{variable}}`` templating."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from ai_inference.core.errors import ConfigError
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)

_NON_PRINTABLE_RE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x84\x86-\x9f\ufffe\uffff]"
    r"|[\ud800-\udbff](?![\udc00-\udfff])"
    r"|(?:[^\ud800-\udbff]|^)[\udc00-\udfff]"
)
_TEMPLATE_VAR_RE = re.compile(r"\{\{([\w.-]+)\}\}")
_PROMPT_ROLES = ("system", "user", "assistant")
_PROMPT_SUFFIXES = (".prompt.yml", ".prompt.yaml")


@dataclass
class PromptMessage:
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class ModelParameters:
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None


@dataclass
class PromptConfig:
    messages: list[PromptMessage]
    model: str | None = None
    model_parameters: ModelParameters = field(default_factory=ModelParameters)
    response_format: Literal["text", "json_schema"] | None = None
    json_schema: str | None = None


def is_prompt_yaml_file(path: str | Path) -> bool:
    return str(path).endswith(_PROMPT_SUFFIXES)


def parse_template_variables(text: str) -> dict[str, Any]:
    """Parse the ``input`` variables, a YAML mapping of name to value."""
    text = _NON_PRINTABLE_RE.sub("", text or "")
    if not text.strip():
        return {}
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse template variables: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigError("Failed to parse template variables: Template variables must be a YAML object")
    return parsed


def parse_file_template_variables(text: str) -> dict[str, str]:
    """Parse ``file_input``: a YAML mapping of name to file path.

    Each file's contents become the variable's value.
    """
    if not (text or "").strip():
        return {}
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse file template variables: {e}") from e
    if not isinstance(parsed, dict):
        raise ConfigError(
            "Failed to parse file template variables: File template variables must be a YAML object"
        )

    result: dict[str, str] = {}
    for key, value in parsed.items():
        if not isinstance(value, str):
            raise ConfigError(f"File template variable '{key}' must be a string file path")
        path = Path(value)
        if not path.exists():
            raise ConfigError(f"File for template variable '{key}' was not found: {value}")
        try:
            result[key] = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                f"Failed to read file for template variable '{key}' at path '{value}': {e}"
            ) from e
    return result


def replace_template_variables(text: str, variables: dict[str, Any]) -> str:
    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        log.warning("template_variable_missing", variable=name)
        return match.group(0)

    return _TEMPLATE_VAR_RE.sub(_sub, text)


def _number(data: dict[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"modelParameters.{key} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"modelParameters.{key} must be a number, got {value!r}") from e


def _model_parameters(data: Any) -> ModelParameters:
    if not isinstance(data, dict):
        return ModelParameters()
    return ModelParameters(
        max_tokens=_number(data, "maxTokens", int),
        temperature=_number(data, "temperature", float),
        top_p=_number(data, "topP", float),
    )


def load_prompt_file(path: str | Path, variables: dict[str, Any] | None = None) -> PromptConfig:
    """Load a ``.prompt.yml`` file and substitute template variables."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Prompt file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse prompt file: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise ConfigError('Failed to parse prompt file: Prompt file must contain a "messages" array')

    variables = variables or {}
    messages: list[PromptMessage] = []
    for item in data["messages"]:
        if not isinstance(item, dict) or not item.get("role") or not item.get("content"):
            raise ConfigError(
                'Failed to parse prompt file: Each message must have "role" and "content" properties'
            )
        if item["role"] not in _PROMPT_ROLES:
            raise ConfigError(f"Failed to parse prompt file: Invalid message role: {item['role']}")
        messages.append(
            PromptMessage(
                role=item["role"],
                content=replace_template_variables(str(item["content"]), variables),
            )
        )

    return PromptConfig(
        messages=messages,
        model=data.get("model"),
        model_parameters=_model_parameters(data.get("modelParameters")),
        response_format=data.get("responseFormat"),
        json_schema=data.get("jsonSchema"),
    )

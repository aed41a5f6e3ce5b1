"""Action inputs with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ai_inference.core.errors import ConfigError

DEFAULT_MODEL = "openai/gpt-4o"
DEFAULT_ENDPOINT = "https://models.github.ai/inference"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant"


def _action_input(name: str) -> AliasChoices:
    """Env names the runner uses for a hyphenated input (``INPUT_PROMPT-FILE``)."""
    upper = name.upper()
    return AliasChoices(f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}")


class ActionInputs(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="INPUT_",
        case_sensitive=False,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    prompt: str = ""
    prompt_file: str = Field("", validation_alias=_action_input("prompt-file"))
    input: str = ""
    file_input: str = ""
    system_prompt: str = Field("", validation_alias=_action_input("system-prompt"))
    system_prompt_file: str = Field("", validation_alias=_action_input("system-prompt-file"))
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    max_tokens: int = Field(200, gt=0, validation_alias=_action_input("max-tokens"))
    token: str = Field("", repr=False)
    github_token: str = Field("", repr=False, validation_alias="GITHUB_TOKEN")
    enable_github_mcp: bool = Field(False, validation_alias=_action_input("enable-github-mcp"))
    github_mcp_token: str = Field("", repr=False, validation_alias=_action_input("github-mcp-token"))
    github_mcp_toolsets: str = Field("", validation_alias=_action_input("github-mcp-toolsets"))
    custom_headers: str = Field("", validation_alias=_action_input("custom-headers"))
    log_level: str = Field("INFO", validation_alias=_action_input("log-level"))
    log_json: bool = Field(False, validation_alias=_action_input("log-json"))

    def resolve_token(self) -> str:
        """``GITHUB_TOKEN`` wins over the ``token`` input."""
        token = self.github_token or self.token
        if not token:
            raise ConfigError("GITHUB_TOKEN is not set")
        return token

    def resolve_mcp_token(self) -> str:
        return self.github_mcp_token or self.resolve_token()


def load_inputs(config_path: str | Path | None = None, **overrides: Any) -> ActionInputs:
    """Load inputs from the environment, optionally over a YAML file.

    Precedence: ``overrides`` (CLI flags), then environment, then YAML.
    """
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("AI_INFERENCE_CONFIG")

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file must contain a YAML mapping: {path}")
        yaml_data = {str(k).replace("-", "_"): v for k, v in loaded.items()}

    cli = {k: v for k, v in overrides.items() if v is not None}
    try:
        from_env = ActionInputs().model_dump(exclude_unset=True)
        # model_validate skips the settings sources, so env is not read twice
        return ActionInputs.model_validate({**yaml_data, **from_env, **cli})
    except ValidationError as e:
        raise ConfigError(f"Invalid action inputs: {e}") from e

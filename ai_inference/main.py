"""ai-inference entry point: wires inputs, inference and outputs together."""

from __future__ import annotations

import asyncio
import sys
from contextlib import AsyncExitStack

import click

from ai_inference.config import DEFAULT_SYSTEM_PROMPT, ActionInputs, load_inputs
from ai_inference.core.errors import ConfigError, InferenceError, ToolServerConnectionError
from ai_inference.core.inference import simple_inference
from ai_inference.core.llm import InferenceRequest
from ai_inference.core.tool_executor import mcp_inference
from ai_inference.prompt import (
    PromptConfig,
    is_prompt_yaml_file,
    load_prompt_file,
    parse_file_template_variables,
    parse_template_variables,
)
from ai_inference.request import (
    build_inference_request,
    load_content_from_file_or_input,
    parse_custom_headers,
)
from ai_inference.tools.github_mcp import connect_github_mcp
from ai_inference.utils.actions import set_output, write_response_file
from ai_inference.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_request(inputs: ActionInputs) -> InferenceRequest:
    prompt_config: PromptConfig | None = None
    system_prompt: str | None = None
    prompt: str | None = None

    if inputs.prompt_file and is_prompt_yaml_file(inputs.prompt_file):
        log.info("prompt_format", format="prompt.yml")
        variables = {
            **parse_template_variables(inputs.input),
            **parse_file_template_variables(inputs.file_input),
        }
        prompt_config = load_prompt_file(inputs.prompt_file, variables)
    else:
        log.info("prompt_format", format="legacy")
        prompt = load_content_from_file_or_input(inputs.prompt_file, inputs.prompt, name="prompt")
        system_prompt = load_content_from_file_or_input(
            inputs.system_prompt_file,
            inputs.system_prompt,
            DEFAULT_SYSTEM_PROMPT,
            name="system-prompt",
        )

    model_name = (prompt_config.model if prompt_config else None) or inputs.model
    max_tokens = inputs.max_tokens
    if prompt_config and prompt_config.model_parameters.max_tokens is not None:
        max_tokens = prompt_config.model_parameters.max_tokens

    try:
        request = build_inference_request(
            prompt_config,
            system_prompt,
            prompt,
            model_name=model_name,
            max_tokens=max_tokens,
            endpoint=inputs.endpoint,
            token=inputs.resolve_token(),
            custom_headers=parse_custom_headers(inputs.custom_headers),
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e
    log.info("inference_request", request=request.describe())
    return request


async def infer(inputs: ActionInputs, request: InferenceRequest) -> str | None:
    if not inputs.enable_github_mcp:
        return await simple_inference(request)

    token = inputs.resolve_mcp_token()
    async with AsyncExitStack() as stack:
        try:
            mcp_client = await stack.enter_async_context(
                connect_github_mcp(token, inputs.github_mcp_toolsets)
            )
        except ToolServerConnectionError as e:
            log.warning("mcp_connection_failed_falling_back", error=str(e))
            return await simple_inference(request)
        return await mcp_inference(request, mcp_client)


def _root_cause(exc: BaseException) -> BaseException:
    # Task groups inside the MCP client wrap errors raised in their scope
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


async def run(inputs: ActionInputs) -> int:
    """Run the action once. Returns the process exit code."""
    try:
        request = build_request(inputs)
        response = await infer(inputs, request)

        set_output("response", response or "")
        response_file = write_response_file(response)
        set_output("response-file", str(response_file))
    except Exception as e:
        cause = _root_cause(e)
        if not isinstance(cause, InferenceError):
            log.exception("unexpected_error")
        log.error("action_failed", error=str(cause))
        return 1
    return 0


@click.command()
@click.option("--config", "config_path", default=None, help="Path to a YAML file of action inputs")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--prompt", default=None, help="Prompt text")
@click.option("--prompt-file", default=None, help="Prompt file (.prompt.yml or plain text)")
@click.option("--model", default=None, help="Model name")
@click.option("--endpoint", default=None, help="Chat-completion endpoint base URL")
@click.option("--max-tokens", type=int, default=None, help="Maximum tokens to generate")
@click.option(
    "--enable-github-mcp/--disable-github-mcp",
    default=None,
    help="Let the model call GitHub MCP tools",
)
def cli(
    config_path: str | None,
    log_level: str | None,
    prompt: str | None,
    prompt_file: str | None,
    model: str | None,
    endpoint: str | None,
    max_tokens: int | None,
    enable_github_mcp: bool | None,
) -> None:
    """Send a prompt to an inference endpoint and publish the response."""
    try:
        inputs = load_inputs(
            config_path,
            log_level=log_level,
            prompt=prompt,
            prompt_file=prompt_file,
            model=model,
            endpoint=endpoint,
            max_tokens=max_tokens,
            enable_github_mcp=enable_github_mcp,
        )
    except ConfigError as e:
        setup_logging(github_annotations=True)
        log.error("action_failed", error=str(e))
        sys.exit(1)

    setup_logging(
        level=inputs.log_level,
        json_output=inputs.log_json,
        github_annotations=not inputs.log_json,
    )
    sys.exit(asyncio.run(run(inputs)))


if __name__ == "__main__":
    cli()

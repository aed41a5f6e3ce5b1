"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import re
import sys

import structlog


_SENSITIVE_PATTERNS = [
    re.compile(r"(token|key|secret|password|authorization)[\"']?\s*[:=]\s*[\"']?(?:Bearer\s+)?[\w\-\.]+", re.IGNORECASE),
]

# structlog level name -> workflow command understood by the Actions runner
_WORKFLOW_COMMANDS = {
    "debug": "debug",
    "warning": "warning",
    "error": "error",
    "critical": "error",
}


def _filter_sensitive(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key, value in list(event_dict.items()):
        if not isinstance(value, str):
            continue
        for pattern in _SENSITIVE_PATTERNS:
            if pattern.search(value):
                event_dict[key] = pattern.sub(r"\1=***REDACTED***", value)
    return event_dict


def _escape_command_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandRenderer:
    """Render events as GitHub Actions workflow commands.

    Debug, warning and error events become ``::debug::``, ``::warning::`` and
    ``::error::`` lines so the runner turns them into annotations; everything
    else is printed as a plain log line.
    """

    def __call__(
        self,
        _logger: structlog.types.WrappedLogger,
        _method: str,
        event_dict: structlog.types.EventDict,
    ) -> str:
        level = event_dict.pop("level", "info")
        event_dict.pop("timestamp", None)
        event_dict.pop("logger", None)
        event = str(event_dict.pop("event", ""))
        extras = " ".join(f"{k}={v}" for k, v in event_dict.items())
        line = f"{event} {extras}".strip()

        command = _WORKFLOW_COMMANDS.get(level)
        if command is None:
            return line
        return f"::{command}::{_escape_command_data(line)}"


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    github_annotations: bool = False,
) -> None:
    """Configure structlog with console, JSON or workflow-command output."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _filter_sensitive,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    elif github_annotations:
        renderer = WorkflowCommandRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # The runner reads workflow commands from stdout
    stream = sys.stdout if github_annotations else sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Quiet noisy libraries
    for name in ("httpx", "httpcore", "mcp"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

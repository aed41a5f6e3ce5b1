"""Runner plumbing: step outputs, secret masking and the response file."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from uuid import uuid4

from ai_inference.utils.logging import get_logger

log = get_logger(__name__)


def set_output(name: str, value: str) -> None:
    """Set a step output by appending to the ``$GITHUB_OUTPUT`` file."""
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        log.info("step_output", name=name, value=value)
        return

    delimiter = f"ghadelimiter_{uuid4()}"
    if delimiter in name or delimiter in value:
        raise ValueError(f"Unexpected input: output value contains the delimiter {delimiter}")

    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def set_secret(value: str) -> None:
    """Ask the runner to mask ``value`` in all subsequent log output."""
    if not value:
        return
    sys.stdout.write(f"::add-mask::{value}\n")
    sys.stdout.flush()


def write_response_file(response: str | None) -> Path:
    """Write the model response to a kept temp file for downstream steps.

    The runner removes the temp directory when the job completes.
    """
    fd, name = tempfile.mkstemp(prefix="modelResponse-", suffix=".txt")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        if response:
            f.write(response)
    return Path(name)

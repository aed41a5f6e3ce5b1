"""Utility modules for ai-inference."""

from ai_inference.utils.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]

"""
Logging utilities for the FastAPI application and the serverless proxy.

Provides a consistent logging format and a helper for keeping credentials out
of log lines.
"""

import logging
import sys
from typing import Optional

_VISIBLE_SECRET_CHARS = 10


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_secret(value: Optional[str]) -> str:
    """Return the first few characters of a credential followed by an ellipsis."""
    if not value:
        return "<empty>"
    return f"{value[:_VISIBLE_SECRET_CHARS]}..."


__all__ = ["configure_logging", "mask_secret"]

"""Logging utilities for the handover service."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: int | str = logging.INFO, stream: TextIO = sys.stderr) -> logging.Logger:
    """Configure the root logger once and return the service logger.

    Args:
        level: Logging level name or number.
        stream: Output stream for the handler.

    Returns:
        The ``handover-service`` logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_handover_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._handover_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    logger = logging.getLogger("handover-service")
    logger.setLevel(level)
    return logger


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Mask all but the first *keep_chars* characters of a secret.

    >>> mask_sensitive("abcdefghijkl", 4)
    'abcd********'
    """
    if not value:
        return ""
    if len(value) <= keep_chars * 2:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)

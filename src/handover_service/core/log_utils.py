"""Structured logging helpers for handover components.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid leaking handover codes.  The helpers ONLY
inject the following fields:

- ``code``           : The handover code (first 6 chars kept)
- ``client_id``      : Consuming or issuing client identifier
- ``correlation_id`` : Request correlation id, wired by the HTTP layer

Usage
-----
>>> from handover_service.core.log_utils import get_handover_logger
>>> log = get_handover_logger(code="Zx81abcdefgh", client_id="sentence-plan")
>>> log.info("Handover redeemed")
INFO handover-service.core code=Zx81ab client_id=sentence-plan ...

The adapter is a thin wrapper around :class:`logging.LoggerAdapter`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _HandoverLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted handover context into log records."""

    extra_keys = ("code", "client_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "code":
                extra_clean[k] = str(extra[k])[:6]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        context = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return (f"{msg} [{context}]" if context else msg), kwargs


def get_handover_logger(
    *,
    base_logger_name: str = "handover-service.core",
    code: str | None = None,
    client_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with handover context."""
    logger = logging.getLogger(base_logger_name)
    return _HandoverLoggerAdapter(
        logger,
        {"code": code, "client_id": client_id, "correlation_id": correlation_id},
    )

"""Correlation ID middleware for request tracing.

Reuses an incoming ``X-Correlation-ID`` header or mints a UUID4 hex string,
sets it in ``request.state.correlation_id`` for handlers and propagates it to
the response headers.

Secrets MUST NOT be logged. The correlation ID is not a secret.
"""

from __future__ import annotations

import logging
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_HEADER_NAME = "X-Correlation-ID"
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_logger = logging.getLogger("handover-service.correlation")


def correlation_id(request: Request) -> str:
    """Return the correlation id of *request* or ``-`` outside the middleware."""
    return getattr(request.state, "correlation_id", "-")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that attaches a per-request correlation ID."""

    def __init__(self, app, header_name: str = _HEADER_NAME) -> None:  # type: ignore[override]  # noqa: ANN001
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]  # noqa: ANN001
        incoming = request.headers.get(self.header_name)
        cid = incoming if incoming and _VALID_ID.match(incoming) else uuid.uuid4().hex
        request.state.correlation_id = cid
        _logger.debug(
            "%s %s", request.method, request.url.path, extra={"correlation_id": cid}
        )
        response = await call_next(request)
        response.headers[self.header_name] = cid
        return response

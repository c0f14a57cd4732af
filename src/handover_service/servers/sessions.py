"""Session persistence for redeemed handovers.

The browser session is Starlette's signed-cookie ``SessionMiddleware``; this
module is the only place that knows the key layout inside it.
"""

from __future__ import annotations

import logging
from typing import Final

from starlette.requests import Request

from handover_service.core.models import AuthenticationResult

_LOG = logging.getLogger("handover-service.sessions")

SESSION_KEY: Final[str] = "handover_authentication"


def bind_authentication(request: Request, result: AuthenticationResult) -> None:
    """Replace whatever the session held with *result*."""
    request.session.clear()
    request.session[SESSION_KEY] = result.to_session()


def current_authentication(request: Request) -> AuthenticationResult | None:
    """Return the authentication bound to the session, if any."""
    data = request.session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return AuthenticationResult.from_session(data)
    except (KeyError, TypeError, ValueError):
        _LOG.warning("Discarding malformed session authentication")
        request.session.pop(SESSION_KEY, None)
        return None

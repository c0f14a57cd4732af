"""HTTP endpoints for creating and using handover links.

Handlers are intentionally thin:

1. Parse and validate HTTP-layer parameters.
2. Delegate business logic to ``HandoverService`` / ``RedirectResolver``.
3. Map core errors to a Starlette ``Response``.

The base path is configurable (default: empty) so that reverse-proxies can
mount the application under arbitrary prefixes.

SECURITY NOTE
-------------
• Handover codes and bearer tokens are never logged in full.
• Unknown, expired and already-used codes all produce the same 404 body.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in INFO logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from business logic.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from handover_service.core.codes import is_well_formed_code
from handover_service.core.errors import (
    DuplicateCodeError,
    HandoverUnavailableError,
    InfrastructureError,
    InvalidRedirectError,
    InvalidRequestError,
    UnknownClientError,
)
from handover_service.core.redirects import RedirectResolver
from handover_service.core.service import HandoverService
from handover_service.servers.authz import AuthorizationError, ClientCredentialsGate
from handover_service.servers.correlation import correlation_id
from handover_service.servers.sessions import bind_authentication, current_authentication
from handover_service.utils.logging import mask_sensitive

_LOG = logging.getLogger("handover-service.routes")


def _error(payload: dict[str, str], status: int) -> JSONResponse:
    return JSONResponse(payload, status_code=status)


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def build_handover_routes(
    svc: HandoverService,
    resolver: RedirectResolver,
    gate: ClientCredentialsGate,
    *,
    default_client_id: str,
    base_path: str = "",
) -> list[Route]:
    """Return the handover endpoints mounted under *base_path*."""

    # ----- POST /handover ------------------------------------------------- #
    async def _create_handover(request: Request) -> Response:
        try:
            claims = gate.authorize(request)
        except AuthorizationError as exc:
            _LOG.info(
                "Handover creation denied status=%s correlation_id=%s",
                exc.status_code,
                correlation_id(request),
            )
            return _error(exc.to_payload(), exc.status_code)

        try:
            body = await request.json()
        except ValueError:
            return _error(InvalidRequestError("request body must be valid JSON").to_payload(), 400)

        issued_by = gate.client_id(claims)
        try:
            created = await run_in_threadpool(svc.create_handover, body, issued_by=issued_by)
        except InvalidRequestError as exc:
            return _error(exc.to_payload(), 400)
        except (InfrastructureError, DuplicateCodeError) as exc:
            _LOG.error("Handover creation failed: %s", exc, exc_info=True)
            return _error(InfrastructureError().to_payload(), 503)

        _LOG.info(
            "Handover created code=%s issued_by=%s correlation_id=%s",
            mask_sensitive(created.code, 4),
            issued_by or "-",
            correlation_id(request),
        )
        return JSONResponse(created.to_payload())

    # ----- GET /handover/{handover_code} ---------------------------------- #
    async def _use_handover(request: Request) -> Response:
        code: str = request.path_params["handover_code"]
        if not is_well_formed_code(code):
            return _error({"error": "invalid_handover_code"}, 400)

        client_id = request.query_params.get("clientId") or default_client_id
        requested = request.query_params.get("redirectUri") or None

        try:
            result = await run_in_threadpool(svc.consume_and_exchange_handover, code)
        except HandoverUnavailableError as exc:
            return _error(exc.to_payload(), 404)
        except InfrastructureError as exc:
            _LOG.error("Handover redemption failed: %s", exc, exc_info=True)
            return _error(exc.to_payload(), 503)

        # The session is established before redirect resolution; a
        # misconfigured client must not undo it.
        bind_authentication(request, result)

        try:
            origin = await run_in_threadpool(
                resolver.resolve_redirect_origin, client_id, requested
            )
        except UnknownClientError as exc:
            _LOG.warning(
                "Handover redeemed but client_id=%s is not registered correlation_id=%s",
                client_id,
                correlation_id(request),
            )
            return _error(exc.to_payload(), 400)
        except InvalidRedirectError as exc:
            _LOG.warning("Handover redeemed but redirect rejected for client_id=%s: %s", client_id, exc)
            return _error(exc.to_payload(), 400)
        except InfrastructureError as exc:
            _LOG.error("Client directory lookup failed: %s", exc, exc_info=True)
            return _error(exc.to_payload(), 503)

        _LOG.info(
            "Handover used code=%s client_id=%s correlation_id=%s",
            mask_sensitive(code, 4),
            client_id,
            correlation_id(request),
        )
        return RedirectResponse(origin, status_code=302)

    # ----- GET /session --------------------------------------------------- #
    async def _session(request: Request) -> Response:
        auth = current_authentication(request)
        if auth is None:
            return JSONResponse({"authenticated": False}, status_code=401)
        return JSONResponse({"authenticated": True, **auth.to_session()})

    return [
        Route(f"{base_path}/handover", _create_handover, methods=["POST"]),
        Route(f"{base_path}/handover/{{handover_code}}", _use_handover, methods=["GET"]),
        Route(f"{base_path}/session", _session, methods=["GET"]),
    ]

"""Starlette application setup for the handover service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from handover_service.config import HandoverConfig
from handover_service.core.redirects import (
    ClientDirectory,
    HttpClientDirectory,
    RedirectResolver,
    StaticClientDirectory,
)
from handover_service.core.service import HandoverService
from handover_service.core.store import HandoverStore, build_store
from handover_service.core.sweeper import ExpiredRecordSweeper
from handover_service.servers.authz import ClientCredentialsGate
from handover_service.servers.correlation import CorrelationIdMiddleware
from handover_service.servers.handover import build_handover_routes

logger = logging.getLogger("handover-service.server.main")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def build_directory(config: HandoverConfig) -> ClientDirectory:
    if config.client_directory_url:
        logger.info("Using remote client directory at %s", config.client_directory_url)
        return HttpClientDirectory(
            config.client_directory_url,
            timeout=config.directory_timeout_seconds,
            cache_ttl=config.directory_cache_seconds,
        )
    logger.info("Using static client directory with %d client(s)", len(config.clients))
    return StaticClientDirectory(config.clients)


def create_app(
    config: HandoverConfig | None = None,
    *,
    store: HandoverStore | None = None,
    directory: ClientDirectory | None = None,
    gate: ClientCredentialsGate | None = None,
    service: HandoverService | None = None,
) -> Starlette:
    """Build the ASGI application.

    Collaborators not passed explicitly are derived from *config* (itself read
    from the environment when omitted).
    """
    config = config or HandoverConfig.from_env()
    if service is None:
        if store is None:
            store = build_store(config.store, base_dir=config.storage_dir)
        service = HandoverService(
            store,
            ttl_seconds=config.ttl_seconds,
            link_base_url=f"{config.base_url.rstrip('/')}{config.base_path}",
        )
    resolver = RedirectResolver(directory if directory is not None else build_directory(config))
    gate = gate or ClientCredentialsGate(
        issuer=config.token_issuer,
        key=config.token_key,
        algorithms=config.token_algorithms,
    )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(
            "Handover service starting store=%s ttl=%ss default_client_id=%s",
            type(service.store).__name__,
            service.ttl_seconds,
            config.default_client_id,
        )
        sweeper: ExpiredRecordSweeper | None = None
        if config.sweep_interval_seconds > 0:
            sweeper = ExpiredRecordSweeper(
                service.store, interval_seconds=config.sweep_interval_seconds
            )
            sweeper.start()
        app.state.sweeper = sweeper
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop()
            logger.info("Handover service shutdown complete.")

    routes = [Route("/healthz", health_check, methods=["GET"], include_in_schema=False)]
    routes.extend(
        build_handover_routes(
            service,
            resolver,
            gate,
            default_client_id=config.default_client_id,
            base_path=config.base_path,
        )
    )

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(CorrelationIdMiddleware),
            Middleware(
                SessionMiddleware,
                secret_key=config.session_secret,
                session_cookie=config.session_cookie,
                https_only=config.cookie_secure,
                same_site="lax",
            ),
        ],
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.handover_service = service
    app.state.redirect_resolver = resolver
    return app

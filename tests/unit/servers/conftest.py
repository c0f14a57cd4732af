"""Shared fixtures for HTTP-layer tests."""

from __future__ import annotations

import time
from typing import Any, Callable

import jwt
import pytest
from starlette.applications import Starlette
from starlette.testclient import TestClient

from handover_service.config import HandoverConfig
from handover_service.core.clock import ManualClock
from handover_service.core.redirects import StaticClientDirectory
from handover_service.core.service import HandoverService
from handover_service.core.store import InMemoryHandoverStore
from handover_service.servers.main import create_app

ISSUER = "https://auth.example.com/auth/issuer"
TOKEN_SECRET = "test-signing-secret-with-at-least-32-bytes!"
CLIENTS = {
    "sentence-plan": ["https://sp.example.com:8443/callback?x=1"],
    "arns-ui": ["http://localhost:3000/start"],
}


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def config() -> HandoverConfig:
    return HandoverConfig(
        base_url="https://handover.example.com",
        ttl_seconds=300,
        default_client_id="sentence-plan",
        sweep_interval_seconds=0,
        clients=CLIENTS,
        session_secret="session-secret-for-tests",
        token_issuer=ISSUER,
        token_key=TOKEN_SECRET,
        token_algorithms=("HS256",),
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(time.time())


@pytest.fixture()
def service(config: HandoverConfig, clock: ManualClock) -> HandoverService:
    return HandoverService(
        InMemoryHandoverStore(clock=clock),
        ttl_seconds=config.ttl_seconds,
        link_base_url=config.base_url,
        clock=clock,
    )


@pytest.fixture()
def app(config: HandoverConfig, service: HandoverService) -> Starlette:
    return create_app(config, directory=StaticClientDirectory(CLIENTS), service=service)


@pytest.fixture()
def client(app: Starlette) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_token() -> Callable[..., str]:
    def _make(key: str = TOKEN_SECRET, **overrides: Any) -> str:
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "grant_type": "client_credentials",
            "client_id": "arns-backend",
            "sub": "arns-backend",
            "exp": int(time.time()) + 600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, key, algorithm="HS256")

    return _make


@pytest.fixture()
def auth_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}

"""End-to-end handover flow against the assembled application.

The app is built from a :class:`HandoverConfig` exactly as ``python -m
handover_service`` would build it, backed by the disk store in a temporary
directory.  Nothing leaves the process, so the tests are ``ci_safe``.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from unittest.mock import patch
from urllib.parse import urlparse

import jwt
import pytest
from starlette.testclient import TestClient

from handover_service.__main__ import main
from handover_service.config import HandoverConfig
from handover_service.core.store import DiskHandoverStore
from handover_service.servers.main import create_app

pytestmark = [pytest.mark.integration, pytest.mark.ci_safe]

ISSUER = "https://auth.example.com/auth/issuer"
SECRET = "integration-signing-secret-0123456789abcdef"


@pytest.fixture()
def config(tmp_path: Path) -> HandoverConfig:
    return HandoverConfig(
        base_url="https://handover.example.com",
        base_path="/api",
        store="disk",
        storage_dir=str(tmp_path),
        sweep_interval_seconds=0.05,
        clients={"sentence-plan": ("https://sp.example.com/start",)},
        session_secret="integration-session-secret",
        token_issuer=ISSUER,
        token_key=SECRET,
        token_algorithms=("HS256",),
    )


def _token() -> str:
    claims = {
        "iss": ISSUER,
        "grant_type": "client_credentials",
        "client_id": "arns-backend",
        "exp": int(time.time()) + 300,
    }
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_full_flow_with_disk_store(config: HandoverConfig, tmp_path: Path) -> None:
    app = create_app(config)
    assert isinstance(app.state.handover_service.store, DiskHandoverStore)

    with TestClient(app) as client:
        assert app.state.sweeper is not None and app.state.sweeper.running

        created = client.post(
            "/api/handover",
            json={"subject": "case-123", "authorities": ["ROLE_PRACTITIONER"]},
            headers={"Authorization": f"Bearer {_token()}"},
        )
        assert created.status_code == 200
        url = created.json()["url"]
        assert url.startswith("https://handover.example.com/api/handover/")
        code = urlparse(url).path.rsplit("/", 1)[-1]

        used = client.get(f"/api/handover/{code}", follow_redirects=False)
        assert used.status_code == 302
        assert used.headers["location"] == "https://sp.example.com"

        session = client.get("/api/session").json()
        assert session["authenticated"] is True
        assert session["subject"] == "case-123"
        assert session["authorities"] == ["ROLE_PRACTITIONER"]

        assert client.get(f"/api/handover/{code}", follow_redirects=False).status_code == 404

    assert not app.state.sweeper.running
    assert list((tmp_path / "claimed").glob("*.json"))
    assert not list((tmp_path / "live").glob("*.json"))


def test_second_app_instance_sees_claims(config: HandoverConfig) -> None:
    """Two processes sharing a storage directory agree on single use."""
    first = TestClient(create_app(config))
    second = TestClient(create_app(config))

    created = first.post(
        "/api/handover",
        json={"subject": "case-123"},
        headers={"Authorization": f"Bearer {_token()}"},
    )
    code = urlparse(created.json()["url"]).path.rsplit("/", 1)[-1]

    assert second.get(f"/api/handover/{code}", follow_redirects=False).status_code == 302
    assert first.get(f"/api/handover/{code}", follow_redirects=False).status_code == 404


def test_main_runs_uvicorn(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HANDOVER_STORE", "disk")
    monkeypatch.setenv("HANDOVER_STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("HANDOVER_SESSION_SECRET", "cli-session-secret")
    with patch("uvicorn.run") as run, patch(
        "handover_service.__main__.setup_logging",
        return_value=logging.getLogger("handover-service"),
    ):
        assert main(["--host", "0.0.0.0", "--port", "9000", "--log-level", "warning"]) == 0

    _, kwargs = run.call_args
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9000
    assert kwargs["log_level"] == "warning"

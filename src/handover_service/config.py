"""Environment-driven configuration for the handover service."""

from __future__ import annotations

import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from typing import Final, Mapping, Tuple

logger = logging.getLogger("handover-service.config")

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _normalise_base_path(raw: str | None) -> str:
    """Return ``""`` or a path with one leading slash and no trailing slash."""
    stripped = (raw or "").strip("/")
    return f"/{stripped}" if stripped else ""


def _env_clients(name: str) -> dict[str, tuple[str, ...]]:
    """Parse ``{"client-id": ["https://..."], ...}``; a bare string is one URI."""
    raw = _env_str(name)
    if raw is None:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} must be a JSON object: {exc}") from None
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object")

    clients: dict[str, tuple[str, ...]] = {}
    for client_id, uris in data.items():
        if isinstance(uris, str):
            uris = [uris]
        if not isinstance(uris, list) or not all(isinstance(u, str) for u in uris):
            raise ValueError(f"{name}[{client_id!r}] must be a list of URIs")
        clients[client_id] = tuple(uris)
    return clients


@dataclass(frozen=True)
class HandoverConfig:
    """Runtime settings for the handover service.

    Build from the environment with :meth:`from_env`; tests construct it
    directly.
    """

    base_url: str = "http://localhost:8080"
    base_path: str = ""
    ttl_seconds: float = 300.0
    default_client_id: str = "sentence-plan"
    store: str = "memory"
    storage_dir: str | None = None
    sweep_interval_seconds: float = 60.0
    clients: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    client_directory_url: str | None = None
    directory_timeout_seconds: float = 5.0
    directory_cache_seconds: float = 300.0
    session_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    session_cookie: str = "handover_session"
    cookie_secure: bool = False
    token_issuer: str | None = None
    token_key: str | None = None
    token_algorithms: tuple[str, ...] = ("RS256",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "HandoverConfig":
        session_secret = _env_str("HANDOVER_SESSION_SECRET")
        if not session_secret:
            # Suitable only for single-instance dev setups
            session_secret = secrets.token_urlsafe(32)
            logger.warning(
                "Environment variable HANDOVER_SESSION_SECRET not set; generated "
                "transient secret. Sessions will break after process restart."
            )

        ttl = _env_float("HANDOVER_TTL_SECONDS", 300.0)
        if ttl <= 0:
            raise ValueError("HANDOVER_TTL_SECONDS must be positive")

        algorithms = tuple(
            a.strip()
            for a in (_env_str("HANDOVER_TOKEN_ALGORITHMS", "RS256") or "").split(",")
            if a.strip()
        )

        return cls(
            base_url=_env_str("HANDOVER_BASE_URL", cls.base_url) or cls.base_url,
            base_path=_normalise_base_path(_env_str("HANDOVER_BASE_PATH")),
            ttl_seconds=ttl,
            default_client_id=_env_str("HANDOVER_DEFAULT_CLIENT_ID", cls.default_client_id)
            or cls.default_client_id,
            store=(_env_str("HANDOVER_STORE", "memory") or "memory").lower(),
            storage_dir=_env_str("HANDOVER_STORAGE_DIR"),
            sweep_interval_seconds=_env_float("HANDOVER_SWEEP_INTERVAL_SECONDS", 60.0),
            clients=_env_clients("HANDOVER_CLIENTS"),
            client_directory_url=_env_str("HANDOVER_CLIENT_DIRECTORY_URL"),
            directory_timeout_seconds=_env_float("HANDOVER_DIRECTORY_TIMEOUT_SECONDS", 5.0),
            directory_cache_seconds=_env_float("HANDOVER_DIRECTORY_CACHE_SECONDS", 300.0),
            session_secret=session_secret,
            session_cookie=_env_str("HANDOVER_SESSION_COOKIE", "handover_session")
            or "handover_session",
            cookie_secure=_truthy(os.getenv("HANDOVER_COOKIE_SECURE")),
            token_issuer=_env_str("HANDOVER_TOKEN_ISSUER"),
            token_key=_env_str("HANDOVER_TOKEN_KEY"),
            token_algorithms=algorithms or ("RS256",),
            log_level=_env_str("HANDOVER_LOG_LEVEL", "INFO") or "INFO",
        )

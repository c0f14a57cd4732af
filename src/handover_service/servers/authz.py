"""Client-credentials precondition for handover creation.

Only a machine client holding a token from the trusted authority, obtained via
the client-credentials grant, may create handovers.  The gate decodes the
bearer token with PyJWT and then checks two claims:

* ``iss`` equals the configured issuer
* ``grant_type`` equals ``client_credentials``

Failures map to ``401`` (no usable token) or ``403`` (valid token, wrong
issuer or grant).  With no issuer or verification key configured every
request is refused.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import jwt
from starlette.requests import Request

from handover_service.utils.logging import mask_sensitive

_LOG = logging.getLogger("handover-service.authz")


class AuthorizationError(Exception):
    """Raised when the client-credentials precondition does not hold."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_payload(self) -> dict[str, str]:
        error = "unauthorized" if self.status_code == 401 else "forbidden"
        return {"error": error, "message": str(self)}


def _bearer_token(header_val: str | None) -> str:
    if not header_val or not header_val.strip():
        raise AuthorizationError(401, "Unauthorized: Missing Authorization header")
    if not header_val.startswith("Bearer "):
        scheme = header_val.split(" ", 1)[0]
        _LOG.warning("Unsupported Authorization type: %s", scheme)
        raise AuthorizationError(401, "Unauthorized: Only 'Bearer <token>' is supported")
    token = header_val[7:].strip()
    if not token:
        raise AuthorizationError(401, "Unauthorized: Empty Bearer token")
    return token


class ClientCredentialsGate:
    """Verify that a request carries a client-credentials token."""

    def __init__(
        self,
        *,
        issuer: str | None,
        key: str | None,
        algorithms: Sequence[str] = ("RS256",),
        leeway: float = 30.0,
    ) -> None:
        self.issuer = issuer
        self.key = key
        self.algorithms = list(algorithms)
        self.leeway = leeway
        if not key or not issuer:
            _LOG.warning("Token issuer or key not configured; handover creation is disabled")

    def decode(self, token: str) -> dict[str, Any]:
        if not self.key or not self.issuer:
            raise AuthorizationError(401, "Unauthorized: token verification not configured")
        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                leeway=self.leeway,
                options={"require": ["exp"], "verify_aud": False},
            )
        except jwt.InvalidTokenError as exc:
            _LOG.info("Rejected bearer token ...%s: %s", mask_sensitive(token[-8:], 2), exc)
            raise AuthorizationError(401, "Unauthorized: Invalid token") from None
        return dict(claims)

    def authorize(self, request: Request) -> dict[str, Any]:
        """Return the verified claims of *request* or raise :class:`AuthorizationError`."""
        claims = self.decode(_bearer_token(request.headers.get("authorization")))
        if claims.get("iss") != self.issuer:
            raise AuthorizationError(403, "Forbidden: token not issued by the trusted authority")
        if claims.get("grant_type") != "client_credentials":
            raise AuthorizationError(403, "Forbidden: client credentials grant required")
        return claims

    @staticmethod
    def client_id(claims: dict[str, Any]) -> str | None:
        value = claims.get("client_id") or claims.get("sub")
        return str(value) if value else None

"""Single-use handover links between trusted services."""

from __future__ import annotations

__version__ = "0.1.0"

from .core import (  # noqa: E402, F401
    AuthenticationResult,
    HandoverRequest,
    HandoverService,
    RedirectResolver,
)

__all__ = [
    "__version__",
    "AuthenticationResult",
    "HandoverRequest",
    "HandoverService",
    "RedirectResolver",
]

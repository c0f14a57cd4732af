"""Handover core package.

This namespace hosts the **HTTP-agnostic** building blocks of the handover
lifecycle: issuing a single-use code bound to an authentication payload,
storing it with an expiry, claiming it exactly once, and resolving where the
browser goes afterwards.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
codes
    Unguessable code generation and format checks.
models
    Immutable dataclasses for requests, records and results.
store
    Stores with atomic consume-once semantics.
sweeper
    Background eviction of expired records.
service
    ``HandoverService`` orchestrating creation and redemption.
redirects
    Client directory and redirect-origin resolution.
errors
    Exception types used by the core.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, ManualClock, default_clock  # noqa: F401
from .codes import generate_code, is_well_formed_code  # noqa: F401
from .errors import (  # noqa: F401
    AlreadyConsumedError,
    DirectoryUnavailableError,
    DuplicateCodeError,
    ExpiredError,
    HandoverError,
    HandoverUnavailableError,
    InfrastructureError,
    InvalidRedirectError,
    InvalidRequestError,
    NotFoundError,
    StoreUnavailableError,
    UnknownClientError,
)
from .log_utils import get_handover_logger  # noqa: F401
from .models import (  # noqa: F401
    AuthenticationResult,
    CreateHandoverLinkResponse,
    HandoverPayload,
    HandoverRecord,
    HandoverRequest,
    HandoverState,
)
from .redirects import (  # noqa: F401
    ClientDirectory,
    HttpClientDirectory,
    RedirectResolver,
    StaticClientDirectory,
    origin_of,
)
from .service import HandoverService  # noqa: F401
from .store import (  # noqa: F401
    DiskHandoverStore,
    HandoverStore,
    InMemoryHandoverStore,
    build_store,
    default_store,
)
from .sweeper import ExpiredRecordSweeper  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "ManualClock",
    "default_clock",
    # codes
    "generate_code",
    "is_well_formed_code",
    # errors
    "HandoverError",
    "InvalidRequestError",
    "HandoverUnavailableError",
    "NotFoundError",
    "ExpiredError",
    "AlreadyConsumedError",
    "DuplicateCodeError",
    "UnknownClientError",
    "InvalidRedirectError",
    "InfrastructureError",
    "StoreUnavailableError",
    "DirectoryUnavailableError",
    # models
    "HandoverRequest",
    "HandoverPayload",
    "HandoverRecord",
    "HandoverState",
    "CreateHandoverLinkResponse",
    "AuthenticationResult",
    # store
    "HandoverStore",
    "InMemoryHandoverStore",
    "DiskHandoverStore",
    "build_store",
    "default_store",
    "ExpiredRecordSweeper",
    # service
    "HandoverService",
    # redirects
    "ClientDirectory",
    "StaticClientDirectory",
    "HttpClientDirectory",
    "RedirectResolver",
    "origin_of",
    # logging helpers
    "get_handover_logger",
]

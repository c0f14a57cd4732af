"""HandoverService: creation and redemption of handover codes.

Handlers in ``handover_service.servers.handover`` call the two façade methods
below.  The service assumes the caller of :meth:`create_handover` has already
passed the client-credentials check; it never inspects tokens itself.

Redemption returns an :class:`AuthenticationResult` **value**.  Binding it to a
browser session is the HTTP layer's job, so no ambient "current user" state
exists anywhere in the core.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Final, Mapping

from handover_service.core.clock import Clock, default_clock
from handover_service.core.codes import generate_code
from handover_service.core.errors import DuplicateCodeError, HandoverUnavailableError
from handover_service.core.log_utils import get_handover_logger
from handover_service.core.models import (
    AuthenticationResult,
    CreateHandoverLinkResponse,
    HandoverPayload,
    HandoverRecord,
    HandoverRequest,
)
from handover_service.core.store import HandoverStore, default_store

_LOG = logging.getLogger("handover-service.core.service")

DEFAULT_TTL_SECONDS: Final[int] = 300


class HandoverService:
    """Application service orchestrating the handover-code lifecycle."""

    def __init__(
        self,
        store: HandoverStore | None = None,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        link_base_url: str = "http://localhost:8080",
        link_path: str = "/handover",
        clock: Clock = default_clock,
        code_factory: Callable[[], str] = generate_code,
        max_code_attempts: int = 5,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_code_attempts < 1:
            raise ValueError("max_code_attempts must be at least 1")
        self.store = store if store is not None else default_store()
        self.ttl_seconds = ttl_seconds
        self._link_prefix = f"{link_base_url.rstrip('/')}/{link_path.strip('/')}"
        self._clock = clock
        self._code_factory = code_factory
        self._max_code_attempts = max_code_attempts

    # ------------------------------------------------------------------ #
    # Public API called by HTTP handlers                                 #
    # ------------------------------------------------------------------ #
    def link_for(self, code: str) -> str:
        return f"{self._link_prefix}/{code}"

    def create_handover(
        self,
        request: HandoverRequest | Mapping[str, Any],
        *,
        issued_by: str | None = None,
    ) -> CreateHandoverLinkResponse:
        """Persist a new single-use code for *request* and return its link.

        Raises
        ------
        InvalidRequestError
            If *request* is a mapping that does not describe a valid request.
        DuplicateCodeError
            Only if every one of ``max_code_attempts`` generated codes collided.
        """
        if not isinstance(request, HandoverRequest):
            request = HandoverRequest.from_mapping(request)
        payload = HandoverPayload.from_request(request, issued_by=issued_by)

        for attempt in range(1, self._max_code_attempts + 1):
            code = self._code_factory()
            now = self._clock()
            record = HandoverRecord(
                code=code,
                payload=payload,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
            try:
                self.store.put(record)
            except DuplicateCodeError:
                _LOG.warning("Handover code collision on attempt %d; regenerating", attempt)
                if attempt == self._max_code_attempts:
                    raise
                continue
            get_handover_logger(
                base_logger_name="handover-service.core.service",
                code=code,
                client_id=issued_by,
            ).info("Created handover (expires in %ss)", self.ttl_seconds)
            return CreateHandoverLinkResponse(
                url=self.link_for(code), code=code, expires_at=record.expires_at
            )
        raise AssertionError("unreachable")  # pragma: no cover

    def consume_and_exchange_handover(self, code: str) -> AuthenticationResult:
        """Claim *code* and turn its payload into an authentication result.

        Succeeds at most once per code.  Claim failures propagate unchanged;
        the HTTP layer maps all of them to the same "not found" response.
        """
        log = get_handover_logger(
            base_logger_name="handover-service.core.service", code=code
        )
        try:
            record = self.store.claim(code)
        except HandoverUnavailableError as exc:
            log.info("Handover redemption refused: %s", exc.__class__.__name__)
            raise
        result = AuthenticationResult.from_payload(record.payload, now=self._clock())
        log.info("Handover redeemed for issued_by=%s", record.payload.issued_by or "-")
        return result

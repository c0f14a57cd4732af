"""Exception types raised by the handover core.

Only lightweight, **data-carrying** exceptions live here so that web/CLI layers
can transform them into HTTP responses.  The core never builds a transport
response itself.

The three redemption failures (:class:`NotFoundError`, :class:`ExpiredError`,
:class:`AlreadyConsumedError`) share one public payload.  They stay distinct
types for logging only; a caller must not be able to tell an expired code from
a used or fabricated one.
"""

from __future__ import annotations


class HandoverError(RuntimeError):
    """Base class for every error raised by the handover core."""

    code: str = "handover_error"
    default_message: str = "Handover failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


class InvalidRequestError(HandoverError):
    """Malformed creation input. Never retried."""

    code = "invalid_request"
    default_message = "Invalid handover request."

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field: str | None = field

    def to_payload(self) -> dict[str, str]:
        payload = super().to_payload()
        if self.field:
            payload["field"] = self.field
        return payload


class HandoverUnavailableError(HandoverError):
    """The handover link cannot be used (unknown, expired or already used)."""

    code = "handover_link_not_found"
    default_message = "Handover link not found."

    def to_payload(self) -> dict[str, str]:
        # Same body for every subclass; str(self) carries the internal reason.
        return {"error": HandoverUnavailableError.code, "message": HandoverUnavailableError.default_message}


class NotFoundError(HandoverUnavailableError):
    """No record exists for the code."""

    default_message = "No handover exists for this code."


class ExpiredError(HandoverUnavailableError):
    """The record exists but its expiry has passed."""

    default_message = "Handover code has expired."


class AlreadyConsumedError(HandoverUnavailableError):
    """The record was claimed by an earlier redemption."""

    default_message = "Handover code has already been used."


class DuplicateCodeError(HandoverError):
    """A store already holds a record for the generated code."""

    code = "duplicate_code"
    default_message = "Handover code already exists."


class UnknownClientError(HandoverError):
    """The consuming client is not registered; no redirect can be issued."""

    code = "unknown_client"
    default_message = "Client is not registered."

    def __init__(self, client_id: str, message: str | None = None) -> None:
        super().__init__(message)
        self.client_id: str = client_id

    def to_payload(self) -> dict[str, str]:
        payload = super().to_payload()
        payload["client_id"] = self.client_id
        return payload


class InvalidRedirectError(HandoverError):
    """A registered or requested redirect URI cannot be used."""

    code = "invalid_redirect"
    default_message = "Redirect URI is not usable."


class InfrastructureError(HandoverError):
    """A backing resource failed. Never conflated with "not found"."""

    code = "service_unavailable"
    default_message = "Handover service temporarily unavailable."


class StoreUnavailableError(InfrastructureError):
    """The handover store could not be read or written."""

    default_message = "Handover store unavailable."


class DirectoryUnavailableError(InfrastructureError):
    """The registered-client directory could not be reached."""

    default_message = "Client directory unavailable."

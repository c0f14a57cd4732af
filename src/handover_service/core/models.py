"""Typed, immutable records used by the handover core."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Mapping

from handover_service.core.clock import Clock, default_clock
from handover_service.core.errors import InvalidRequestError

_MAX_SUBJECT_LEN: Final[int] = 256
# Redeemed payloads live in a signed session cookie, which browsers cap at 4 KiB.
_MAX_PAYLOAD_BYTES: Final[int] = 2048


def _freeze(attributes: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(attributes or {}))


def _parse_authorities(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise InvalidRequestError("authorities must be a list of strings", field="authorities")
    seen: list[str] = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise InvalidRequestError(
                "authorities must be non-empty strings", field="authorities"
            )
        value = item.strip()
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _attributes_or_empty(raw: Any) -> Any:
    return {} if raw is None else raw


def _check_payload_size(
    subject: str, authorities: tuple[str, ...], attributes: Mapping[str, Any]
) -> None:
    try:
        encoded = json.dumps(
            {"subject": subject, "authorities": authorities, "attributes": dict(attributes)},
            separators=(",", ":"),
        )
    except (TypeError, ValueError):
        raise InvalidRequestError(
            "attributes must be JSON-serialisable", field="attributes"
        ) from None
    if len(encoded.encode("utf-8")) > _MAX_PAYLOAD_BYTES:
        raise InvalidRequestError(
            f"handover payload must be at most {_MAX_PAYLOAD_BYTES} bytes when serialised"
        )


@dataclass(frozen=True, slots=True)
class HandoverRequest:
    """Input to handover creation. Immutable once accepted."""

    subject: str
    authorities: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.subject, str) or not self.subject.strip():
            raise InvalidRequestError("subject must be a non-empty string", field="subject")
        if len(self.subject) > _MAX_SUBJECT_LEN:
            raise InvalidRequestError(
                f"subject must be at most {_MAX_SUBJECT_LEN} characters", field="subject"
            )
        if not isinstance(self.attributes, Mapping) or not all(
            isinstance(k, str) for k in self.attributes
        ):
            raise InvalidRequestError(
                "attributes must be an object with string keys", field="attributes"
            )
        object.__setattr__(self, "subject", self.subject.strip())
        object.__setattr__(self, "authorities", _parse_authorities(self.authorities))
        object.__setattr__(self, "attributes", _freeze(self.attributes))
        _check_payload_size(self.subject, self.authorities, self.attributes)

    @classmethod
    def from_mapping(cls, data: Any) -> "HandoverRequest":
        """Build a request from a decoded JSON body.

        Raises
        ------
        InvalidRequestError
            If *data* is not an object or any field is malformed.
        """
        if not isinstance(data, Mapping):
            raise InvalidRequestError("request body must be a JSON object")
        return cls(
            subject=data.get("subject"),  # type: ignore[arg-type]
            authorities=data.get("authorities"),  # type: ignore[arg-type]
            attributes=_attributes_or_empty(data.get("attributes")),
        )


@dataclass(frozen=True, slots=True)
class HandoverPayload:
    """What a redeemed code turns into: identity plus granted authorities."""

    subject: str
    authorities: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)
    issued_by: str | None = None

    @classmethod
    def from_request(
        cls, request: HandoverRequest, *, issued_by: str | None = None
    ) -> "HandoverPayload":
        return cls(
            subject=request.subject,
            authorities=request.authorities,
            attributes=_freeze(request.attributes),
            issued_by=issued_by,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "authorities": list(self.authorities),
            "attributes": dict(self.attributes),
            "issued_by": self.issued_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HandoverPayload":
        return cls(
            subject=data["subject"],
            authorities=tuple(data.get("authorities") or ()),
            attributes=_freeze(data.get("attributes")),
            issued_by=data.get("issued_by"),
        )


class HandoverState(str, Enum):
    """Stored state of a handover record.

    ``EXPIRED`` is never stored; it is derived from the clock.
    """

    CREATED = "created"
    CLAIMED = "claimed"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class HandoverRecord:
    """The persisted unit: one code bound to one payload."""

    code: str
    payload: HandoverPayload
    created_at: float
    expires_at: float
    state: HandoverState = HandoverState.CREATED
    claimed_at: float | None = None

    @property
    def consumed(self) -> bool:
        return self.state is HandoverState.CLAIMED

    def is_expired(self, now: float | None = None, *, clock: Clock = default_clock) -> bool:
        """Return *True* once the expiry timestamp has been reached."""
        return (clock() if now is None else now) >= self.expires_at

    def state_at(self, now: float) -> HandoverState:
        """Effective state at *now*; claimed wins over expired."""
        if self.consumed:
            return HandoverState.CLAIMED
        if self.is_expired(now):
            return HandoverState.EXPIRED
        return HandoverState.CREATED

    def claimed(self, now: float) -> "HandoverRecord":
        """Return a claimed copy. A record can be claimed exactly once."""
        if self.consumed:
            raise ValueError("handover record already claimed")
        return dataclasses.replace(self, state=HandoverState.CLAIMED, claimed_at=now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "payload": self.payload.to_dict(),
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "state": self.state.value,
            "claimed_at": self.claimed_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HandoverRecord":
        return cls(
            code=data["code"],
            payload=HandoverPayload.from_dict(data["payload"]),
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
            state=HandoverState(data.get("state", HandoverState.CREATED.value)),
            claimed_at=data.get("claimed_at"),
        )


@dataclass(frozen=True, slots=True)
class CreateHandoverLinkResponse:
    """Result of handover creation. Only ``url`` leaves the service."""

    url: str
    code: str
    expires_at: float

    def to_payload(self) -> dict[str, str]:
        return {"url": self.url}


@dataclass(frozen=True, slots=True)
class AuthenticationResult:
    """Authenticated identity materialised from a redeemed handover."""

    subject: str
    authorities: tuple[str, ...]
    attributes: Mapping[str, Any]
    authenticated_at: float
    issued_by: str | None = None

    @classmethod
    def from_payload(cls, payload: HandoverPayload, *, now: float) -> "AuthenticationResult":
        return cls(
            subject=payload.subject,
            authorities=payload.authorities,
            attributes=payload.attributes,
            authenticated_at=now,
            issued_by=payload.issued_by,
        )

    def to_session(self) -> dict[str, Any]:
        """JSON-safe form for a session collaborator."""
        return {
            "subject": self.subject,
            "authorities": list(self.authorities),
            "attributes": dict(self.attributes),
            "authenticated_at": self.authenticated_at,
            "issued_by": self.issued_by,
        }

    @classmethod
    def from_session(cls, data: Mapping[str, Any]) -> "AuthenticationResult":
        return cls(
            subject=data["subject"],
            authorities=tuple(data.get("authorities") or ()),
            attributes=_freeze(data.get("attributes")),
            authenticated_at=float(data["authenticated_at"]),
            issued_by=data.get("issued_by"),
        )

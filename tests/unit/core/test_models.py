"""Unit tests for request validation and record state transitions."""

from __future__ import annotations

import pytest

from handover_service.core.errors import InvalidRequestError
from handover_service.core.models import (
    AuthenticationResult,
    HandoverPayload,
    HandoverRecord,
    HandoverRequest,
    HandoverState,
)


# --------------------------------------------------------------------------- #
# HandoverRequest                                                             #
# --------------------------------------------------------------------------- #
def test_request_from_mapping_normalises_fields() -> None:
    req = HandoverRequest.from_mapping(
        {
            "subject": "  case-123 ",
            "authorities": ["ROLE_PRACTITIONER", "ROLE_PRACTITIONER", "ROLE_READ"],
            "attributes": {"displayName": "Pat Example"},
        }
    )
    assert req.subject == "case-123"
    assert req.authorities == ("ROLE_PRACTITIONER", "ROLE_READ")
    assert req.attributes["displayName"] == "Pat Example"


@pytest.mark.parametrize(
    "body,field",
    [
        ({}, "subject"),
        ({"subject": ""}, "subject"),
        ({"subject": "   "}, "subject"),
        ({"subject": 42}, "subject"),
        ({"subject": "x" * 257}, "subject"),
        ({"subject": "s", "authorities": "ROLE_A"}, "authorities"),
        ({"subject": "s", "authorities": [""]}, "authorities"),
        ({"subject": "s", "authorities": [1]}, "authorities"),
        ({"subject": "s", "attributes": ["not", "a", "map"]}, "attributes"),
        ({"subject": "s", "attributes": []}, "attributes"),
        ({"subject": "s", "attributes": False}, "attributes"),
        ({"subject": "s", "attributes": 0}, "attributes"),
        ({"subject": "s", "attributes": ""}, "attributes"),
        ({"subject": "s", "attributes": {"when": object()}}, "attributes"),
    ],
)
def test_request_from_mapping_rejects_malformed(body: dict, field: str) -> None:
    with pytest.raises(InvalidRequestError) as excinfo:
        HandoverRequest.from_mapping(body)
    assert excinfo.value.field == field
    assert excinfo.value.to_payload()["field"] == field


def test_request_from_mapping_rejects_non_object() -> None:
    with pytest.raises(InvalidRequestError):
        HandoverRequest.from_mapping(["subject", "case-123"])


def test_request_from_mapping_null_attributes_are_empty() -> None:
    req = HandoverRequest.from_mapping({"subject": "s", "attributes": None})
    assert dict(req.attributes) == {}


def test_request_payload_must_fit_in_a_session_cookie() -> None:
    HandoverRequest(subject="s", attributes={"blob": "x" * 1500})
    with pytest.raises(InvalidRequestError, match="at most 2048 bytes"):
        HandoverRequest(subject="s", attributes={"blob": "x" * 6000})
    with pytest.raises(InvalidRequestError):
        HandoverRequest(subject="s", authorities=tuple(f"ROLE_{i:04d}" for i in range(300)))


def test_request_attributes_are_read_only() -> None:
    req = HandoverRequest(subject="case-123", attributes={"a": 1})
    with pytest.raises(TypeError):
        req.attributes["b"] = 2  # type: ignore[index]


# --------------------------------------------------------------------------- #
# HandoverRecord                                                              #
# --------------------------------------------------------------------------- #
def _record(**overrides) -> HandoverRecord:
    values = {
        "code": "c1",
        "payload": HandoverPayload(subject="case-123", authorities=("ROLE_A",)),
        "created_at": 1000.0,
        "expires_at": 1300.0,
    }
    values.update(overrides)
    return HandoverRecord(**values)


def test_record_state_at() -> None:
    rec = _record()
    assert rec.state_at(1299.9) is HandoverState.CREATED
    assert rec.state_at(1300.0) is HandoverState.EXPIRED
    assert rec.claimed(1100.0).state_at(2000.0) is HandoverState.CLAIMED


def test_record_is_expired_with_fake_clock() -> None:
    rec = _record()
    assert rec.is_expired(clock=lambda: 1299.0) is False
    assert rec.is_expired(clock=lambda: 1300.0) is True
    assert rec.is_expired(1299.9) is False
    assert rec.is_expired(1300.0) is True


def test_record_claim_is_one_way() -> None:
    rec = _record()
    claimed = rec.claimed(1100.0)
    assert claimed.consumed and claimed.claimed_at == 1100.0
    assert not rec.consumed  # original untouched
    with pytest.raises(ValueError):
        claimed.claimed(1200.0)


def test_record_dict_round_trip_keeps_state() -> None:
    rec = _record().claimed(1100.0)
    assert HandoverRecord.from_dict(rec.to_dict()) == rec


# --------------------------------------------------------------------------- #
# AuthenticationResult                                                        #
# --------------------------------------------------------------------------- #
def test_authentication_result_from_payload_and_session() -> None:
    payload = HandoverPayload(
        subject="case-123",
        authorities=("ROLE_A",),
        attributes={"displayName": "Pat"},
        issued_by="arns-client",
    )
    result = AuthenticationResult.from_payload(payload, now=1200.0)
    session = result.to_session()
    assert session == {
        "subject": "case-123",
        "authorities": ["ROLE_A"],
        "attributes": {"displayName": "Pat"},
        "authenticated_at": 1200.0,
        "issued_by": "arns-client",
    }
    assert AuthenticationResult.from_session(session) == result

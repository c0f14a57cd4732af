"""Tests for the whitelisting handover LoggerAdapter."""

from __future__ import annotations

import logging

import pytest

from handover_service.core.log_utils import get_handover_logger


def test_code_is_truncated_and_context_appended(caplog: pytest.LogCaptureFixture) -> None:
    log = get_handover_logger(code="Zx81abcdefghijkl", client_id="sentence-plan")
    with caplog.at_level(logging.INFO, logger="handover-service.core"):
        log.info("Handover redeemed")

    record = caplog.records[-1]
    assert record.code == "Zx81ab"
    assert record.client_id == "sentence-plan"
    assert "Zx81abcdefghijkl" not in caplog.text
    assert record.getMessage() == "Handover redeemed [code=Zx81ab client_id=sentence-plan]"


def test_missing_fields_are_omitted(caplog: pytest.LogCaptureFixture) -> None:
    log = get_handover_logger(base_logger_name="handover-service.test")
    with caplog.at_level(logging.INFO, logger="handover-service.test"):
        log.info("plain")
    assert caplog.records[-1].getMessage() == "plain"
    assert not hasattr(caplog.records[-1], "code")

"""Tests for logging helpers."""

from __future__ import annotations

import io
import logging

import pytest

from handover_service.utils.logging import mask_sensitive, setup_logging


@pytest.mark.parametrize(
    "value,keep,expected",
    [
        (None, 4, ""),
        ("", 4, ""),
        ("short", 4, "*****"),
        ("abcdefghijkl", 4, "abcd********"),
        ("abcdefghijkl", 2, "ab**********"),
    ],
)
def test_mask_sensitive(value: str | None, keep: int, expected: str) -> None:
    assert mask_sensitive(value, keep) == expected


def test_setup_logging_installs_one_handler() -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    stream = io.StringIO()
    try:
        logger = setup_logging("debug", stream)
        setup_logging("debug", stream)
        added = [h for h in root.handlers if h not in before]
        assert len(added) <= 1
        assert logger.name == "handover-service"
        assert logger.level == logging.DEBUG
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
        logging.getLogger("handover-service").setLevel(logging.NOTSET)

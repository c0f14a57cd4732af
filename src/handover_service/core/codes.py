"""Handover code generation.

A handover code is the only secret that travels through the browser, so it is
drawn from :mod:`secrets` and encoded URL-safe without padding.  The default
of 32 random bytes gives 256 bits of entropy; anything below 16 bytes is
refused.

This module intentionally performs **no logging** of generated codes.
"""

from __future__ import annotations

import re
import secrets
from typing import Final

_DEFAULT_BYTES: Final[int] = 32
_MIN_BYTES: Final[int] = 16
_MAX_CODE_LEN: Final[int] = 128
_CODE_RE: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_-]+")


def generate_code(num_bytes: int = _DEFAULT_BYTES) -> str:
    """Generate an unguessable, URL-safe handover code.

    Parameters
    ----------
    num_bytes:
        Random bytes to draw (default 32, minimum 16).

    Returns
    -------
    str
        Base64url-encoded random string without padding.
    """
    if num_bytes < _MIN_BYTES:
        raise ValueError(f"handover codes need at least {_MIN_BYTES} random bytes")
    return secrets.token_urlsafe(num_bytes)


def is_well_formed_code(code: str | None) -> bool:
    """Return *True* if *code* could have been produced by :func:`generate_code`.

    Only the alphabet and length are checked.  A well-formed code may still be
    unknown to the store.
    """
    if not code or len(code) > _MAX_CODE_LEN:
        return False
    return _CODE_RE.fullmatch(code) is not None

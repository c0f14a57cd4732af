"""Clock abstraction for testable time handling in the handover core.

This module defines a `Clock` protocol representing callables that return the
current UNIX timestamp as ``float``.  Expiry decisions inside the core package
MUST depend on an injected ``Clock`` instance rather than calling
``time.time()`` directly, so tests can freeze or advance time.

Example
-------
>>> from handover_service.core.clock import default_clock
>>> now = default_clock()
>>> isinstance(now, float)
True
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``."""
    return time.time()


class ManualClock:
    """Settable clock for tests and simulations.

    >>> clock = ManualClock(1000.0)
    >>> clock.advance(30)
    >>> clock()
    1030.0
    """

    def __init__(self, now: float = 0.0) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

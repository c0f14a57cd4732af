"""Background eviction of terminal handover records.

Eviction is a memory/disk footprint optimisation only: correctness never
depends on it, because :meth:`HandoverStore.claim` checks expiry itself.
"""

from __future__ import annotations

import logging
import threading

from handover_service.core.store import HandoverStore

_LOG = logging.getLogger("handover-service.core.sweeper")


class ExpiredRecordSweeper:
    """Daemon thread calling ``store.evict_expired()`` on a fixed interval."""

    def __init__(self, store: HandoverStore, *, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("sweep interval must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """Run a single sweep; errors are logged, never raised."""
        try:
            removed = self.store.evict_expired()
        except Exception:  # noqa: BLE001
            _LOG.exception("Expired-record sweep failed")
            return 0
        if removed:
            _LOG.debug("Evicted %d expired handover record(s)", removed)
        return removed

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="handover-sweeper", daemon=True
        )
        self._thread.start()
        _LOG.info("Started expired-record sweeper (interval=%ss)", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        _LOG.info("Stopped expired-record sweeper")

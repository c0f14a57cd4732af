"""Concurrency-safe storage for handover records.

This module introduces a *narrow* persistence interface
(:class:`HandoverStore`) and two implementations:

* :class:`InMemoryHandoverStore`: a dict guarded by one lock.  Records are
  immutable and swapped wholesale, so the claim is a compare-and-swap inside
  the critical section.  Sufficient for a single-instance deployment.
* :class:`DiskHandoverStore`: JSON files shared by several worker processes.
  Claiming is an atomic ``os.replace`` from ``live/`` to ``claimed/``; the
  loser of a race finds the source gone.

Both guarantee at-most-once claim under arbitrary interleaving, and both run
:meth:`HandoverStore.evict_expired` through the same primitive as the claim so
a sweep never removes a record another thread is validating.

Environment variables
---------------------
HANDOVER_STORE
    ``memory`` (default) or ``disk``; selects :func:`default_store`.
HANDOVER_STORAGE_DIR
    Base directory for :class:`DiskHandoverStore`.
    Defaults to ``~/.handover-service/store`` when unset.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from hashlib import sha256
from pathlib import Path
from typing import Protocol, runtime_checkable

from handover_service.core.clock import Clock, default_clock
from handover_service.core.errors import (
    AlreadyConsumedError,
    DuplicateCodeError,
    ExpiredError,
    NotFoundError,
    StoreUnavailableError,
)
from handover_service.core.models import HandoverRecord, HandoverState

_LOG = logging.getLogger("handover-service.core.store")

# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class HandoverStore(Protocol):
    """Minimal persistence contract for handover records."""

    def put(self, record: HandoverRecord) -> None: ...
    def get(self, code: str) -> HandoverRecord | None: ...
    def claim(self, code: str) -> HandoverRecord: ...
    def evict_expired(self) -> int: ...


def _check_claimable(record: HandoverRecord | None, now: float) -> HandoverRecord:
    """Return *record* if it can be claimed at *now*, else raise."""
    if record is None:
        raise NotFoundError()
    state = record.state_at(now)
    if state is HandoverState.CLAIMED:
        raise AlreadyConsumedError()
    if state is HandoverState.EXPIRED:
        raise ExpiredError()
    return record


# --------------------------------------------------------------------------- #
# In-memory implementation                                                    #
# --------------------------------------------------------------------------- #


class InMemoryHandoverStore(HandoverStore):
    """Process-local store; one lock serialises claim, put and eviction."""

    def __init__(self, *, clock: Clock = default_clock) -> None:
        self._clock = clock
        self._records: dict[str, HandoverRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def put(self, record: HandoverRecord) -> None:
        with self._lock:
            if record.code in self._records:
                raise DuplicateCodeError()
            self._records[record.code] = record

    def get(self, code: str) -> HandoverRecord | None:
        with self._lock:
            return self._records.get(code)

    def claim(self, code: str) -> HandoverRecord:
        with self._lock:
            now = self._clock()
            current = _check_claimable(self._records.get(code), now)
            claimed = current.claimed(now)
            self._records[code] = claimed
            return claimed

    def evict_expired(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [c for c, rec in self._records.items() if rec.is_expired(now)]
            for code in stale:
                del self._records[code]
        return len(stale)


# --------------------------------------------------------------------------- #
# Disk implementation                                                         #
# --------------------------------------------------------------------------- #


def _hash(text: str) -> str:
    return sha256(text.encode()).hexdigest()


def _read(path: Path) -> HandoverRecord:
    with path.open(encoding="utf-8") as fh:
        return HandoverRecord.from_dict(json.load(fh))


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + f".{os.getpid()}.{threading.get_ident()}.tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, separators=(",", ":"), sort_keys=True)
    os.replace(tmp, path)  # atomic on POSIX


class DiskHandoverStore(HandoverStore):
    """JSON-file implementation of :class:`HandoverStore`.

    Codes are never written to file *names*; each record lives at
    ``<base>/<live|claimed>/<sha256(code)>.json``.
    """

    def __init__(
        self,
        base_dir: str | os.PathLike | None = None,
        *,
        clock: Clock = default_clock,
    ) -> None:
        self.base_dir = Path(
            base_dir
            or os.getenv("HANDOVER_STORAGE_DIR")
            or Path.home() / ".handover-service" / "store"
        ).expanduser()
        self._clock = clock
        try:
            (self.base_dir / "live").mkdir(parents=True, exist_ok=True)
            (self.base_dir / "claimed").mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"cannot prepare {self.base_dir}: {exc}") from exc

    # ---------------- paths --------------------------------------------- #
    def _live_path(self, code: str) -> Path:
        return self.base_dir / "live" / f"{_hash(code)}.json"

    def _claimed_path(self, code: str) -> Path:
        return self.base_dir / "claimed" / f"{_hash(code)}.json"

    # ---------------- operations ---------------------------------------- #
    def put(self, record: HandoverRecord) -> None:
        dst = self._live_path(record.code)
        if self._claimed_path(record.code).exists():
            raise DuplicateCodeError()
        tmp = dst.with_suffix(f".{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(record.to_dict(), fh, separators=(",", ":"), sort_keys=True)
            try:
                os.link(tmp, dst)  # fails if dst exists
            except FileExistsError:
                raise DuplicateCodeError() from None
        except OSError as exc:
            raise StoreUnavailableError(f"cannot write handover record: {exc}") from exc
        finally:
            tmp.unlink(missing_ok=True)

    def get(self, code: str) -> HandoverRecord | None:
        for path in (self._claimed_path(code), self._live_path(code)):
            try:
                return _read(path)
            except FileNotFoundError:
                continue
            except (OSError, ValueError, KeyError) as exc:
                raise StoreUnavailableError(f"cannot read handover record: {exc}") from exc
        return None

    def claim(self, code: str) -> HandoverRecord:
        src = self._live_path(code)
        dst = self._claimed_path(code)
        try:
            current = _read(src)
        except FileNotFoundError:
            if dst.exists():
                raise AlreadyConsumedError() from None
            raise NotFoundError() from None
        except (OSError, ValueError, KeyError) as exc:
            raise StoreUnavailableError(f"cannot read handover record: {exc}") from exc

        now = self._clock()
        _check_claimable(current, now)
        try:
            os.replace(src, dst)  # atomic rename, one claimer wins
        except FileNotFoundError:
            # Lost the race to another claimer, or the sweeper evicted it at expiry.
            if dst.exists():
                raise AlreadyConsumedError() from None
            raise ExpiredError() from None
        except OSError as exc:
            raise StoreUnavailableError(f"cannot claim handover record: {exc}") from exc

        claimed = current.claimed(now)
        try:
            _atomic_write(dst, claimed.to_dict())
        except OSError as exc:
            # The rename already made the claim; only the audit fields are lost.
            _LOG.warning("Could not persist claim metadata: %s", exc)
        return claimed

    def evict_expired(self) -> int:
        now = self._clock()
        removed = 0
        for folder in ("live", "claimed"):
            for path in (self.base_dir / folder).glob("*.json"):
                try:
                    rec = _read(path)
                except FileNotFoundError:
                    continue  # claimed or evicted concurrently
                except (OSError, ValueError, KeyError) as exc:
                    _LOG.warning("Skipping unreadable record %s: %s", path.name[:12], exc)
                    continue
                if rec.is_expired(now):
                    path.unlink(missing_ok=True)
                    removed += 1
        return removed


# --------------------------------------------------------------------------- #
# Default singleton                                                           #
# --------------------------------------------------------------------------- #

_default_store: HandoverStore | None = None
_default_lock = threading.Lock()


def build_store(kind: str | None = None, *, base_dir: str | os.PathLike | None = None) -> HandoverStore:
    """Return a new store of *kind* (``memory`` or ``disk``)."""
    kind = (kind or os.getenv("HANDOVER_STORE") or "memory").strip().lower()
    if kind == "memory":
        return InMemoryHandoverStore()
    if kind == "disk":
        return DiskHandoverStore(base_dir)
    raise ValueError(f"unsupported handover store: {kind!r}")


def default_store() -> HandoverStore:
    """Return a process-wide singleton chosen by ``HANDOVER_STORE``."""
    global _default_store  # noqa: PLW0603
    with _default_lock:
        if _default_store is None:
            _default_store = build_store()
        return _default_store

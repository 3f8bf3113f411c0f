from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from app.candles.errors import RefreshTimeout
from app.models.market import BucketKey, Candle, CandleTable

log = logging.getLogger("candle_store")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreState(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


@dataclass(frozen=True)
class Snapshot:
    """A published table and the time its rebuild completed."""
    table: CandleTable
    built_at: datetime


class CandleStore:
    """
    In-memory candle cache + refresh discipline.

    snapshot   -> last successfully built table (immutable, swapped whole)
    _inflight  -> Future of the one rebuild currently running, if any

    Rules:
      - rebuild when there is no snapshot or it is older than refresh_interval
      - at most one rebuild at a time (one worker thread, one in-flight Future)
      - with a snapshot, lookups never wait: they read the stale one
      - without a snapshot, lookups wait for the in-flight rebuild,
        at most rebuild_timeout seconds
      - a failed rebuild leaves the previous snapshot untouched
    """

    def __init__(
        self,
        loader: Callable[[], CandleTable],
        refresh_interval_seconds: float = 300,
        rebuild_timeout_seconds: float = 30,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._loader = loader
        self.refresh_interval = timedelta(seconds=refresh_interval_seconds)
        self.rebuild_timeout = rebuild_timeout_seconds
        self._clock = clock

        # Readers take this reference without locking; only _rebuild assigns it.
        self._snapshot: Optional[Snapshot] = None

        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="candle-rebuild")

        self.last_error: Optional[BaseException] = None
        self.rebuild_count = 0
        self.failure_count = 0

    # -------------------------
    # State
    # -------------------------
    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def state(self) -> StoreState:
        with self._lock:
            building = self._inflight is not None and not self._inflight.done()
        if building:
            return StoreState.BUILDING
        return StoreState.READY if self._snapshot is not None else StoreState.EMPTY

    def _is_stale(self, snap: Optional[Snapshot]) -> bool:
        if snap is None:
            return True
        return self._clock() - snap.built_at >= self.refresh_interval

    def needs_refresh(self) -> bool:
        return self._is_stale(self._snapshot)

    # -------------------------
    # Rebuild (single flight)
    # -------------------------
    def _start_rebuild(self) -> Tuple[Future, bool]:
        """Return the in-flight rebuild, starting one if none is running."""
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                return self._inflight, False

            self._inflight = self._executor.submit(self._rebuild)
            return self._inflight, True

    def _rebuild(self) -> Snapshot:
        """Worker function - runs on the single rebuild thread."""
        log.info("Candle rebuild started")
        try:
            table = self._loader()
        except Exception as e:
            self.failure_count += 1
            self.last_error = e
            log.error("Candle rebuild failed, keeping previous snapshot: %r", e, exc_info=True)
            raise

        snapshot = Snapshot(table=table, built_at=self._clock())
        self._snapshot = snapshot
        self.rebuild_count += 1
        self.last_error = None

        log.info(
            "Candle rebuild published buckets=%d built_at=%s",
            len(table),
            snapshot.built_at.isoformat(),
        )
        return snapshot

    def _wait(self, future: Future) -> Snapshot:
        try:
            return future.result(timeout=self.rebuild_timeout)
        except FutureTimeout:
            log.error("Candle rebuild still running after %ss", self.rebuild_timeout)
            raise RefreshTimeout(
                f"candle rebuild did not finish within {self.rebuild_timeout}s"
            ) from None

    def maybe_refresh(self) -> Snapshot:
        """
        Lazy refresh hook run before each lookup.

        Returns the snapshot to read from. Raises SourceUnavailable (or
        RefreshTimeout) only when there is no snapshot at all to fall back to.
        """
        snap = self._snapshot
        if not self._is_stale(snap):
            return snap

        future, started = self._start_rebuild()
        if started:
            log.debug("Snapshot stale or missing, rebuild scheduled")

        if snap is not None:
            return snap

        return self._wait(future)

    def refresh(self) -> Snapshot:
        """
        Blocking refresh for timers and admin calls.

        Joins a rebuild already in flight instead of starting a second one.
        Failures are raised to the caller.
        """
        future, _ = self._start_rebuild()
        return self._wait(future)

    # -------------------------
    # Reads
    # -------------------------
    def lookup(self, key: BucketKey) -> Optional[Candle]:
        """Candle for `key`, or None when the bucket has no ticks."""
        return self.maybe_refresh().table.get(key)

    def status(self) -> Dict[str, Any]:
        snap = self._snapshot
        return {
            "state": self.state.value,
            "built_at": snap.built_at.isoformat() if snap else None,
            "fresh": not self._is_stale(snap),
            "refresh_interval_seconds": self.refresh_interval.total_seconds(),
            "buckets": len(snap.table) if snap else 0,
            "ticks": snap.table.tick_count if snap else 0,
            "skipped_records": snap.table.skipped_count if snap else 0,
            "rebuilds": self.rebuild_count,
            "failures": self.failure_count,
            "last_error": repr(self.last_error) if self.last_error else None,
        }

    def close(self) -> None:
        log.info("Shutting down candle store")
        self._executor.shutdown(wait=False, cancel_futures=True)

"""Reconciler draining write-back mutations into the record store."""

import asyncio
import contextlib
import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

from cache_patterns.errors import StoreUnavailableError
from cache_patterns.models import (
    DEFAULT_MUTABLE_FIELDS,
    ReconcileResult,
    ReconcilerMetrics,
    ReconcilerState,
    ReconcileStatus,
    Strategy,
)
from cache_patterns.patterns.drain_lock import DrainInProgressError, DrainLock
from cache_patterns.strategies.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


def default_interval_seconds() -> float:
    """Tick interval from RECONCILE_INTERVAL_SECONDS, 10 seconds when unset."""
    return float(os.getenv("RECONCILE_INTERVAL_SECONDS", "10.0"))


def default_write_timeout_seconds() -> float:
    """Store write timeout from RECONCILE_WRITE_TIMEOUT_SECONDS, 5 seconds when unset."""
    return float(os.getenv("RECONCILE_WRITE_TIMEOUT_SECONDS", "5.0"))


class Reconciler:
    """Periodically drains pending write-back mutations into the record store.

    Each tick reads the pending id list, resolves every id against the
    write-back snapshot and issues one conditional update per entry, in list
    order. Duplicate ids are simply written again with the entity's current
    fields. The drained entries are removed from the pending list only after
    every write succeeded; a failure anywhere leaves the list intact for the
    next tick. If the write-back snapshot is gone, nothing is written and the
    ids stay pending; each tick reports NO_SNAPSHOT until a write-back update
    re-seeds the snapshot from the store, after which the drain rewrites the
    store values unchanged.

    Ticks never overlap: a tick that fires while a drain is in flight is
    dropped, not queued. Each store write is bounded by a timeout so a hung
    write cannot hold the lock forever.

    Args:
        snapshots: Snapshot access for the write-back namespace.
        interval_seconds: Seconds between ticks. Default 10.
        write_timeout_seconds: Max seconds per store write. Default 5.
        update_fields: Attributes written back to the store.
        strategy: Namespace to drain. Default WRITE_BACK.

    Example:
        ```python
        reconciler = Reconciler(snapshots, interval_seconds=10)

        reconciler.start()
        ...
        await reconciler.stop()
        ```
    """

    def __init__(
        self,
        snapshots: SnapshotCache,
        interval_seconds: float | None = None,
        write_timeout_seconds: float | None = None,
        update_fields: tuple[str, ...] = DEFAULT_MUTABLE_FIELDS,
        strategy: Strategy = Strategy.WRITE_BACK,
    ) -> None:
        self._snapshots = snapshots
        self._interval = interval_seconds or default_interval_seconds()
        self._write_timeout = write_timeout_seconds or default_write_timeout_seconds()
        if self._interval <= 0:
            raise ValueError("interval_seconds must be positive")
        if self._write_timeout <= 0:
            raise ValueError("write_timeout_seconds must be positive")
        self._update_fields = update_fields
        self._strategy = strategy

        self._lock = DrainLock()
        self._running = False
        self._timer_task: asyncio.Task[None] | None = None
        self._tick_tasks: set[asyncio.Task[ReconcileResult]] = set()

        # Metrics
        self._ticks = 0
        self._skipped_ticks = 0
        self._drains = 0
        self._records_written = 0
        self._orphaned_ids = 0
        self._failures = 0

    @property
    def interval_seconds(self) -> float:
        """Seconds between ticks."""
        return self._interval

    @property
    def write_timeout_seconds(self) -> float:
        """Max seconds allowed for a single store write."""
        return self._write_timeout

    @property
    def state(self) -> ReconcilerState:
        """DRAINING while a drain holds the lock, IDLE otherwise."""
        return ReconcilerState.DRAINING if self._lock.locked else ReconcilerState.IDLE

    @property
    def is_running(self) -> bool:
        """Check if the periodic timer is running."""
        return self._running

    async def tick(self) -> ReconcileResult:
        """Run one reconciliation tick.

        Never raises: a tick that finds a drain in flight is SKIPPED, and a
        drain that fails is logged and reported as FAILED.

        Returns:
            ReconcileResult: What the tick did.
        """
        self._ticks += 1
        try:
            return await self.drain()
        except DrainInProgressError:
            self._skipped_ticks += 1
            self._log("reconcile_skipped", logging.DEBUG)
            return ReconcileResult(status=ReconcileStatus.SKIPPED)
        except Exception as exc:
            self._failures += 1
            self._log("reconcile_failed", logging.ERROR, error=str(exc), error_type=type(exc).__name__)
            return ReconcileResult(status=ReconcileStatus.FAILED, error=str(exc))

    async def drain(self) -> ReconcileResult:
        """Drain the pending list into the record store.

        Returns:
            ReconcileResult: IDLE when nothing is pending, NO_SNAPSHOT when the
                snapshot is gone, DRAINED otherwise.

        Raises:
            DrainInProgressError: If another drain holds the lock.
            StoreUnavailableError: If a store write fails or times out.
            CacheUnavailableError: If the cache cannot be read or updated.
            SerializationError: If cached bytes are malformed.
        """
        async with self._lock:
            pending = await self._snapshots.load_pending(self._strategy)
            if not pending:
                return ReconcileResult(status=ReconcileStatus.IDLE)

            snapshot = await self._snapshots.load(self._strategy)
            if snapshot is None:
                self._log("reconcile_no_snapshot", logging.WARNING, pending=len(pending))
                return ReconcileResult(status=ReconcileStatus.NO_SNAPSHOT)

            by_id = {entity.id: entity for entity in snapshot}
            written = 0
            orphaned: list[int] = []
            for entity_id in pending:
                entity = by_id.get(entity_id)
                if entity is None:
                    orphaned.append(entity_id)
                    self._log("reconcile_orphaned_id", logging.WARNING, entity_id=entity_id)
                    continue
                await self._write(entity_id, entity.mutable_fields(self._update_fields))
                written += 1

            remaining = await self._snapshots.trim_pending(self._strategy, len(pending))

        self._drains += 1
        self._records_written += written
        self._orphaned_ids += len(orphaned)
        self._log(
            "reconcile_drained",
            logging.INFO,
            written=written,
            orphaned=orphaned,
            still_pending=len(remaining),
        )
        return ReconcileResult(
            status=ReconcileStatus.DRAINED,
            written=written,
            orphaned=tuple(orphaned),
        )

    async def _write(self, entity_id: int, fields: dict[str, Any]) -> None:
        """Issue one store update bounded by the write timeout."""
        try:
            rows = await asyncio.wait_for(
                self._snapshots.record_store.update_by_id(entity_id, fields),
                timeout=self._write_timeout,
            )
        except TimeoutError:
            raise StoreUnavailableError(
                f"Update of {entity_id} timed out after {self._write_timeout}s"
            ) from None
        if rows == 0:
            self._log("reconcile_missing_row", logging.WARNING, entity_id=entity_id)

    def _log(self, event: str, level: int, **details: Any) -> None:
        """Log a reconciler event as structured JSON."""
        log_entry = {
            "event": event,
            "strategy": self._strategy.value,
            "timestamp": datetime.now(UTC).isoformat(),
            **details,
        }
        logger.log(level, json.dumps(log_entry))

    async def _timer_loop(self) -> None:
        """Fire a tick every interval; each tick runs in its own task."""
        while self._running:
            await asyncio.sleep(self._interval)
            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

    def start(self) -> None:
        """Start the periodic timer."""
        if self._running:
            return

        self._running = True
        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info("Reconciler started (interval %.2fs)", self._interval)

    async def stop(self) -> None:
        """Stop the timer and wait for any in-flight tick to finish."""
        if not self._running:
            return

        self._running = False

        if self._timer_task:
            self._timer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer_task
            self._timer_task = None

        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)

        logger.info("Reconciler stopped")

    def get_metrics(self) -> ReconcilerMetrics:
        """Get current reconciler metrics.

        Returns:
            ReconcilerMetrics: Current metrics.
        """
        return ReconcilerMetrics(
            state=self.state,
            ticks=self._ticks,
            skipped_ticks=self._skipped_ticks,
            drains=self._drains,
            records_written=self._records_written,
            orphaned_ids=self._orphaned_ids,
            failures=self._failures,
        )

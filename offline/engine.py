"""
SyncEngine: runs sync cycles against the reconciliation endpoint.

A cycle takes a snapshot of the eligible queue entries, sends them as one
batch, and applies each returned outcome to the entry carrying the same
client_uuid. Outcomes are never matched by position.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from enum import Enum

from .connectivity import ConnectivityMonitor
from .exceptions import NetworkError
from .models import ItemResult, Outcome, SyncQueueEntry
from .sync_queue import SyncQueue
from .transport import BatchTransport

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 30.0
# matches the server's SYNC_MAX_BATCH_SIZE
DEFAULT_BATCH_SIZE = 100


class EngineState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


@dataclass
class CycleReport:
    attempted: int = 0
    synced: int = 0
    duplicate: int = 0
    failed: int = 0
    unmatched: int = 0
    aborted: bool = False
    error: str | None = None
    more_pending: bool = False


class SyncEngine:
    """
    Idle -> Syncing -> Idle.

    The latch is per instance. Run exactly one engine per LocalRecordStore:
    two engines over the same store would each hold their own latch and could
    submit the same entries concurrently.

    Triggers: ``start()`` (if online), an offline -> online transition, and a
    timer every ``interval`` seconds while online. A trigger that arrives
    while a cycle is in flight is dropped.

    A cycle sends at most ``batch_size`` entries, oldest first. When a full
    batch made progress, another cycle is scheduled right away to drain the
    rest of the queue.
    """

    def __init__(
        self,
        queue: SyncQueue,
        transport: BatchTransport,
        connectivity: ConnectivityMonitor,
        interval: float = DEFAULT_SYNC_INTERVAL,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._queue = queue
        self._transport = transport
        self._connectivity = connectivity
        self.interval = interval
        self.batch_size = batch_size

        self._state = EngineState.IDLE
        self._cycles: set[asyncio.Task] = set()
        self._timer: asyncio.Task | None = None
        self._unsubscribe = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def running(self) -> bool:
        return self._timer is not None

    async def start(self) -> None:
        if self._timer is not None:
            return
        self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_change)
        self._timer = asyncio.create_task(self._periodic(), name="sync-engine-timer")
        logger.info(f"Sync engine started (interval={self.interval:.0f}s)")

        if self._connectivity.online:
            self.trigger_sync()

    async def stop(self) -> None:
        """Stop scheduling new cycles and wait for the one in flight, if any."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

        await self.join()
        logger.info("Sync engine stopped")

    async def join(self) -> None:
        """Wait until every spawned cycle has finished."""
        while self._cycles:
            cycles = list(self._cycles)
            await asyncio.gather(*cycles, return_exceptions=True)
            self._cycles.difference_update(cycles)

    def trigger_sync(self) -> asyncio.Task | None:
        """Schedule a cycle in the background. No-op while syncing or offline."""
        if self._state is EngineState.SYNCING or not self._connectivity.online:
            return None
        return self._spawn_cycle()

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Back online, triggering sync")
            self.trigger_sync()

    async def _periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self._connectivity.online:
                self.trigger_sync()

    def _spawn_cycle(self) -> asyncio.Task:
        task = asyncio.create_task(self.run_cycle(), name="sync-cycle")
        self._cycles.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Sync cycle crashed: {exc.__class__.__name__}: {exc}", exc_info=exc)

    async def run_cycle(self) -> CycleReport | None:
        """
        Run one sync cycle.

        Returns:
            CycleReport, or None when skipped because a cycle is already in
            flight or connectivity is unavailable

        Raises:
            LocalStoreError: If the local store fails while reading the queue
                or writing an outcome
        """
        # check-and-set before the first await
        if self._state is EngineState.SYNCING:
            logger.debug("Sync already in progress, skipping")
            return None
        if not self._connectivity.online:
            logger.debug("Offline, skipping sync")
            return None
        self._state = EngineState.SYNCING

        try:
            report = await self._sync_snapshot()
        finally:
            self._state = EngineState.IDLE

        if report.more_pending:
            logger.info("Batch was full, scheduling another cycle")
            self.trigger_sync()
        return report

    async def _sync_snapshot(self) -> CycleReport:
        entries = await self._queue.eligible_for_sync(limit=self.batch_size)
        if not entries:
            return CycleReport()

        report = CycleReport(attempted=len(entries))
        logger.info(f"Syncing {len(entries)} queued item(s)")

        try:
            raw_results = await self._transport.send_batch([entry.to_batch_item() for entry in entries])
        except NetworkError as e:
            logger.warning(f"Sync cycle aborted, {len(entries)} item(s) left untouched: {str(e)}")
            report.aborted = True
            report.error = str(e)
            return report

        outstanding: dict[str, deque[SyncQueueEntry]] = defaultdict(deque)
        for entry in entries:
            outstanding[entry.client_uuid].append(entry)

        for raw in raw_results:
            try:
                result = ItemResult.from_dict(raw)
            except ValueError as e:
                logger.warning(f"Ignoring malformed sync result {raw!r}: {str(e)}")
                report.unmatched += 1
                continue

            candidates = outstanding.get(result.client_uuid)
            if not candidates:
                logger.warning(f"Ignoring sync result for unknown client_uuid {result.client_uuid}")
                report.unmatched += 1
                continue

            await self._queue.apply_outcome(candidates.popleft(), result)
            if result.status is Outcome.SYNCED:
                report.synced += 1
            elif result.status is Outcome.DUPLICATE:
                report.duplicate += 1
            else:
                report.failed += 1

        missing = sum(len(candidates) for candidates in outstanding.values())
        if missing:
            logger.warning(f"No result returned for {missing} submitted item(s); they stay queued unchanged")

        applied = report.synced + report.duplicate + report.failed
        report.more_pending = len(entries) >= self.batch_size and applied > 0

        logger.info(
            f"Sync cycle done: {report.synced} synced, {report.duplicate} duplicate, "
            f"{report.failed} failed, {report.unmatched} unmatched"
        )
        return report

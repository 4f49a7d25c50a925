"""
SyncQueue: the durable collection of pending mutations.

Entries whose ``retry_count`` has reached ``max_retries`` are dead letters:
they stay visible (``dead_letters()``) but are never offered to a sync cycle
again until someone resubmits them explicitly with ``requeue()``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .exceptions import QueueEntryNotFoundError
from .models import ACTION_CREATE, ItemResult, Outcome, QueueStatus, SyncQueueEntry, utcnow_iso
from .store import LocalRecordStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3

RETRYABLE_STATUSES = (QueueStatus.PENDING, QueueStatus.FAILED)


class SyncQueue:
    def __init__(self, store: LocalRecordStore, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self._store = store
        self.max_retries = max_retries

    async def enqueue(
        self,
        entity_kind: str,
        client_uuid: str,
        payload_snapshot: Mapping[str, Any],
        action: str = ACTION_CREATE,
        entity_id: str | None = None,
    ) -> SyncQueueEntry:
        entry = await self._store.insert_entry(
            entity_kind=entity_kind,
            entity_id=entity_id,
            client_uuid=client_uuid,
            action=action,
            payload_snapshot=dict(payload_snapshot),
        )
        logger.info(f"Queued {action} {entity_kind} {client_uuid} as entry {entry.queue_id}")
        return entry

    async def get(self, queue_id: int) -> SyncQueueEntry | None:
        return await self._store.get_entry(queue_id)

    async def eligible_for_sync(self, limit: int | None = None) -> list[SyncQueueEntry]:
        """Pending or failed entries still under the retry cap, oldest first, at most ``limit``. Read-only."""
        return await self._store.query_entries(RETRYABLE_STATUSES, max_retry_count=self.max_retries, limit=limit)

    async def apply_outcome(self, entry: SyncQueueEntry, result: ItemResult) -> SyncQueueEntry | None:
        """Write one reconciliation outcome back into the local store."""
        if result.status in (Outcome.SYNCED, Outcome.DUPLICATE):
            updated = await self._store.record_sync_success(
                entry.queue_id, entry.client_uuid, result.server_id, utcnow_iso()
            )
            logger.info(f"Entry {entry.queue_id} ({entry.client_uuid}) {result.status.value} as {result.server_id}")
            return updated

        error = result.error or "Sync failed"
        updated = await self._store.record_sync_failure(entry.queue_id, error)
        if updated is not None and updated.retry_count >= self.max_retries:
            logger.error(
                f"Entry {entry.queue_id} ({entry.client_uuid}) reached the retry cap "
                f"({updated.retry_count}/{self.max_retries}); no further automatic attempts: {error}"
            )
        else:
            logger.warning(f"Entry {entry.queue_id} ({entry.client_uuid}) failed: {error}")
        return updated

    async def dead_letters(self) -> list[SyncQueueEntry]:
        """Failed entries that exhausted their retry budget."""
        return await self._store.query_entries([QueueStatus.FAILED], min_retry_count=self.max_retries)

    async def requeue(self, queue_id: int) -> SyncQueueEntry:
        """Manual resubmit: give an entry a fresh retry budget. Synced entries are left alone."""
        entry = await self._store.get_entry(queue_id)
        if entry is None:
            raise QueueEntryNotFoundError(queue_id)
        if entry.status is QueueStatus.SYNCED:
            return entry

        updated = await self._store.update_entry(queue_id, status=QueueStatus.PENDING, retry_count=0, last_error=None)
        logger.info(f"Entry {queue_id} ({entry.client_uuid}) requeued after {entry.retry_count} attempt(s)")
        return updated

    async def counts(self) -> dict[str, int]:
        """Entries per status, plus the number of dead letters, for status display."""
        by_status = await self._store.count_entries_by_status()
        counts = {status.value: by_status.get(status.value, 0) for status in QueueStatus}
        counts["dead_letter"] = len(await self.dead_letters())
        return counts

"""
DraftManager: autosave and finalize.

``upsert`` is called repeatedly while the user works (online or offline);
``finalize_and_enqueue`` freezes the draft into exactly one queued mutation.
The snapshot is taken at finalize time, not at send time: edits made to the
draft afterwards do not change what gets synced.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from .exceptions import DraftNotFoundError
from .models import ACTION_CREATE, ENTITY_INSPECTION, DraftRecord, SyncQueueEntry, freeze_payload, utcnow_iso
from .sync_queue import SyncQueue
from .store import LocalRecordStore

logger = logging.getLogger(__name__)

COMPLETION_FIELD = "ended_at"


class DraftManager:
    def __init__(self, store: LocalRecordStore, queue: SyncQueue, entity_kind: str = ENTITY_INSPECTION) -> None:
        self._store = store
        self._queue = queue
        self.entity_kind = entity_kind

    async def upsert(self, client_uuid: str | None = None, fields: Mapping[str, Any] | None = None) -> str:
        """
        Create or update a draft and return its client_uuid.

        Unknown identifiers create a new draft under that identifier; known
        ones are shallow-merged (last write wins per field) and marked unsynced.
        """
        fields = {key: value for key, value in (fields or {}).items() if key != "client_uuid"}

        if client_uuid is None:
            client_uuid = str(uuid.uuid4())
            existing = None
        else:
            existing = await self._store.get_draft(client_uuid)

        if existing is not None:
            merged = {**existing.fields, **fields}
            await self._store.update_draft(client_uuid, fields=merged, synced=False)
            logger.debug(f"Draft {client_uuid} updated ({', '.join(sorted(fields)) or 'no fields'})")
            return client_uuid

        now = utcnow_iso()
        initial = {"started_at": now, "offline_created_at": now, **fields}
        await self._store.insert_draft(DraftRecord(client_uuid=client_uuid, entity_kind=self.entity_kind, fields=initial))
        logger.info(f"Draft {client_uuid} created")
        return client_uuid

    async def get(self, client_uuid: str) -> DraftRecord | None:
        return await self._store.get_draft(client_uuid)

    async def finalize_and_enqueue(self, client_uuid: str) -> SyncQueueEntry:
        """
        Stamp the completion marker if missing and queue a frozen snapshot.
        Does not contact the network.

        Raises:
            DraftNotFoundError: If no draft exists under client_uuid
        """
        draft = await self._store.get_draft(client_uuid)
        if draft is None:
            raise DraftNotFoundError(client_uuid)

        fields = dict(draft.fields)
        if not fields.get(COMPLETION_FIELD):
            fields[COMPLETION_FIELD] = utcnow_iso()
            await self._store.update_draft(client_uuid, fields=fields)

        snapshot = freeze_payload({**fields, "client_uuid": client_uuid})
        entry = await self._queue.enqueue(
            entity_kind=draft.entity_kind,
            client_uuid=client_uuid,
            payload_snapshot=snapshot,
            action=ACTION_CREATE,
        )
        logger.info(f"Draft {client_uuid} finalized")
        return entry

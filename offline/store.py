"""
LocalRecordStore: durable on-device storage backed by SQLite.

Two collections live in one database file:

* ``drafts`` keyed by ``client_uuid``
* ``sync_queue`` keyed by an auto-incrementing ``queue_id`` and indexed by
  ``status`` and ``client_uuid``

Every public method is a coroutine; the blocking sqlite3 call runs in a worker
thread so store I/O is a suspension point for the event loop. Writes from one
process only: there is no protection against a second process opening the
same file and writing concurrently.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from typing import Any, Callable, Iterable

from .exceptions import LocalStoreError
from .models import DraftRecord, QueueStatus, SyncQueueEntry, freeze_payload, utcnow_iso

logger = logging.getLogger(__name__)

# payload_snapshot is never updatable
_UPDATABLE_ENTRY_COLUMNS = frozenset({"status", "retry_count", "last_error", "server_id", "entity_id"})
_UPDATABLE_DRAFT_COLUMNS = frozenset({"fields", "synced", "server_id", "synced_at"})


class LocalRecordStore:
    def __init__(self, path: str) -> None:
        self._path = path
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except sqlite3.Error as e:
            raise LocalStoreError(f"Could not open local store at {path}: {e}") from e
        self._lock = threading.Lock()
        self._closed = False

    @property
    def path(self) -> str:
        return self._path

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS drafts (
                client_uuid   TEXT    PRIMARY KEY,
                entity_kind   TEXT    NOT NULL,
                fields_json   TEXT    NOT NULL,
                synced        INTEGER NOT NULL DEFAULT 0,
                server_id     TEXT,
                synced_at     TEXT,
                created_at    TEXT    NOT NULL,
                updated_at    TEXT    NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_drafts_synced
                ON drafts(synced);

            CREATE TABLE IF NOT EXISTS sync_queue (
                queue_id          INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_kind       TEXT    NOT NULL,
                entity_id         TEXT,
                client_uuid       TEXT    NOT NULL,
                action            TEXT    NOT NULL,
                payload_snapshot  TEXT    NOT NULL,
                status            TEXT    NOT NULL DEFAULT 'pending',
                retry_count       INTEGER NOT NULL DEFAULT 0,
                last_error        TEXT,
                server_id         TEXT,
                created_at        TEXT    NOT NULL,
                updated_at        TEXT    NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_sq_status
                ON sync_queue(status);
            CREATE INDEX IF NOT EXISTS idx_sq_client_uuid
                ON sync_queue(client_uuid);
        """)
        self._conn.commit()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            if self._closed:
                raise LocalStoreError("Local store is closed")
            try:
                return fn(*args)
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.error(f"Local store operation {fn.__name__} failed: {e}")
                raise LocalStoreError(str(e)) from e

    @staticmethod
    def _row_to_draft(row: sqlite3.Row) -> DraftRecord:
        return DraftRecord(
            client_uuid=row["client_uuid"],
            entity_kind=row["entity_kind"],
            fields=json.loads(row["fields_json"]),
            synced=bool(row["synced"]),
            server_id=row["server_id"],
            synced_at=row["synced_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> SyncQueueEntry:
        return SyncQueueEntry(
            queue_id=row["queue_id"],
            entity_kind=row["entity_kind"],
            entity_id=row["entity_id"],
            client_uuid=row["client_uuid"],
            action=row["action"],
            payload_snapshot=freeze_payload(json.loads(row["payload_snapshot"])),
            status=QueueStatus(row["status"]),
            retry_count=row["retry_count"],
            last_error=row["last_error"],
            server_id=row["server_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get_draft(self, client_uuid: str) -> DraftRecord | None:
        return await self._run(self._get_draft, client_uuid)

    def _get_draft(self, client_uuid: str) -> DraftRecord | None:
        row = self._conn.execute("SELECT * FROM drafts WHERE client_uuid = ?", (client_uuid,)).fetchone()
        return self._row_to_draft(row) if row else None

    async def insert_draft(self, draft: DraftRecord) -> DraftRecord:
        return await self._run(self._insert_draft, draft)

    def _insert_draft(self, draft: DraftRecord) -> DraftRecord:
        self._conn.execute(
            """INSERT INTO drafts (client_uuid, entity_kind, fields_json, synced, server_id,
                                   synced_at, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                draft.client_uuid,
                draft.entity_kind,
                json.dumps(draft.fields),
                int(draft.synced),
                draft.server_id,
                draft.synced_at,
                draft.created_at,
                draft.updated_at,
            ),
        )
        self._conn.commit()
        return draft

    async def update_draft(self, client_uuid: str, **changes: Any) -> DraftRecord | None:
        """In-place update; returns the stored draft, or None when it does not exist."""
        unknown = set(changes) - _UPDATABLE_DRAFT_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update draft columns: {', '.join(sorted(unknown))}")
        return await self._run(self._update_draft, client_uuid, changes)

    def _update_draft(self, client_uuid: str, changes: dict[str, Any]) -> DraftRecord | None:
        columns = {"updated_at": utcnow_iso()}
        for key, value in changes.items():
            if key == "fields":
                columns["fields_json"] = json.dumps(value)
            elif key == "synced":
                columns["synced"] = int(value)
            else:
                columns[key] = value

        assignments = ", ".join(f"{column} = ?" for column in columns)
        self._conn.execute(
            f"UPDATE drafts SET {assignments} WHERE client_uuid = ?",
            (*columns.values(), client_uuid),
        )
        self._conn.commit()
        return self._get_draft(client_uuid)

    async def list_drafts(self, synced: bool | None = None) -> list[DraftRecord]:
        return await self._run(self._list_drafts, synced)

    def _list_drafts(self, synced: bool | None) -> list[DraftRecord]:
        if synced is None:
            rows = self._conn.execute("SELECT * FROM drafts ORDER BY created_at").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM drafts WHERE synced = ? ORDER BY created_at", (int(synced),)
            ).fetchall()
        return [self._row_to_draft(row) for row in rows]

    async def insert_entry(
        self,
        *,
        entity_kind: str,
        client_uuid: str,
        action: str,
        payload_snapshot: dict[str, Any],
        entity_id: str | None = None,
    ) -> SyncQueueEntry:
        return await self._run(
            self._insert_entry, entity_kind, entity_id, client_uuid, action, json.dumps(dict(payload_snapshot))
        )

    def _insert_entry(
        self, entity_kind: str, entity_id: str | None, client_uuid: str, action: str, snapshot_json: str
    ) -> SyncQueueEntry:
        now = utcnow_iso()
        cursor = self._conn.execute(
            """INSERT INTO sync_queue (entity_kind, entity_id, client_uuid, action, payload_snapshot,
                                       status, retry_count, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)""",
            (entity_kind, entity_id, client_uuid, action, snapshot_json, QueueStatus.PENDING.value, now, now),
        )
        self._conn.commit()
        return self._get_entry(cursor.lastrowid)

    async def get_entry(self, queue_id: int) -> SyncQueueEntry | None:
        return await self._run(self._get_entry, queue_id)

    def _get_entry(self, queue_id: int) -> SyncQueueEntry | None:
        row = self._conn.execute("SELECT * FROM sync_queue WHERE queue_id = ?", (queue_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    async def query_entries(
        self,
        statuses: Iterable[QueueStatus] | None = None,
        *,
        client_uuid: str | None = None,
        max_retry_count: int | None = None,
        min_retry_count: int | None = None,
        limit: int | None = None,
    ) -> list[SyncQueueEntry]:
        """Filter by the status / client_uuid indexes, in insertion order, oldest ``limit`` first."""
        clauses: list[str] = []
        params: list[Any] = []
        if statuses is not None:
            values = [QueueStatus(s).value for s in statuses]
            if not values:
                return []
            clauses.append(f"status IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        if client_uuid is not None:
            clauses.append("client_uuid = ?")
            params.append(client_uuid)
        if max_retry_count is not None:
            clauses.append("retry_count < ?")
            params.append(max_retry_count)
        if min_retry_count is not None:
            clauses.append("retry_count >= ?")
            params.append(min_retry_count)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT * FROM sync_queue {where} ORDER BY queue_id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return await self._run(self._query_entries, sql, params)

    def _query_entries(self, sql: str, params: list[Any]) -> list[SyncQueueEntry]:
        return [self._row_to_entry(row) for row in self._conn.execute(sql, params).fetchall()]

    async def update_entry(self, queue_id: int, **changes: Any) -> SyncQueueEntry | None:
        unknown = set(changes) - _UPDATABLE_ENTRY_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update sync queue columns: {', '.join(sorted(unknown))}")
        return await self._run(self._update_entry, queue_id, changes)

    def _update_entry(self, queue_id: int, changes: dict[str, Any]) -> SyncQueueEntry | None:
        columns = {key: (value.value if isinstance(value, QueueStatus) else value) for key, value in changes.items()}
        columns["updated_at"] = utcnow_iso()
        assignments = ", ".join(f"{column} = ?" for column in columns)
        self._conn.execute(f"UPDATE sync_queue SET {assignments} WHERE queue_id = ?", (*columns.values(), queue_id))
        self._conn.commit()
        return self._get_entry(queue_id)

    async def record_sync_success(
        self, queue_id: int, client_uuid: str, server_id: str | None, synced_at: str
    ) -> SyncQueueEntry | None:
        """Mark an entry synced and its draft synced, in one local transaction."""
        return await self._run(self._record_sync_success, queue_id, client_uuid, server_id, synced_at)

    def _record_sync_success(
        self, queue_id: int, client_uuid: str, server_id: str | None, synced_at: str
    ) -> SyncQueueEntry | None:
        with self._conn:
            self._conn.execute(
                """UPDATE sync_queue
                   SET status = ?, server_id = ?, entity_id = COALESCE(entity_id, ?),
                       last_error = NULL, updated_at = ?
                   WHERE queue_id = ?""",
                (QueueStatus.SYNCED.value, server_id, server_id, synced_at, queue_id),
            )
            self._conn.execute(
                """UPDATE drafts
                   SET synced = 1, server_id = ?, synced_at = ?, updated_at = ?
                   WHERE client_uuid = ?""",
                (server_id, synced_at, synced_at, client_uuid),
            )
        return self._get_entry(queue_id)

    async def record_sync_failure(self, queue_id: int, error: str) -> SyncQueueEntry | None:
        return await self._run(self._record_sync_failure, queue_id, error)

    def _record_sync_failure(self, queue_id: int, error: str) -> SyncQueueEntry | None:
        self._conn.execute(
            """UPDATE sync_queue
               SET status = ?, retry_count = retry_count + 1, last_error = ?, updated_at = ?
               WHERE queue_id = ?""",
            (QueueStatus.FAILED.value, error, utcnow_iso(), queue_id),
        )
        self._conn.commit()
        return self._get_entry(queue_id)

    async def count_entries_by_status(self) -> dict[str, int]:
        return await self._run(self._count_entries_by_status)

    def _count_entries_by_status(self) -> dict[str, int]:
        rows = self._conn.execute("SELECT status, COUNT(*) AS n FROM sync_queue GROUP BY status").fetchall()
        return {row["status"]: row["n"] for row in rows}

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    def _close(self) -> None:
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True

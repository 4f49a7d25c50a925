"""
Records held on the device.

A DraftRecord is the mutable, locally-held inspection the user is composing.
Finalizing it produces one SyncQueueEntry whose ``payload_snapshot`` is a
frozen copy of the draft at that moment: later edits to the draft never reach
an already-queued mutation.

Queue entry lifecycle::

    pending -> (attempt) -> synced          (terminal)
                         -> failed          (retry_count += 1, retried while
                                             retry_count < max_retries)
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

ENTITY_INSPECTION = "inspection"
ACTION_CREATE = "create"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def freeze_payload(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    """Deep, JSON-normalised, read-only copy of a payload."""
    return MappingProxyType(json.loads(json.dumps(dict(fields))))


class QueueStatus(str, Enum):
    PENDING = "pending"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"


class Outcome(str, Enum):
    """Per-item result reported by the reconciliation endpoint."""

    SYNCED = "synced"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class DraftRecord:
    client_uuid: str
    entity_kind: str = ENTITY_INSPECTION
    fields: dict[str, Any] = field(default_factory=dict)
    synced: bool = False
    server_id: str | None = None
    synced_at: str | None = None
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)


@dataclass(frozen=True)
class SyncQueueEntry:
    queue_id: int
    entity_kind: str
    entity_id: str | None
    client_uuid: str
    action: str
    payload_snapshot: Mapping[str, Any]
    status: QueueStatus = QueueStatus.PENDING
    retry_count: int = 0
    last_error: str | None = None
    server_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_batch_item(self) -> dict[str, Any]:
        """Wire descriptor for the batch request."""
        return {
            "entity_type": self.entity_kind,
            "entity_id": self.entity_id,
            "client_uuid": self.client_uuid,
            "action": self.action,
            "payload_json": copy.deepcopy(dict(self.payload_snapshot)),
        }


@dataclass(frozen=True)
class ItemResult:
    client_uuid: str
    status: Outcome
    server_id: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItemResult":
        """Raises ValueError for results that cannot be interpreted."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Result must be an object, got {type(data).__name__}")
        client_uuid = data.get("client_uuid")
        if not client_uuid:
            raise ValueError("Result is missing client_uuid")
        server_id = data.get("server_id")
        return cls(
            client_uuid=str(client_uuid),
            status=Outcome(data.get("status")),
            server_id=str(server_id) if server_id is not None else None,
            error=data.get("error"),
        )

    @property
    def succeeded(self) -> bool:
        return self.status in (Outcome.SYNCED, Outcome.DUPLICATE)

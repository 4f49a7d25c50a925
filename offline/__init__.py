"""Device-side offline capture and sync."""

from .client import OfflineClient
from .connectivity import ConnectivityMonitor
from .drafts import DraftManager
from .engine import CycleReport, EngineState, SyncEngine
from .exceptions import DraftNotFoundError, LocalStoreError, NetworkError, OfflineError, QueueEntryNotFoundError
from .models import DraftRecord, ItemResult, Outcome, QueueStatus, SyncQueueEntry
from .sync_queue import SyncQueue
from .store import LocalRecordStore
from .transport import HttpBatchTransport

__all__ = [
    "ConnectivityMonitor",
    "CycleReport",
    "DraftManager",
    "DraftNotFoundError",
    "DraftRecord",
    "EngineState",
    "HttpBatchTransport",
    "ItemResult",
    "LocalRecordStore",
    "LocalStoreError",
    "NetworkError",
    "OfflineClient",
    "OfflineError",
    "Outcome",
    "QueueEntryNotFoundError",
    "QueueStatus",
    "SyncEngine",
    "SyncQueue",
    "SyncQueueEntry",
]

class OfflineError(Exception):
    """Base class for device-side sync errors"""


class LocalStoreError(OfflineError):
    """The on-device store could not be read or written; surfaced to the caller, never retried"""


class DraftNotFoundError(LocalStoreError):
    """No draft exists under the given client_uuid"""

    def __init__(self, client_uuid):
        self.client_uuid = client_uuid
        super().__init__(f"Draft {client_uuid} not found")


class QueueEntryNotFoundError(LocalStoreError):
    """No queue entry exists under the given queue_id"""

    def __init__(self, queue_id):
        self.queue_id = queue_id
        super().__init__(f"Sync queue entry {queue_id} not found")


class NetworkError(OfflineError):
    """The batch call failed as a whole; the cycle is abandoned without touching any entry"""

from __future__ import annotations

import logging

from .conf import OfflineSettings
from .connectivity import ConnectivityMonitor
from .drafts import DraftManager
from .engine import DEFAULT_BATCH_SIZE, DEFAULT_SYNC_INTERVAL, SyncEngine
from .sync_queue import DEFAULT_MAX_RETRIES, SyncQueue
from .store import LocalRecordStore
from .transport import BatchTransport, HttpBatchTransport

logger = logging.getLogger(__name__)


class OfflineClient:
    """
    Wires the device-side components together over a single store.

    Usage::

        async with OfflineClient.from_settings() as client:
            uid = await client.drafts.upsert(fields={"hive_id": hive_id})
            await client.drafts.finalize_and_enqueue(uid)
            client.connectivity.set_online(True)
    """

    def __init__(
        self,
        store: LocalRecordStore,
        transport: BatchTransport,
        connectivity: ConnectivityMonitor | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        interval: float = DEFAULT_SYNC_INTERVAL,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.store = store
        self.transport = transport
        self.connectivity = connectivity or ConnectivityMonitor()
        self.queue = SyncQueue(store, max_retries=max_retries)
        self.drafts = DraftManager(store, self.queue)
        self.engine = SyncEngine(self.queue, transport, self.connectivity, interval=interval, batch_size=batch_size)

    @classmethod
    def from_settings(
        cls, settings: OfflineSettings | None = None, connectivity: ConnectivityMonitor | None = None
    ) -> "OfflineClient":
        settings = settings or OfflineSettings.from_env()
        transport = HttpBatchTransport(
            settings.api_url,
            access_token=settings.access_token or None,
            timeout=settings.request_timeout,
        )
        return cls(
            LocalRecordStore(settings.db_path),
            transport,
            connectivity=connectivity,
            max_retries=settings.max_retries,
            interval=settings.sync_interval,
            batch_size=settings.batch_size,
        )

    async def start(self) -> None:
        await self.engine.start()

    async def close(self) -> None:
        await self.engine.stop()
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()
        await self.store.close()
        logger.info("Offline client closed")

    async def __aenter__(self) -> "OfflineClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

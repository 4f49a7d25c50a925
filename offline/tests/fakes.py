import asyncio
import copy
import os
import tempfile
import unittest

from offline.connectivity import ConnectivityMonitor
from offline.exceptions import NetworkError
from offline.store import LocalRecordStore
from offline.sync_queue import SyncQueue


def accept_all(items):
    return [{"client_uuid": item["client_uuid"], "status": "synced", "server_id": f"srv-{item['client_uuid']}"} for item in items]


def fail_all(error="Validation failed"):
    def responder(items):
        return [{"client_uuid": item["client_uuid"], "status": "failed", "error": error} for item in items]

    return responder


def unreachable(items):
    raise NetworkError("Cannot connect to host")


class FakeTransport:
    """Records every batch; replies through ``responder``. Set ``gate`` to hold a call open."""

    def __init__(self, responder=accept_all):
        self.responder = responder
        self.batches = []
        self.gate = None

    async def send_batch(self, items):
        self.batches.append(copy.deepcopy(items))
        if self.gate is not None:
            await self.gate.wait()
        return self.responder(items)


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    max_retries = 3

    async def asyncSetUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.db_path = os.path.join(tmp.name, "offline.sqlite3")
        self.store = LocalRecordStore(self.db_path)
        self.queue = SyncQueue(self.store, max_retries=self.max_retries)
        self.connectivity = ConnectivityMonitor(online=True)

    async def asyncTearDown(self):
        await self.store.close()

    async def enqueue(self, client_uuid, **payload):
        return await self.queue.enqueue("inspection", client_uuid, {"hive_id": "h1", **payload})

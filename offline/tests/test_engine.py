import asyncio

from offline.engine import EngineState, SyncEngine
from offline.exceptions import NetworkError
from offline.models import DraftRecord, QueueStatus

from .fakes import FakeTransport, StoreTestCase, accept_all, fail_all, unreachable, wait_until


class SyncEngineTestBase(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.transport = FakeTransport()
        self.engine = SyncEngine(self.queue, self.transport, self.connectivity, interval=60)

    async def asyncTearDown(self):
        await self.engine.stop()
        await super().asyncTearDown()

    async def entry(self, queue_id):
        return await self.queue.get(queue_id)


class SyncCycleTests(SyncEngineTestBase):
    async def test_cycle_syncs_pending_entries(self):
        await self.store.insert_draft(DraftRecord(client_uuid="u1"))
        entry = await self.enqueue("u1", notes="calm")

        report = await self.engine.run_cycle()

        self.assertEqual((report.attempted, report.synced, report.failed), (1, 1, 0))
        self.assertEqual(self.transport.batches[0], [entry.to_batch_item()])
        self.assertEqual((await self.entry(entry.queue_id)).status, QueueStatus.SYNCED)
        self.assertTrue((await self.store.get_draft("u1")).synced)
        self.assertEqual(self.engine.state, EngineState.IDLE)

    async def test_empty_queue_makes_no_call(self):
        report = await self.engine.run_cycle()

        self.assertEqual(report.attempted, 0)
        self.assertEqual(self.transport.batches, [])

    async def test_offline_trigger_is_a_no_op(self):
        entry = await self.enqueue("u1")
        self.connectivity.set_online(False)

        self.assertIsNone(await self.engine.run_cycle())
        self.assertIsNone(self.engine.trigger_sync())

        stored = await self.entry(entry.queue_id)
        self.assertEqual(self.transport.batches, [])
        self.assertEqual((stored.status, stored.retry_count), (QueueStatus.PENDING, 0))

    async def test_network_failure_leaves_entries_untouched(self):
        first = await self.enqueue("u1")
        second = await self.enqueue("u2")
        self.transport.responder = unreachable

        report = await self.engine.run_cycle()

        self.assertTrue(report.aborted)
        self.assertEqual(report.error, "Cannot connect to host")
        for queue_id in (first.queue_id, second.queue_id):
            stored = await self.entry(queue_id)
            self.assertEqual((stored.status, stored.retry_count, stored.last_error), (QueueStatus.PENDING, 0, None))
        self.assertEqual(self.engine.state, EngineState.IDLE)

        self.transport.responder = accept_all
        report = await self.engine.run_cycle()
        self.assertEqual(report.synced, 2)

    async def test_unexpected_error_resets_latch(self):
        await self.enqueue("u1")

        def explode(items):
            raise RuntimeError("boom")

        self.transport.responder = explode

        with self.assertRaises(RuntimeError):
            await self.engine.run_cycle()
        self.assertEqual(self.engine.state, EngineState.IDLE)

    async def test_results_are_matched_by_client_uuid(self):
        first = await self.enqueue("u1")
        second = await self.enqueue("u2")

        def reversed_mixed(items):
            return [
                {"client_uuid": "u2", "status": "failed", "error": "hive_id: Invalid"},
                {"client_uuid": "u1", "status": "synced", "server_id": "S1"},
            ]

        self.transport.responder = reversed_mixed

        report = await self.engine.run_cycle()

        stored_first = await self.entry(first.queue_id)
        stored_second = await self.entry(second.queue_id)
        self.assertEqual((report.synced, report.failed), (1, 1))
        self.assertEqual((stored_first.status, stored_first.server_id), (QueueStatus.SYNCED, "S1"))
        self.assertEqual((stored_second.status, stored_second.retry_count), (QueueStatus.FAILED, 1))
        self.assertEqual(stored_second.last_error, "hive_id: Invalid")

    async def test_unknown_and_malformed_results_are_ignored(self):
        first = await self.enqueue("u1")
        second = await self.enqueue("u2")
        self.transport.responder = lambda items: [
            {"client_uuid": "someone-else", "status": "synced", "server_id": "X"},
            {"status": "synced"},
            {"client_uuid": "u1", "status": "exploded"},
            "garbage",
            {"client_uuid": "u1", "status": "duplicate", "server_id": "S1"},
        ]

        report = await self.engine.run_cycle()

        self.assertEqual((report.duplicate, report.unmatched), (1, 4))
        self.assertEqual((await self.entry(first.queue_id)).status, QueueStatus.SYNCED)
        stored_second = await self.entry(second.queue_id)
        self.assertEqual((stored_second.status, stored_second.retry_count), (QueueStatus.PENDING, 0))

    async def test_retry_bookkeeping_stops_at_cap(self):
        entry = await self.enqueue("u1")
        self.transport.responder = fail_all("hive_id: Invalid")

        for expected in (1, 2, 3):
            await self.engine.run_cycle()
            self.assertEqual((await self.entry(entry.queue_id)).retry_count, expected)

        report = await self.engine.run_cycle()

        self.assertEqual(report.attempted, 0)
        self.assertEqual(len(self.transport.batches), 3)
        self.assertEqual((await self.entry(entry.queue_id)).retry_count, 3)
        self.assertEqual([e.queue_id for e in await self.queue.dead_letters()], [entry.queue_id])


class SyncLatchTests(SyncEngineTestBase):
    async def test_triggers_during_cycle_are_dropped(self):
        await self.enqueue("u1")
        self.transport.gate = asyncio.Event()

        in_flight = asyncio.create_task(self.engine.run_cycle())
        await wait_until(lambda: self.transport.batches)

        self.assertEqual(self.engine.state, EngineState.SYNCING)
        self.assertIsNone(await self.engine.run_cycle())
        self.assertIsNone(self.engine.trigger_sync())

        self.transport.gate.set()
        report = await in_flight

        self.assertEqual(report.synced, 1)
        self.assertEqual(len(self.transport.batches), 1)
        self.assertEqual(self.engine.state, EngineState.IDLE)

    async def test_simultaneous_triggers_make_one_call(self):
        await self.enqueue("u1")

        self.engine.trigger_sync()
        self.engine.trigger_sync()
        await self.engine.join()

        self.assertEqual(len(self.transport.batches), 1)

    async def test_entries_added_mid_cycle_wait_for_next_cycle(self):
        first = await self.enqueue("u1")
        self.transport.gate = asyncio.Event()

        in_flight = asyncio.create_task(self.engine.run_cycle())
        await wait_until(lambda: self.transport.batches)
        late = await self.enqueue("u2")
        self.transport.gate.set()
        await in_flight

        self.assertEqual([i["client_uuid"] for i in self.transport.batches[0]], ["u1"])
        self.assertEqual((await self.entry(late.queue_id)).status, QueueStatus.PENDING)

        self.transport.gate = None
        await self.engine.run_cycle()

        self.assertEqual([i["client_uuid"] for i in self.transport.batches[1]], ["u2"])
        self.assertEqual((await self.entry(first.queue_id)).status, QueueStatus.SYNCED)


class SyncTriggerTests(SyncEngineTestBase):
    async def test_start_while_online_syncs(self):
        await self.enqueue("u1")

        await self.engine.start()
        await self.engine.join()

        self.assertEqual(len(self.transport.batches), 1)

    async def test_start_while_offline_waits_for_connectivity(self):
        await self.enqueue("u1")
        self.connectivity.set_online(False)

        await self.engine.start()
        await asyncio.sleep(0.05)
        self.assertEqual(self.transport.batches, [])

        self.connectivity.set_online(True)
        await wait_until(lambda: self.transport.batches)
        await self.engine.join()

        self.assertEqual(len(self.transport.batches), 1)

    async def test_periodic_timer_syncs_new_entries(self):
        self.engine.interval = 0.05
        await self.engine.start()
        await self.engine.join()

        await self.enqueue("u1")
        await wait_until(lambda: self.transport.batches)
        await self.engine.join()

        self.assertEqual(self.transport.batches[0][0]["client_uuid"], "u1")

    async def test_stop_unsubscribes(self):
        await self.enqueue("u1")
        self.connectivity.set_online(False)
        await self.engine.start()
        await self.engine.stop()

        self.connectivity.set_online(True)
        await asyncio.sleep(0.05)

        self.assertEqual(self.transport.batches, [])
        self.assertFalse(self.engine.running)


class SyncBatchSizeTests(SyncEngineTestBase):
    async def test_backlog_larger_than_server_cap_drains(self):
        def capped(items):
            if len(items) > 100:
                raise NetworkError("Sync endpoint returned HTTP 400: Maximum 100 items per batch")
            return accept_all(items)

        self.transport.responder = capped
        for n in range(101):
            await self.enqueue(f"u{n}")

        report = await self.engine.run_cycle()
        await self.engine.join()

        self.assertEqual((report.attempted, report.synced, report.more_pending), (100, 100, True))
        self.assertEqual([len(batch) for batch in self.transport.batches], [100, 1])
        counts = await self.queue.counts()
        self.assertEqual((counts["synced"], counts["pending"]), (101, 0))

    async def test_oldest_entries_go_first(self):
        self.engine.batch_size = 2
        for n in range(5):
            await self.enqueue(f"u{n}")

        await self.engine.run_cycle()
        await self.engine.join()

        self.assertEqual(
            [[item["client_uuid"] for item in batch] for batch in self.transport.batches],
            [["u0", "u1"], ["u2", "u3"], ["u4"]],
        )

    async def test_full_batch_without_progress_waits_for_next_trigger(self):
        self.engine.batch_size = 2
        self.transport.responder = lambda items: []
        for n in range(3):
            await self.enqueue(f"u{n}")

        report = await self.engine.run_cycle()
        await self.engine.join()

        self.assertFalse(report.more_pending)
        self.assertEqual(len(self.transport.batches), 1)

    async def test_aborted_full_batch_is_not_retried_immediately(self):
        self.engine.batch_size = 2
        self.transport.responder = unreachable
        for n in range(3):
            await self.enqueue(f"u{n}")

        report = await self.engine.run_cycle()
        await self.engine.join()

        self.assertTrue(report.aborted)
        self.assertEqual(len(self.transport.batches), 1)

from offline.exceptions import QueueEntryNotFoundError
from offline.models import DraftRecord, ItemResult, Outcome, QueueStatus

from .fakes import StoreTestCase


class SyncQueueTests(StoreTestCase):
    async def fail(self, entry, times=1, error="hive_id: Invalid"):
        for _ in range(times):
            entry = await self.queue.apply_outcome(entry, ItemResult(entry.client_uuid, Outcome.FAILED, error=error))
        return entry

    async def test_eligible_excludes_synced(self):
        synced = await self.enqueue("u1")
        pending = await self.enqueue("u2")
        await self.queue.apply_outcome(synced, ItemResult("u1", Outcome.SYNCED, server_id="S1"))

        eligible = await self.queue.eligible_for_sync()

        self.assertEqual([e.queue_id for e in eligible], [pending.queue_id])

    async def test_eligible_respects_limit(self):
        await self.fail(await self.enqueue("u1"), times=3)
        second = await self.enqueue("u2")
        third = await self.enqueue("u3")
        await self.enqueue("u4")

        eligible = await self.queue.eligible_for_sync(limit=2)

        self.assertEqual([e.queue_id for e in eligible], [second.queue_id, third.queue_id])

    async def test_retry_cap_boundary(self):
        entry = await self.enqueue("u1")

        entry = await self.fail(entry, times=2)
        self.assertEqual(entry.retry_count, 2)
        self.assertEqual([e.queue_id for e in await self.queue.eligible_for_sync()], [entry.queue_id])

        entry = await self.fail(entry)
        self.assertEqual(entry.retry_count, 3)
        self.assertEqual(await self.queue.eligible_for_sync(), [])

    async def test_synced_outcome_marks_draft(self):
        await self.store.insert_draft(DraftRecord(client_uuid="u1"))
        entry = await self.enqueue("u1")

        updated = await self.queue.apply_outcome(entry, ItemResult("u1", Outcome.SYNCED, server_id="S1"))

        draft = await self.store.get_draft("u1")
        self.assertEqual(updated.status, QueueStatus.SYNCED)
        self.assertEqual(updated.retry_count, 0)
        self.assertTrue(draft.synced)
        self.assertEqual(draft.server_id, "S1")
        self.assertIsNotNone(draft.synced_at)

    async def test_duplicate_outcome_counts_as_success(self):
        await self.store.insert_draft(DraftRecord(client_uuid="u1"))
        entry = await self.enqueue("u1")
        entry = await self.fail(entry)

        updated = await self.queue.apply_outcome(entry, ItemResult("u1", Outcome.DUPLICATE, server_id="S1"))

        self.assertEqual(updated.status, QueueStatus.SYNCED)
        self.assertIsNone(updated.last_error)
        self.assertEqual((await self.store.get_draft("u1")).server_id, "S1")

    async def test_failed_outcome_records_error(self):
        await self.store.insert_draft(DraftRecord(client_uuid="u1"))
        entry = await self.enqueue("u1")

        updated = await self.fail(entry, error="ended_at: ended_at cannot be earlier than started_at.")

        self.assertEqual(updated.status, QueueStatus.FAILED)
        self.assertEqual(updated.retry_count, 1)
        self.assertEqual(updated.last_error, "ended_at: ended_at cannot be earlier than started_at.")
        self.assertFalse((await self.store.get_draft("u1")).synced)

    async def test_failed_outcome_without_message(self):
        entry = await self.enqueue("u1")

        updated = await self.queue.apply_outcome(entry, ItemResult("u1", Outcome.FAILED))

        self.assertEqual(updated.last_error, "Sync failed")

    async def test_dead_letters_and_requeue(self):
        stuck = await self.fail(await self.enqueue("u1"), times=3)
        await self.fail(await self.enqueue("u2"))

        dead = await self.queue.dead_letters()
        self.assertEqual([e.queue_id for e in dead], [stuck.queue_id])

        requeued = await self.queue.requeue(stuck.queue_id)

        self.assertEqual(requeued.status, QueueStatus.PENDING)
        self.assertEqual(requeued.retry_count, 0)
        self.assertIsNone(requeued.last_error)
        self.assertEqual(await self.queue.dead_letters(), [])
        self.assertIn(stuck.queue_id, [e.queue_id for e in await self.queue.eligible_for_sync()])

    async def test_requeue_unknown_entry(self):
        with self.assertRaises(QueueEntryNotFoundError):
            await self.queue.requeue(999)

    async def test_requeue_leaves_synced_entry_alone(self):
        entry = await self.enqueue("u1")
        synced = await self.queue.apply_outcome(entry, ItemResult("u1", Outcome.SYNCED, server_id="S1"))

        self.assertEqual(await self.queue.requeue(entry.queue_id), synced)

    async def test_counts(self):
        await self.fail(await self.enqueue("u1"), times=3)
        await self.fail(await self.enqueue("u2"))
        await self.enqueue("u3")

        counts = await self.queue.counts()

        self.assertEqual(counts, {"pending": 1, "syncing": 0, "synced": 0, "failed": 2, "dead_letter": 1})

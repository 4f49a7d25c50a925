import uuid

from offline.drafts import DraftManager
from offline.exceptions import DraftNotFoundError
from offline.models import QueueStatus

from .fakes import StoreTestCase


class DraftManagerTests(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.drafts = DraftManager(self.store, self.queue)

    async def test_upsert_without_id_creates_draft(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1", "client_uuid": "ignored"})

        draft = await self.drafts.get(client_uuid)
        self.assertEqual(str(uuid.UUID(client_uuid)), client_uuid)
        self.assertEqual(draft.fields["hive_id"], "h1")
        self.assertNotIn("client_uuid", draft.fields)
        self.assertIn("started_at", draft.fields)
        self.assertIn("offline_created_at", draft.fields)
        self.assertFalse(draft.synced)

    async def test_upsert_keeps_supplied_started_at(self):
        client_uuid = await self.drafts.upsert(fields={"started_at": "2024-05-01T10:00:00Z"})

        draft = await self.drafts.get(client_uuid)
        self.assertEqual(draft.fields["started_at"], "2024-05-01T10:00:00Z")

    async def test_upsert_with_unknown_id_creates_under_that_id(self):
        client_uuid = await self.drafts.upsert("3f0c1d9e-8a35-4a8e-9f59-0d3c9f7e4b21", {"hive_id": "h1"})

        self.assertEqual(client_uuid, "3f0c1d9e-8a35-4a8e-9f59-0d3c9f7e4b21")
        self.assertIsNotNone(await self.drafts.get(client_uuid))

    async def test_upsert_merges_last_write_wins(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1", "notes": "first"})
        await self.store.update_draft(client_uuid, synced=True)

        same = await self.drafts.upsert(client_uuid, {"notes": "second", "location_lat": 40.0})

        draft = await self.drafts.get(client_uuid)
        self.assertEqual(same, client_uuid)
        self.assertEqual(draft.fields["hive_id"], "h1")
        self.assertEqual(draft.fields["notes"], "second")
        self.assertEqual(draft.fields["location_lat"], 40.0)
        self.assertFalse(draft.synced)

    async def test_finalize_unknown_draft(self):
        with self.assertRaises(DraftNotFoundError):
            await self.drafts.finalize_and_enqueue("missing")

        self.assertEqual(await self.queue.eligible_for_sync(), [])

    async def test_finalize_stamps_ended_at(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1"})

        entry = await self.drafts.finalize_and_enqueue(client_uuid)

        draft = await self.drafts.get(client_uuid)
        self.assertIn("ended_at", draft.fields)
        self.assertEqual(entry.payload_snapshot["ended_at"], draft.fields["ended_at"])

    async def test_finalize_keeps_existing_ended_at(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1", "ended_at": "2024-05-01T11:00:00Z"})

        entry = await self.drafts.finalize_and_enqueue(client_uuid)

        self.assertEqual(entry.payload_snapshot["ended_at"], "2024-05-01T11:00:00Z")

    async def test_finalize_queues_one_pending_create(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1"})

        entry = await self.drafts.finalize_and_enqueue(client_uuid)

        self.assertEqual(entry.status, QueueStatus.PENDING)
        self.assertEqual(entry.retry_count, 0)
        self.assertEqual(entry.action, "create")
        self.assertEqual(entry.entity_kind, "inspection")
        self.assertEqual(entry.client_uuid, client_uuid)
        self.assertEqual(entry.payload_snapshot["client_uuid"], client_uuid)
        self.assertEqual(entry.payload_snapshot["hive_id"], "h1")
        self.assertEqual(len(await self.queue.eligible_for_sync()), 1)

    async def test_edits_after_finalize_do_not_reach_snapshot(self):
        client_uuid = await self.drafts.upsert(fields={"hive_id": "h1", "notes": "at finalize"})
        entry = await self.drafts.finalize_and_enqueue(client_uuid)

        await self.drafts.upsert(client_uuid, {"notes": "edited later"})

        stored = await self.queue.get(entry.queue_id)
        self.assertEqual(stored.payload_snapshot["notes"], "at finalize")
        self.assertEqual((await self.drafts.get(client_uuid)).fields["notes"], "edited later")

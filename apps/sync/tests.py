import uuid
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from apps.activity.models import ActivityLog
from apps.inspections.models import Hive, Inspection
from apps.sync.services import InspectionSyncHandler
from apps.tasks.models import Task
from apps.weather.services import WeatherError

SYNC_URL = "/api/v1/sync/queue/"


class SyncQueueTestBase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = get_user_model().objects.create_user(username="inspector", password="pass1234")
        self.hive = Hive.objects.create(label="Hive 1")
        self.client.force_authenticate(user=self.user)

    def inspection_item(self, client_uuid=None, **payload):
        data = {"hive_id": str(self.hive.id), "started_at": "2024-05-01T10:00:00Z"}
        data.update(payload)
        return {
            "entity_type": "inspection",
            "entity_id": None,
            "client_uuid": client_uuid or str(uuid.uuid4()),
            "action": "create",
            "payload_json": data,
        }

    def post_items(self, items):
        return self.client.post(SYNC_URL, {"items": items}, format="json")


class SyncQueueEndpointTests(SyncQueueTestBase):
    def test_new_item_is_synced_with_server_id(self):
        item = self.inspection_item()

        response = self.post_items([item])

        self.assertEqual(response.status_code, 200)
        result = response.json()["results"][0]
        self.assertEqual(result["client_uuid"], item["client_uuid"])
        self.assertEqual(result["status"], "synced")
        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        self.assertEqual(result["server_id"], str(inspection.id))
        self.assertEqual(inspection.inspector, self.user)
        self.assertEqual(inspection.hive, self.hive)

    def test_resubmitted_item_is_duplicate_with_same_server_id(self):
        item = self.inspection_item()

        first = self.post_items([item]).json()["results"][0]
        second = self.post_items([item]).json()["results"][0]

        self.assertEqual(first["status"], "synced")
        self.assertEqual(second["status"], "duplicate")
        self.assertEqual(second["server_id"], first["server_id"])
        self.assertEqual(Inspection.objects.filter(client_uuid=item["client_uuid"]).count(), 1)

    def test_invalid_item_fails_alone(self):
        items = [
            self.inspection_item(),
            self.inspection_item(hive_id="not-a-hive"),
            self.inspection_item(),
        ]

        response = self.post_items(items)

        self.assertEqual(response.status_code, 207)
        results = response.json()["results"]
        self.assertEqual([r["status"] for r in results], ["synced", "failed", "synced"])
        self.assertEqual([r["client_uuid"] for r in results], [i["client_uuid"] for i in items])
        self.assertIn("hive_id", results[1]["error"])
        self.assertNotIn("server_id", results[1])
        self.assertTrue(Inspection.objects.filter(client_uuid=items[0]["client_uuid"]).exists())
        self.assertFalse(Inspection.objects.filter(client_uuid=items[1]["client_uuid"]).exists())
        self.assertTrue(Inspection.objects.filter(client_uuid=items[2]["client_uuid"]).exists())

    def test_all_succeeded_returns_200(self):
        response = self.post_items([self.inspection_item(), self.inspection_item()])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["results"]), 2)

    def test_empty_batch(self):
        response = self.post_items([])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["results"], [])

    def test_unauthenticated_request_is_rejected(self):
        self.client.force_authenticate(user=None)

        response = self.post_items([self.inspection_item()])

        self.assertEqual(response.status_code, 401)
        self.assertEqual(Inspection.objects.count(), 0)

    def test_items_must_be_a_list(self):
        response = self.client.post(SYNC_URL, {"items": "nope"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("items", response.json())

    def test_missing_items_is_rejected(self):
        response = self.client.post(SYNC_URL, {}, format="json")

        self.assertEqual(response.status_code, 400)

    @override_settings(SYNC_MAX_BATCH_SIZE=2)
    def test_oversized_batch_is_rejected(self):
        response = self.post_items([self.inspection_item() for _ in range(3)])

        self.assertEqual(response.status_code, 400)
        self.assertIn("Maximum 2 items per batch", str(response.json()["items"]))
        self.assertEqual(Inspection.objects.count(), 0)

    def test_path_without_trailing_slash(self):
        response = self.client.post("/api/v1/sync/queue", {"items": [self.inspection_item()]}, format="json")

        self.assertEqual(response.status_code, 200)


class SyncItemValidationTests(SyncQueueTestBase):
    def test_non_object_item_fails_alone(self):
        first = self.inspection_item()
        last = self.inspection_item()

        response = self.post_items([first, "junk", None, last])

        self.assertEqual(response.status_code, 207)
        results = response.json()["results"]
        self.assertEqual([r["status"] for r in results], ["synced", "failed", "failed", "synced"])
        self.assertEqual(results[1], {"client_uuid": None, "status": "failed", "error": "Item must be an object."})
        self.assertEqual(results[2]["error"], "Item must be an object.")
        self.assertTrue(Inspection.objects.filter(client_uuid=first["client_uuid"]).exists())
        self.assertTrue(Inspection.objects.filter(client_uuid=last["client_uuid"]).exists())

    def test_unsupported_entity_type(self):
        item = self.inspection_item()
        item["entity_type"] = "photo"

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertEqual(result["error"], "Unsupported operation: create photo")

    def test_unsupported_action(self):
        item = self.inspection_item()
        item["action"] = "delete"

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("Unsupported operation", result["error"])

    def test_client_uuid_must_be_a_uuid(self):
        response = self.post_items([self.inspection_item(client_uuid="abc"), self.inspection_item()])

        results = response.json()["results"]
        self.assertEqual(response.status_code, 207)
        self.assertEqual(results[0], {"client_uuid": "abc", "status": "failed", "error": "client_uuid: Must be a valid UUID."})
        self.assertEqual(results[1]["status"], "synced")

    def test_missing_envelope_field(self):
        item = self.inspection_item()
        del item["action"]

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("action", result["error"])
        self.assertEqual(result["client_uuid"], item["client_uuid"])

    def test_payload_must_be_an_object(self):
        item = self.inspection_item()
        item["payload_json"] = ["not", "an", "object"]

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("payload_json", result["error"])

    def test_ended_before_started_is_rejected(self):
        item = self.inspection_item(ended_at="2024-05-01T09:00:00Z")

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("ended_at", result["error"])

    def test_out_of_range_location_is_rejected(self):
        item = self.inspection_item(location_lat=123.0, location_lng=10.0)

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("location_lat", result["error"])

    def test_sections_are_validated(self):
        item = self.inspection_item(sections_json={"brood": {"pattern": "checkered"}})

        result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "failed")
        self.assertIn("sections_json.brood.pattern", result["error"])

    def test_sections_and_notes_are_stored(self):
        sections = {"queen": {"present": True, "marked": False}, "stores": {"honey": "heavy"}}
        item = self.inspection_item(sections_json=sections, notes="Calm colony")

        self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        self.assertEqual(inspection.sections_json["queen"], {"present": True, "marked": False})
        self.assertEqual(inspection.notes, "Calm colony")


class SyncPersistenceTests(SyncQueueTestBase):
    def test_database_error_fails_only_that_item(self):
        items = [self.inspection_item(), self.inspection_item()]
        original_create = InspectionSyncHandler.create
        calls = []

        def flaky_create(handler, client_uuid, data, user):
            calls.append(client_uuid)
            if len(calls) == 1:
                raise DatabaseError("disk I/O error")
            return original_create(handler, client_uuid, data, user)

        with patch.object(InspectionSyncHandler, "create", autospec=True, side_effect=flaky_create):
            response = self.post_items(items)

        results = response.json()["results"]
        self.assertEqual(response.status_code, 207)
        self.assertEqual(results[0]["status"], "failed")
        self.assertIn("Could not persist inspection", results[0]["error"])
        self.assertEqual(results[1]["status"], "synced")

    def test_unexpected_error_is_reported_per_item(self):
        with patch.object(InspectionSyncHandler, "create", side_effect=RuntimeError("boom")):
            response = self.post_items([self.inspection_item()])

        self.assertEqual(response.status_code, 207)
        self.assertEqual(response.json()["results"][0]["error"], "boom")

    def test_concurrent_insert_resolves_to_duplicate(self):
        item = self.inspection_item()
        existing = Inspection.objects.create(
            client_uuid=item["client_uuid"],
            hive=self.hive,
            inspector=self.user,
            started_at="2024-05-01T10:00:00Z",
        )

        # the row appears between the idempotency lookup and the insert
        with patch.object(InspectionSyncHandler, "find_existing", return_value=None):
            result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "duplicate")
        self.assertEqual(result["server_id"], str(existing.id))
        self.assertEqual(Inspection.objects.filter(client_uuid=item["client_uuid"]).count(), 1)


class SyncSideEffectTests(SyncQueueTestBase):
    def create_due_task(self, hive=None, type=Task.TYPE_INSPECTION_DUE, status="pending"):
        return Task.objects.create(
            hive=hive or self.hive,
            type=type,
            title="Inspect hive",
            due_date="2024-05-01",
            status=status,
        )

    def test_completed_inspection_is_locked(self):
        item = self.inspection_item(ended_at="2024-05-01T10:30:00Z")

        self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        self.assertTrue(inspection.is_locked)

    def test_open_inspection_is_not_locked(self):
        item = self.inspection_item()

        self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        self.assertFalse(inspection.is_locked)

    def test_completed_inspection_completes_due_tasks(self):
        due = self.create_due_task()
        other_hive_task = self.create_due_task(hive=Hive.objects.create(label="Hive 2"))
        other_type_task = self.create_due_task(type="feeding")
        item = self.inspection_item(ended_at="2024-05-01T10:30:00Z")

        self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        due.refresh_from_db()
        other_hive_task.refresh_from_db()
        other_type_task.refresh_from_db()
        self.assertEqual(due.status, "completed")
        self.assertEqual(due.inspection, inspection)
        self.assertIsNotNone(due.completed_at)
        self.assertEqual(other_hive_task.status, "pending")
        self.assertEqual(other_type_task.status, "pending")

    def test_open_inspection_leaves_tasks_pending(self):
        due = self.create_due_task()

        self.post_items([self.inspection_item()])

        due.refresh_from_db()
        self.assertEqual(due.status, "pending")

    def test_task_completion_failure_does_not_fail_item(self):
        due = self.create_due_task()
        item = self.inspection_item(ended_at="2024-05-01T10:30:00Z")

        with patch(
            "apps.inspections.services.inspection_service.TaskService.complete_due_inspection_tasks",
            side_effect=DatabaseError("locked"),
        ):
            result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "synced")
        self.assertTrue(Inspection.objects.get(client_uuid=item["client_uuid"]).is_locked)
        due.refresh_from_db()
        self.assertEqual(due.status, "pending")

    def test_activity_is_logged_once(self):
        item = self.inspection_item()

        self.post_items([item])
        self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        entries = ActivityLog.objects.filter(action="sync_inspection")
        self.assertEqual(entries.count(), 1)
        entry = entries.get()
        self.assertEqual(entry.actor, self.user)
        self.assertEqual(entry.entity_type, "inspection")
        self.assertEqual(entry.entity_id, str(inspection.id))
        self.assertEqual(entry.metadata_json, {"client_uuid": item["client_uuid"]})

    def test_activity_log_failure_does_not_fail_item(self):
        item = self.inspection_item()

        with patch("apps.activity.services.ActivityLog.objects.create", side_effect=DatabaseError("readonly")):
            result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "synced")
        self.assertTrue(Inspection.objects.filter(client_uuid=item["client_uuid"]).exists())

    @patch("apps.inspections.services.inspection_service.WeatherService")
    def test_weather_is_attached_after_commit(self, weather_service):
        weather = {"current": {"temp": 68}, "timestamp": "2024-05-01T10:00:00+00:00", "location": {"lat": 40.0, "lng": -74.0}}
        weather_service.return_value.get_weather_data.return_value = weather
        item = self.inspection_item(location_lat=40.0, location_lng=-74.0)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.post_items([item])

        inspection = Inspection.objects.get(client_uuid=item["client_uuid"])
        self.assertIsNone(inspection.weather_json)
        weather_service.return_value.get_weather_data.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        callbacks[0]()

        inspection.refresh_from_db()
        self.assertEqual(inspection.weather_json, weather)
        weather_service.return_value.get_weather_data.assert_called_once_with(40.0, -74.0)

    @patch("apps.inspections.services.inspection_service.WeatherService")
    def test_weather_failure_does_not_fail_item(self, weather_service):
        weather_service.return_value.get_weather_data.side_effect = WeatherError("timed out")
        item = self.inspection_item(location_lat=40.0, location_lng=-74.0)

        with self.captureOnCommitCallbacks(execute=True):
            result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "synced")
        self.assertIsNone(Inspection.objects.get(client_uuid=item["client_uuid"]).weather_json)

    def test_no_weather_lookup_without_location(self):
        with self.captureOnCommitCallbacks() as callbacks:
            self.post_items([self.inspection_item()])

        self.assertEqual(callbacks, [])

    @patch("apps.inspections.services.inspection_service.WeatherService")
    def test_no_weather_lookup_for_duplicates(self, weather_service):
        item = self.inspection_item(location_lat=40.0, location_lng=-74.0)
        self.post_items([item])

        with self.captureOnCommitCallbacks() as callbacks:
            result = self.post_items([item]).json()["results"][0]

        self.assertEqual(result["status"], "duplicate")
        self.assertEqual(callbacks, [])

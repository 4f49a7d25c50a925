import uuid
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from apps.tasks.models import Task
from apps.tasks.services import TaskService
from .models import Hive, Inspection
from .services import InspectionService


class InspectionServiceTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="inspector", password="pass1234")
        self.hive = Hive.objects.create(label="Hive 1")

    def create_inspection(self, **kwargs):
        data = {"hive": self.hive, "inspector": self.user, "started_at": timezone.now(), "client_uuid": uuid.uuid4()}
        data.update(kwargs)
        return Inspection.objects.create(**data)

    def test_create_from_sync(self):
        client_uuid = uuid.uuid4()
        data = {"hive": self.hive, "started_at": timezone.now(), "notes": None}

        inspection, created = InspectionService.create_from_sync(client_uuid, data, self.user)

        self.assertTrue(created)
        self.assertEqual(inspection.client_uuid, client_uuid)
        self.assertEqual(inspection.notes, "")
        self.assertIsNone(inspection.locked_at)
        self.assertEqual(InspectionService.find_by_client_uuid(client_uuid), inspection)

    def test_find_by_unknown_client_uuid(self):
        self.assertIsNone(InspectionService.find_by_client_uuid(uuid.uuid4()))

    def test_finalize_locks_inspection(self):
        inspection = self.create_inspection(ended_at=timezone.now())

        InspectionService.finalize(inspection)

        inspection.refresh_from_db()
        self.assertTrue(inspection.is_locked)

    def test_finalize_survives_task_failure(self):
        inspection = self.create_inspection(ended_at=timezone.now())

        with patch.object(TaskService, "complete_due_inspection_tasks", side_effect=DatabaseError("locked")):
            InspectionService.finalize(inspection)

        inspection.refresh_from_db()
        self.assertTrue(inspection.is_locked)

    def test_enrich_skips_inspections_without_location(self):
        inspection = self.create_inspection()

        with patch("apps.inspections.services.inspection_service.WeatherService") as weather_service:
            result = InspectionService.enrich_with_weather(inspection.id)

        self.assertIsNone(result)
        weather_service.assert_not_called()

    def test_enrich_unknown_inspection(self):
        self.assertIsNone(InspectionService.enrich_with_weather(uuid.uuid4()))

    def test_has_location(self):
        self.assertFalse(self.create_inspection(location_lat=40.0).has_location)
        self.assertTrue(self.create_inspection(location_lat=40.0, location_lng=-74.0).has_location)


class TaskServiceTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="inspector", password="pass1234")
        self.hive = Hive.objects.create(label="Hive 1")
        self.inspection = Inspection.objects.create(
            client_uuid=uuid.uuid4(), hive=self.hive, inspector=self.user, started_at=timezone.now()
        )

    def test_completes_only_pending_inspection_due_tasks(self):
        pending = Task.objects.create(hive=self.hive, type=Task.TYPE_INSPECTION_DUE, title="Inspect", due_date="2024-05-01")
        cancelled = Task.objects.create(
            hive=self.hive, type=Task.TYPE_INSPECTION_DUE, title="Inspect", due_date="2024-04-01", status="cancelled"
        )

        completed = TaskService.complete_due_inspection_tasks(self.inspection)

        self.assertEqual(completed, 1)
        pending.refresh_from_db()
        cancelled.refresh_from_db()
        self.assertEqual(pending.status, "completed")
        self.assertEqual(pending.inspection, self.inspection)
        self.assertEqual(cancelled.status, "cancelled")

    def test_nothing_to_complete(self):
        self.assertEqual(TaskService.complete_due_inspection_tasks(self.inspection), 0)

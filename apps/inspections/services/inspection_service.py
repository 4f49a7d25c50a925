from django.db import transaction, IntegrityError, DatabaseError
from django.utils import timezone
from apps.activity.services import log_activity
from apps.inspections.models import Inspection
from apps.tasks.services import TaskService
from apps.weather.services import WeatherService, WeatherError
import logging

logger = logging.getLogger(__name__)


class InspectionService:
    """
    Service layer for inspections captured offline
    Handles idempotent creation, finalization side effects and weather enrichment
    """

    @staticmethod
    def find_by_client_uuid(client_uuid):
        """Return the inspection already stored under a client identifier, if any"""
        return Inspection.objects.filter(client_uuid=client_uuid).first()

    @staticmethod
    def create_from_sync(client_uuid, data: dict, user):
        """
        Create an inspection from a validated offline payload

        Args:
            client_uuid: Client-generated identifier (idempotency key)
            data: Validated payload (CreateInspectionSerializer.validated_data)
            user: User submitting the batch

        Returns:
            (Inspection, created) tuple; created is False when a concurrent
            request stored the same client_uuid first

        Raises:
            IntegrityError, DatabaseError: If the insert fails for any other reason
        """
        try:
            inspection = InspectionService._persist(client_uuid, data, user)
        except IntegrityError:
            existing = InspectionService.find_by_client_uuid(client_uuid)
            if existing is None:
                raise
            logger.warning(f"Race condition detected for client_uuid {client_uuid} - returning existing inspection {existing.id}")
            return existing, False

        log_activity(
            actor=user,
            action="sync_inspection",
            entity_type="inspection",
            entity_id=inspection.id,
            metadata={"client_uuid": str(client_uuid)},
        )

        return inspection, True

    @staticmethod
    @transaction.atomic
    def _persist(client_uuid, data: dict, user):
        logger.info(f"Creating inspection {client_uuid} for user {user.pk}")

        sections = data.get("sections_json")

        inspection = Inspection.objects.create(
            client_uuid=client_uuid,
            hive=data["hive"],
            inspector=user,
            started_at=data["started_at"],
            ended_at=data.get("ended_at"),
            offline_created_at=data.get("offline_created_at"),
            location_lat=data.get("location_lat"),
            location_lng=data.get("location_lng"),
            location_accuracy_m=data.get("location_accuracy_m"),
            sections_json=dict(sections) if sections is not None else None,
            notes=data.get("notes") or "",
        )

        if inspection.ended_at:
            InspectionService.finalize(inspection)

        if inspection.has_location:
            transaction.on_commit(lambda: InspectionService.enrich_with_weather(inspection.id), robust=True)

        logger.info(f"Created inspection {inspection.id} (client_uuid {client_uuid})")
        return inspection

    @staticmethod
    def finalize(inspection):
        """
        Lock a completed inspection and let it supersede outstanding due tasks
        Task completion failures are logged; they never undo the inspection itself
        """
        inspection.locked_at = timezone.now()
        inspection.save(update_fields=["locked_at", "updated_at"])

        try:
            with transaction.atomic():
                TaskService.complete_due_inspection_tasks(inspection)
        except DatabaseError as e:
            logger.error(f"Failed to auto-complete inspection_due tasks for inspection {inspection.id}: {str(e)}")

    @staticmethod
    def enrich_with_weather(inspection_id):
        """
        Post-commit hook: attach current weather to a stored inspection
        Any lookup failure leaves weather_json empty
        """
        inspection = Inspection.objects.filter(id=inspection_id).only("id", "location_lat", "location_lng").first()
        if inspection is None or not inspection.has_location:
            return None

        try:
            weather = WeatherService().get_weather_data(inspection.location_lat, inspection.location_lng)
        except WeatherError as e:
            logger.warning(f"Weather enrichment skipped for inspection {inspection_id}: {str(e)}")
            return None

        Inspection.objects.filter(id=inspection_id).update(weather_json=weather)
        logger.info(f"Attached weather data to inspection {inspection_id}")
        return weather

import logging
import uuid

from django.db import DatabaseError
from rest_framework import serializers

from apps.inspections.serializers import CreateInspectionSerializer
from apps.inspections.services import InspectionService
from .exceptions import ItemError, ItemPersistenceError, ItemValidationError, UnsupportedOperationError
from .serializers import SyncQueueItemSerializer

logger = logging.getLogger(__name__)


STATUS_SYNCED = "synced"
STATUS_DUPLICATE = "duplicate"
STATUS_FAILED = "failed"


def format_validation_errors(detail, prefix: str = "") -> str:
    """Flatten DRF error detail into 'field: message' fragments"""
    if isinstance(detail, dict):
        parts = [format_validation_errors(value, f"{prefix}{key}." if key != "non_field_errors" else prefix) for key, value in detail.items()]
        return "; ".join(part for part in parts if part)
    if isinstance(detail, list):
        return "; ".join(format_validation_errors(value, prefix) for value in detail)
    label = prefix.rstrip(".")
    return f"{label}: {detail}" if label else str(detail)


class InspectionSyncHandler:
    """Reconcile queued 'inspection' mutations"""

    entity_type = "inspection"
    actions = ("create",)

    def find_existing(self, client_uuid):
        return InspectionService.find_by_client_uuid(client_uuid)

    def validate(self, payload: dict) -> dict:
        serializer = CreateInspectionSerializer(data=payload)
        if not serializer.is_valid():
            raise ItemValidationError(format_validation_errors(serializer.errors))
        return serializer.validated_data

    def create(self, client_uuid, data: dict, user):
        """Returns (server_id, created)"""
        inspection, created = InspectionService.create_from_sync(client_uuid=client_uuid, data=data, user=user)
        return str(inspection.id), created


class ReconciliationService:
    """
    Server side of the offline sync protocol

    Items are processed sequentially and independently: each one is
    deduplicated by client_uuid, validated, persisted, and reported with its
    own outcome. There is no transaction spanning the batch, so a failing
    item never rolls back the items around it.
    """

    handlers = {
        InspectionSyncHandler.entity_type: InspectionSyncHandler(),
    }

    @classmethod
    def process_batch(cls, items: list, user) -> list:
        """
        Process a batch of queued client mutations

        Returns:
            One result dict per item, in request order
        """
        results = [cls.process_item(item, user) for item in items]

        counts = {status: sum(1 for r in results if r["status"] == status) for status in (STATUS_SYNCED, STATUS_DUPLICATE, STATUS_FAILED)}
        logger.info(
            f"Batch processed for user {user.pk}: {counts[STATUS_SYNCED]} synced, "
            f"{counts[STATUS_DUPLICATE]} duplicate, {counts[STATUS_FAILED]} failed"
        )
        return results

    @classmethod
    def process_item(cls, item: dict, user) -> dict:
        raw_client_uuid = item.get("client_uuid") if isinstance(item, dict) else None
        client_uuid = str(raw_client_uuid) if raw_client_uuid is not None else None

        try:
            return cls._reconcile(item, user)
        except ItemError as e:
            logger.warning(f"Sync item {client_uuid} failed: {str(e)}")
            return {"client_uuid": client_uuid, "status": STATUS_FAILED, "error": str(e)}
        except Exception as e:
            logger.exception(f"Unexpected error while syncing item {client_uuid}")
            return {"client_uuid": client_uuid, "status": STATUS_FAILED, "error": str(e) or e.__class__.__name__}

    @classmethod
    def _reconcile(cls, item: dict, user) -> dict:
        if not isinstance(item, dict):
            raise ItemValidationError("Item must be an object.")

        envelope = SyncQueueItemSerializer(data=item)
        if not envelope.is_valid():
            raise ItemValidationError(format_validation_errors(envelope.errors))

        entity_type = envelope.validated_data["entity_type"]
        action = envelope.validated_data["action"]
        client_uuid = cls._parse_client_uuid(envelope.validated_data["client_uuid"])
        echo = envelope.validated_data["client_uuid"]

        handler = cls.handlers.get(entity_type)
        if handler is None or action not in handler.actions:
            raise UnsupportedOperationError(f"Unsupported operation: {action} {entity_type}")

        # idempotency check
        existing = handler.find_existing(client_uuid)
        if existing is not None:
            logger.info(f"Duplicate {entity_type} for client_uuid {client_uuid} - existing id {existing.id}")
            return {"client_uuid": echo, "status": STATUS_DUPLICATE, "server_id": str(existing.id)}

        payload = envelope.validated_data.get("payload_json") or {}
        if not isinstance(payload, dict):
            raise ItemValidationError("payload_json: Expected an object.")
        data = handler.validate(payload)

        try:
            server_id, created = handler.create(client_uuid, data, user)
        except DatabaseError as e:
            raise ItemPersistenceError(f"Could not persist {entity_type}: {str(e)}") from e
        except serializers.ValidationError as e:
            raise ItemValidationError(format_validation_errors(e.detail)) from e

        if not created:
            return {"client_uuid": echo, "status": STATUS_DUPLICATE, "server_id": server_id}

        return {"client_uuid": echo, "status": STATUS_SYNCED, "server_id": server_id}

    @staticmethod
    def _parse_client_uuid(value: str):
        try:
            return uuid.UUID(str(value))
        except (TypeError, ValueError):
            raise ItemValidationError("client_uuid: Must be a valid UUID.")

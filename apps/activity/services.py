import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction

from .models import ActivityLog

logger = logging.getLogger(__name__)


def _json_safe(value):
    if value is None:
        return {}
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def log_activity(*, actor, action: str, entity_type: str = None, entity_id=None, metadata: dict = None):  # type: ignore
    """
    Record an activity-log entry

    Fire-and-forget: a failure to write the entry is logged and never
    propagated to the operation being audited.
    """
    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                actor=actor,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                metadata_json=_json_safe(metadata),
            )
    except DatabaseError as e:
        logger.error(f"Failed to log activity {action} for {entity_type} {entity_id}: {str(e)}")
        return None

import logging
from django.utils import timezone

from .models import Task

logger = logging.getLogger(__name__)


class TaskService:
    """Derived state changes on workflow tasks"""

    @staticmethod
    def complete_due_inspection_tasks(inspection) -> int:
        """
        Mark outstanding 'inspection_due' tasks for the inspected hive as completed
        and link them to the inspection that supersedes them

        Returns:
            Number of tasks completed
        """
        completed = (
            Task.objects.filter(
                hive_id=inspection.hive_id,
                type=Task.TYPE_INSPECTION_DUE,
                status="pending",
            )
            .exclude(inspection_id=inspection.id)
            .update(
                status="completed",
                completed_at=timezone.now(),
                inspection=inspection,
                updated_at=timezone.now(),
            )
        )

        if completed:
            logger.info(f"Auto-completed {completed} inspection_due task(s) for hive {inspection.hive_id}")

        return completed

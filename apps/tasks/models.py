import uuid
from django.db import models
from django.contrib.auth import get_user_model

from apps.inspections.models import Hive, Inspection

User = get_user_model()


class Task(models.Model):
    STATUS_CHOICES = (
        ("pending", "Pending"),
        ("in_progress", "In progress"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    )

    TYPE_INSPECTION_DUE = "inspection_due"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    hive = models.ForeignKey(Hive, null=True, blank=True, related_name="tasks", on_delete=models.CASCADE)
    inspection = models.ForeignKey(Inspection, null=True, blank=True, related_name="tasks", on_delete=models.SET_NULL)
    assigned_user = models.ForeignKey(User, null=True, blank=True, related_name="tasks", on_delete=models.SET_NULL)
    type = models.CharField(max_length=100)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    due_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tasks"
        ordering = ["due_date"]
        indexes = [
            models.Index(fields=["hive", "type", "status"], name="task_hive_type_status_idx"),
        ]

    def __str__(self):
        return self.title

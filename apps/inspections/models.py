import uuid
from django.db import models
from django.contrib.auth import get_user_model

User = get_user_model()


class Hive(models.Model):
    STATUS_CHOICES = (
        ("active", "Active"),
        ("inactive", "Inactive"),
        ("retired", "Retired"),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    label = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "hives"
        ordering = ["label"]

    def __str__(self):
        return self.label


class Inspection(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)  # server-assigned
    client_uuid = models.UUIDField(unique=True)  # client-generated; idempotency key
    hive = models.ForeignKey(Hive, related_name="inspections", on_delete=models.CASCADE)
    inspector = models.ForeignKey(User, related_name="inspections", on_delete=models.CASCADE)

    started_at = models.DateTimeField()
    ended_at = models.DateTimeField(null=True, blank=True)
    offline_created_at = models.DateTimeField(null=True, blank=True)

    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    location_accuracy_m = models.FloatField(null=True, blank=True)

    sections_json = models.JSONField(null=True, blank=True)  # queen, brood, strength, stores, temperament, health
    notes = models.TextField(blank=True, default="")
    weather_json = models.JSONField(null=True, blank=True)  # filled post-commit, best-effort

    # set once the inspection is finalized (ended_at present)
    locked_at = models.DateTimeField(null=True, blank=True)

    # timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inspections"
        ordering = ["-started_at"]
        indexes = [
            models.Index(fields=["hive", "started_at"], name="inspection_hive_started_idx"),
            models.Index(fields=["inspector", "created_at"], name="inspection_inspector_idx"),
        ]

    @property
    def is_locked(self):
        return self.locked_at is not None

    @property
    def has_location(self):
        return self.location_lat is not None and self.location_lng is not None

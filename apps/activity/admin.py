from django.contrib import admin
from .models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ["action", "entity_type", "entity_id", "actor", "created_at"]
    list_filter = ["action", "entity_type"]
    search_fields = ["entity_id"]
    readonly_fields = ["actor", "action", "entity_type", "entity_id", "metadata_json", "created_at"]

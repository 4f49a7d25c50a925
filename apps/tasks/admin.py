from django.contrib import admin
from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ["title", "type", "hive", "status", "due_date", "completed_at"]
    list_filter = ["status", "type"]
    search_fields = ["title", "description"]
    readonly_fields = ["id", "created_at", "updated_at", "completed_at"]

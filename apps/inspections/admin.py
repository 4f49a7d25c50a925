from django.contrib import admin
from .models import Hive, Inspection


@admin.register(Hive)
class HiveAdmin(admin.ModelAdmin):
    list_display = ["label", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["label"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Inspection)
class InspectionAdmin(admin.ModelAdmin):
    list_display = ["hive", "inspector", "started_at", "ended_at", "locked_at"]
    list_filter = ["locked_at"]
    search_fields = ["client_uuid", "notes"]
    readonly_fields = ["id", "client_uuid", "created_at", "updated_at", "locked_at", "weather_json"]

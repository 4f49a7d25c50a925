from django.conf import settings
from rest_framework import serializers


class SyncQueueItemSerializer(serializers.Serializer):
    """
    One queued client mutation
    client_uuid and payload are validated per item by the reconciliation service,
    so a malformed item fails alone instead of rejecting the whole batch
    """

    entity_type = serializers.CharField(max_length=64)
    entity_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)
    client_uuid = serializers.CharField(max_length=64)
    action = serializers.CharField(max_length=16)
    payload_json = serializers.JSONField(required=False, default=dict)


class SyncQueueRequestSerializer(serializers.Serializer):
    """
    Serializer for batch sync requests
    """

    # items are checked one by one so a malformed entry fails alone
    items = serializers.ListField(child=serializers.JSONField(allow_null=True), allow_empty=True)

    def validate_items(self, value):
        max_items = settings.SYNC_MAX_BATCH_SIZE
        if len(value) > max_items:
            raise serializers.ValidationError(f"Maximum {max_items} items per batch")
        return value


class SyncResultSerializer(serializers.Serializer):
    """
    Per-item outcome, aligned with the request order and echoing client_uuid
    """

    client_uuid = serializers.CharField(allow_null=True)
    status = serializers.ChoiceField(choices=["synced", "duplicate", "failed"])
    server_id = serializers.CharField(required=False)
    error = serializers.CharField(required=False)


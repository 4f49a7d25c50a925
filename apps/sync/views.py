import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_ratelimit.decorators import ratelimit

from .serializers import SyncQueueRequestSerializer, SyncResultSerializer
from .services import ReconciliationService, STATUS_FAILED

logger = logging.getLogger(__name__)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
@ratelimit(key="user", rate=settings.SYNC_RATE_LIMIT, method="POST")
def sync_queue(request):
    """
    Reconcile a batch of mutations queued while offline
    Rate limited per user (SYNC_RATE_LIMIT, default 20 requests per minute)

    POST /api/v1/sync/queue/
    {
        "items": [
            {
                "entity_type": "inspection",
                "entity_id": null,
                "client_uuid": "uuid-here",
                "action": "create",
                "payload_json": { ... }
            },
            ...
        ]
    }

    Returns one result per item, in request order:
    { "results": [ { "client_uuid": "...", "status": "synced|duplicate|failed", "server_id"?: "...", "error"?: "..." } ] }
    """

    if getattr(request, "limited", False):
        return Response(
            {"error": "Rate limit exceeded", "detail": "Too many batch sync requests. Please try again later."},
            status=status.HTTP_429_TOO_MANY_REQUESTS,
        )

    serializer = SyncQueueRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    items = serializer.validated_data["items"]

    try:
        results = ReconciliationService.process_batch(items, request.user)
    except Exception as e:
        logger.exception("Batch sync failed")
        return Response({"error": "Batch sync failed", "detail": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response_serializer = SyncResultSerializer(results, many=True)

    has_failures = any(r["status"] == STATUS_FAILED for r in results)
    status_code = status.HTTP_207_MULTI_STATUS if has_failures else status.HTTP_200_OK

    return Response({"results": response_serializer.data}, status=status_code)

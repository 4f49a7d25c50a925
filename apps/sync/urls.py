from django.urls import re_path
from .views import sync_queue

urlpatterns = [
    # trailing slash optional: offline clients post to /sync/queue
    re_path(r"^queue/?$", sync_queue, name="sync-queue"),
]

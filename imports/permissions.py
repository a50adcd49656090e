import secrets
from logging import getLogger

from django.conf import settings
from rest_framework.permissions import BasePermission

logger = getLogger(__name__)

TASK_TOKEN_HEADER = "X-Import-Task-Token"


class HasImportTaskToken(BasePermission):
    """
    Push-queue deliveries carry the shared secret from
    ``IMPORT_TASK_ENDPOINT_TOKEN`` in a dedicated header. With no secret
    configured every request is refused.
    """

    message = "Invalid or missing import task token."

    def has_permission(self, request, view):
        expected = settings.IMPORT_TASK_ENDPOINT_TOKEN
        if not expected:
            logger.warning("Task endpoint called but IMPORT_TASK_ENDPOINT_TOKEN is not configured")
            return False
        supplied = request.headers.get(TASK_TOKEN_HEADER) or ""
        if not secrets.compare_digest(supplied.encode(), expected.encode()):
            logger.warning("Rejected task delivery with a bad token from %s", request.META.get("REMOTE_ADDR"))
            return False
        return True

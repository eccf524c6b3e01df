import logging
import time

from django.db import DatabaseError, connection
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


def check_database():
    started = time.monotonic()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        logger.error("database health check failed: %s", exc)
        return {"name": "database", "status": "unhealthy", "error": str(exc)}
    return {
        "name": "database",
        "status": "healthy",
        "response_time_ms": round((time.monotonic() - started) * 1000, 2),
    }


class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        database = check_database()
        healthy = database["status"] == "healthy"
        return Response(
            {"status": "ok" if healthy else "degraded", "services": [database]},
            status=200 if healthy else 503,
        )

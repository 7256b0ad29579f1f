"""
Health Check Module.

Liveness and readiness endpoints for the service.
"""
import logging
import time
from typing import Dict, Any
from datetime import datetime, timezone

from django.db import connection
from django.core.cache import cache
from django.conf import settings
from django.db.utils import DatabaseError
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class HealthStatus:
    """Health check status constants."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_database() -> Dict[str, Any]:
    """Check database connectivity."""
    start = time.time()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as e:
        logger.error(f"Database health check failed: {e}")
        return {"name": "database", "status": HealthStatus.UNHEALTHY, "error": str(e)}
    return {
        "name": "database",
        "status": HealthStatus.HEALTHY,
        "latency_ms": round((time.time() - start) * 1000, 2),
    }


def check_cache() -> Dict[str, Any]:
    """Check cache connectivity with a write/read/delete cycle."""
    start = time.time()
    cache_key = f"health_check_{start}"
    try:
        cache.set(cache_key, "OK", 10)
        value = cache.get(cache_key)
        cache.delete(cache_key)
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        return {"name": "cache", "status": HealthStatus.UNHEALTHY, "error": str(e)}
    if value != "OK":
        return {"name": "cache", "status": HealthStatus.UNHEALTHY, "error": "read/write mismatch"}
    return {
        "name": "cache",
        "status": HealthStatus.HEALTHY,
        "latency_ms": round((time.time() - start) * 1000, 2),
    }


@api_view(['GET'])
@permission_classes([AllowAny])
def liveness_check(request):
    """Returns 200 while the process is up."""
    return Response({
        "status": HealthStatus.HEALTHY,
        "service": getattr(settings, 'SERVICE_NAME', 'unknown'),
        "timestamp": _now(),
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def readiness_check(request):
    """
    Returns 200 if the database and cache are reachable, 503 otherwise.
    """
    checks = [check_database(), check_cache()]
    healthy = all(c["status"] == HealthStatus.HEALTHY for c in checks)

    return Response(
        {
            "status": HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            "checks": checks,
            "timestamp": _now(),
        },
        status=200 if healthy else 503
    )


def get_health_urlpatterns():
    """
    URL patterns for the health endpoints.

    Usage in urls.py:
        from shared.common.health import get_health_urlpatterns
        urlpatterns += get_health_urlpatterns()
    """
    from django.urls import path

    return [
        path('health/', liveness_check, name='health'),
        path('health/live/', liveness_check, name='liveness'),
        path('health/ready/', readiness_check, name='readiness'),
    ]

"""
Project-level views (e.g. health check).
"""
from django.db import connection
from django.db.utils import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_GET


@require_GET
def health_check(request):
    """
    Liveness check for load balancers and monitoring.
    GET /api/v1/health/ - returns 200 when the app and database respond.
    No authentication required.
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError:
        return JsonResponse({"status": "degraded", "service": "rankwell-backend", "database": "unavailable"},
                            status=503)
    return JsonResponse({"status": "ok", "service": "rankwell-backend", "database": "ok"})

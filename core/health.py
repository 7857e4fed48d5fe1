"""
MediSpatch Monitoring & Health Check Endpoints
===============================================

Provides:
1. /health - Basic liveness check (for load balancers/Docker)
2. /health/ready/ - Readiness check (DB and cache status)
3. /health/detailed/ - Delivery and driver counts (staff only)
"""

import time
import logging
from django.http import JsonResponse
from django.db import connection
from django.core.cache import cache
from django.views.decorators.http import require_GET
from django.views.decorators.csrf import csrf_exempt
from django.utils import timezone

logger = logging.getLogger('medispatch.monitoring')


@csrf_exempt
@require_GET
def health_check(request):
    """
    Basic liveness probe.
    Returns 200 if the Django process is alive.
    """
    return JsonResponse({
        'status': 'ok',
        'service': 'medispatch',
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_GET
def readiness_check(request):
    """
    Readiness probe - checks the database and the cache.
    Returns 503 if any dependency is down.
    """
    checks = {}
    all_healthy = True

    # 1. Database Check
    try:
        start = time.time()
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        db_time = round((time.time() - start) * 1000, 2)
        checks['database'] = {
            'status': 'healthy',
            'response_time_ms': db_time,
            'engine': connection.vendor,
        }
    except Exception as e:
        checks['database'] = {
            'status': 'unhealthy',
            'error': str(e),
        }
        all_healthy = False
        logger.error(f"Health check - Database unhealthy: {e}")

    # 2. Cache Check
    try:
        start = time.time()
        cache_key = '_healthcheck_ping'
        cache.set(cache_key, 'pong', 10)
        result = cache.get(cache_key)
        cache_time = round((time.time() - start) * 1000, 2)

        if result != 'pong':
            raise RuntimeError("Cache read/write mismatch")
        checks['cache'] = {
            'status': 'healthy',
            'response_time_ms': cache_time,
        }
    except Exception as e:
        checks['cache'] = {
            'status': 'unhealthy',
            'error': str(e),
        }
        all_healthy = False
        logger.error(f"Health check - Cache unhealthy: {e}")

    status_code = 200 if all_healthy else 503

    return JsonResponse({
        'status': 'healthy' if all_healthy else 'unhealthy',
        'service': 'medispatch',
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=status_code)


@csrf_exempt
@require_GET
def detailed_health(request):
    """Delivery and driver counts for the ops dashboard."""
    if not request.user.is_authenticated or not request.user.is_staff:
        return JsonResponse({
            'error': 'Unauthorized',
            'message': 'Staff access required for detailed diagnostics',
        }, status=403)

    from logistics.models import DeliveryRequest, DeliveryStatus, Driver

    try:
        stats = {
            'deliveries': {
                'total': DeliveryRequest.objects.count(),
                'pending': DeliveryRequest.objects.filter(status=DeliveryStatus.PENDING).count(),
                'in_transit': DeliveryRequest.objects.filter(status=DeliveryStatus.IN_TRANSIT).count(),
                'live_tracking': DeliveryRequest.objects.filter(is_live_tracking=True).count(),
                'completed': DeliveryRequest.objects.filter(status=DeliveryStatus.COMPLETED).count(),
            },
            'drivers': {
                'total': Driver.objects.count(),
                'active': Driver.objects.filter(status=Driver.Status.ACTIVE).count(),
                'busy': Driver.objects.filter(current_delivery__isnull=False).count(),
            },
        }
    except Exception as e:
        logger.error(f"Detailed health check error: {e}")
        return JsonResponse({
            'status': 'error',
            'message': str(e),
        }, status=500)

    return JsonResponse({
        'status': 'ok',
        'service': 'medispatch',
        'timestamp': timezone.now().isoformat(),
        'stats': stats,
    })

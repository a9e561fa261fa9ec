import logging

from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    checks = {}
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        checks['db'] = bool(row and row[0] == 1)
    except DatabaseError as e:
        logger.error("health check: database unavailable: %s", e)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    cache.set('healthz:ping', 1, 10)
    checks['cache'] = cache.get('healthz:ping') == 1
    return JsonResponse({'ok': all(checks.values()), **checks}, status=200 if all(checks.values()) else 503)

import logging

from django.db import connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness probe: the default database answers ``SELECT 1``."""
    conn = connections['default']
    try:
        with conn.cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except Exception as e:
        logger.exception("health check failed on %s", conn.vendor)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), 'vendor': conn.vendor})

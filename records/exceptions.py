import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """Wrap every API error as ``{'ok': False, 'error': {'code', 'message'}}``."""
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception("unhandled error in %s", view.__class__.__name__ if view else 'view', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'حدث خطأ في الخادم'}}, status=500)
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    resp.data = {'ok': False, 'error': {'code': code, 'message': detail}}
    return resp

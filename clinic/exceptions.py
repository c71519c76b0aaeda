"""
Error taxonomy and the unified API exception handler.

Every failure leaves the API as ``{'ok': False, 'error': {'code', 'message'}}``
with one of the statuses 400/401/403/404/409/500.
"""
import logging

from django.db import IntegrityError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class AuthorizationDenied(exceptions.PermissionDenied):
    """Raised when the access policy rejects an action."""
    default_detail = 'Forbidden'
    default_code = 'forbidden'


class Conflict(exceptions.APIException):
    """Uniqueness violation on email, phone or username."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'


_CODES = {
    400: 'validation_failed',
    401: 'unauthenticated',
    403: 'forbidden',
    404: 'not_found',
    405: 'method_not_allowed',
    409: 'conflict',
}


def _message(data):
    if isinstance(data, dict):
        detail = data.get('detail')
        if detail is not None and len(data) == 1:
            return str(detail)
        return data
    if isinstance(data, list):
        return data[0] if len(data) == 1 else data
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, IntegrityError):
        logger.info('integrity error mapped to conflict: %s', exc)
        exc = Conflict('Record already exists')
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('unhandled error in %s', getattr(view, '__name__', view), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': 'Server error'}}, status=500)
    if resp.status_code == status.HTTP_403_FORBIDDEN:
        request = context.get('request')
        logger.info('denied %s %s: %s', getattr(request, 'method', '?'), getattr(request, 'path', '?'), resp.data)
    code = _CODES.get(resp.status_code, 'api_error')
    return Response({'ok': False, 'error': {'code': code, 'message': _message(resp.data)}},
                    status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers

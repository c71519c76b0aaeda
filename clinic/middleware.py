import logging
import time

logger = logging.getLogger('clinic.access')


class AccessLogMiddleware:
    """Log one line per API request: method, path, status, user and duration."""
    PREFIXES = ('/api/',)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if not path.startswith(self.PREFIXES):
            return self.get_response(request)
        started = time.monotonic()
        response = self.get_response(request)
        user = getattr(request, 'user', None)
        # DRF authenticates inside the view; the Django-level user may be anonymous
        uid = getattr(user, 'pk', None) if getattr(user, 'is_authenticated', False) else None
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, '%s %s %s user=%s %.1fms', request.method, path, response.status_code,
                   uid, (time.monotonic() - started) * 1000)
        return response

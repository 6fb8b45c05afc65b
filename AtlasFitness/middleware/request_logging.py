import logging
import time

QUIET_PATHS = ('/api/health',)


def _actor(request):
    # DRF copies the JWT user back onto the Django request once the view has authenticated it
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return 'anonymous'
    return f"{user.email} ({getattr(user, 'role', '-')})"


class RequestLoggingMiddleware:
    """
    Logs method, path, status, acting staff user and duration of every API call.

    Server errors are logged at ERROR and client errors at WARNING so that
    rejected payments and permission failures stand out; health probes only
    show up at DEBUG.
    """
    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = logging.getLogger("django.request")

    def __call__(self, request):
        start = time.monotonic()
        response = None
        try:
            response = self.get_response(request)
            return response
        finally:
            duration = time.monotonic() - start
            status_code = response.status_code if response is not None else 500
            if request.path in QUIET_PATHS and status_code < 400:
                level = logging.DEBUG
            elif status_code >= 500:
                level = logging.ERROR
            elif status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO
            self.logger.log(
                level,
                "%s %s %s %s %.3fs",
                request.method,
                request.get_full_path(),
                status_code if response is not None else 'ERR',
                _actor(request),
                duration,
            )

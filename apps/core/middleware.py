import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404, JsonResponse

from .utils import InvalidPayload

logger = logging.getLogger(__name__)


class JsonExceptionMiddleware:
    """
    Turn exceptions raised by /api/ views into JSON responses

    Http404 -> 404, PermissionDenied -> 403, InvalidPayload -> 400.
    Anything else is logged and left to Django's 500 handling.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path.startswith('/api/'):
            return None

        if isinstance(exception, Http404):
            return JsonResponse({'success': False, 'error': str(exception) or 'Not found'}, status=404)

        if isinstance(exception, PermissionDenied):
            return JsonResponse({'success': False, 'error': str(exception) or 'Forbidden'}, status=403)

        if isinstance(exception, InvalidPayload):
            return JsonResponse({'success': False, 'error': str(exception)}, status=400)

        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return None

"""
JSON helpers shared by every API view
"""
import json

from django.conf import settings
from django.core.paginator import Paginator
from django.http import JsonResponse, QueryDict


class InvalidPayload(Exception):
    """Raised when a request body cannot be decoded into a JSON object"""


def parse_json_body(request):
    """
    Read the request payload as a plain dict

    - application/json: decoded body (must be an object)
    - POST form/multipart: request.POST
    - PUT/PATCH form-encoded: parsed from the raw body

    Raises:
        InvalidPayload: body is not valid JSON or not a JSON object
    """
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidPayload(f'Malformed JSON body: {e}') from e

        if not isinstance(data, dict):
            raise InvalidPayload('JSON body must be an object')
        return data

    if request.method == 'POST':
        return request.POST.dict()

    return QueryDict(request.body).dict()


def form_errors(form):
    """Flatten Django form errors to {field: [messages]}"""
    return {field: [str(message) for message in messages] for field, messages in form.errors.items()}


def validation_error_response(form, message='The given data was invalid.'):
    """422 response with a field -> messages map"""
    return JsonResponse({
        'message': message,
        'errors': form_errors(form),
    }, status=422)


def json_error(message, status=400, **extra):
    return JsonResponse({'success': False, 'error': message, **extra}, status=status)


def clamp_int(value, default, minimum, maximum):
    """int(value) clamped to [minimum, maximum]; default when value is missing or not a number"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(number, maximum))


def paginate(queryset, request, default=None, maximum=None):
    """
    Paginate a queryset from ?page= and ?per_page=

    Returns:
        tuple: (page_obj, meta) where meta is ready to be embedded in JSON
    """
    default = default or settings.PAGINATION_SIZE
    maximum = maximum or settings.PAGINATION_MAX_SIZE
    per_page = clamp_int(request.GET.get('per_page'), default, 1, maximum)

    paginator = Paginator(queryset, per_page)
    page_obj = paginator.get_page(request.GET.get('page', 1))

    meta = {
        'page': page_obj.number,
        'per_page': per_page,
        'total': paginator.count,
        'num_pages': paginator.num_pages,
        'has_next': page_obj.has_next(),
        'has_previous': page_obj.has_previous(),
    }
    return page_obj, meta


def iso(value):
    """ISO string for a date/datetime, None stays None"""
    return value.isoformat() if value else None


def money(value):
    """Decimal amounts are sent to the front-end as floats"""
    return float(value) if value is not None else None

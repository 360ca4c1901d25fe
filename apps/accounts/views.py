import logging

from django.db.models import Count, Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods, require_POST

from apps.core.utils import paginate
from apps.opportunities.models import TERMINAL_STAGES
from .decorators import admin_required
from .models import User

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ['first_name', 'email', 'date_joined', 'last_login']


@admin_required
@require_http_methods(['GET'])
def user_list_view(request):
    """
    Team list for admins: sales users with their open deal count

    ?q= (name, email, phone)  ?role=admin|sales  ?status=active|inactive
    ?sort=first_name|email|date_joined|last_login (prefix '-' for descending)
    """
    queryset = User.objects.annotate(
        open_deals=Count('opportunities', filter=~Q(opportunities__stage__in=TERMINAL_STAGES)),
    )

    search_query = request.GET.get('q', '').strip()
    if search_query:
        queryset = queryset.filter(
            Q(first_name__icontains=search_query) |
            Q(last_name__icontains=search_query) |
            Q(email__icontains=search_query) |
            Q(phone__icontains=search_query)
        )

    role_filter = request.GET.get('role', '')
    if role_filter in (User.ROLE_ADMIN, User.ROLE_SALES):
        queryset = queryset.filter(role=role_filter)

    status_filter = request.GET.get('status', '')
    if status_filter == 'active':
        queryset = queryset.filter(is_active=True)
    elif status_filter == 'inactive':
        queryset = queryset.filter(is_active=False)

    sort_by = request.GET.get('sort', 'first_name')
    if sort_by.lstrip('-') not in SORTABLE_FIELDS:
        sort_by = 'first_name'

    page_obj, meta = paginate(queryset.order_by(sort_by, 'id'), request)

    return JsonResponse({
        'users': [
            {
                **user.to_summary(),
                'role': user.role,
                'job_title': user.job_title,
                'is_active': user.is_active,
                'open_deals': user.open_deals,
            }
            for user in page_obj
        ],
        'pagination': meta,
    })


@admin_required
@require_POST
def user_toggle_status_view(request, pk):
    """Activate / deactivate a user; owned records keep their owner"""
    user = get_object_or_404(User, pk=pk)

    if user == request.user:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate yourself'}, status=422)

    if user.is_superuser and not request.user.is_superuser:
        return JsonResponse({'success': False, 'error': 'Cannot deactivate superuser'}, status=403)

    user.is_active = not user.is_active
    user.save(update_fields=['is_active', 'updated_at'])

    logger.info(f"User {user.email} {'activated' if user.is_active else 'deactivated'} by {request.user.email}")

    return JsonResponse({
        'success': True,
        'is_active': user.is_active,
    })

# Decorators in this file:
# 1. api_login_required - Anonymous requests get a JSON 401
# 2. admin_required - Only admins can access
# 3. owner_or_admin_required - Object owner OR admin can access
#
# All of them answer with JSON because every endpoint of the CRM is consumed
# by the single-page front-end.
# ==============================================================================

from functools import wraps
from django.http import JsonResponse
from django.utils.translation import gettext_lazy as _


def api_login_required(view_func):
    """
    Decorator: Only authenticated users can access this view

    Unlike django.contrib.auth's login_required this never redirects to a
    login page; the front-end handles a 401 by showing its own login screen.

    Usage:
        @api_login_required
        def opportunity_list_view(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({
                'success': False,
                'error': str(_('Authentication required'))
            }, status=401)

        return view_func(request, *args, **kwargs)

    return wrapper


def admin_required(view_func):
    """
    Decorator: Only admins can access this view

    Checks:
    1. User is authenticated (logged in)
    2. User role is 'admin' OR is superuser
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({
                'success': False,
                'error': str(_('Authentication required'))
            }, status=401)

        if request.user.is_admin():
            return view_func(request, *args, **kwargs)

        return JsonResponse({
            'success': False,
            'error': str(_('Admin access required'))
        }, status=403)

    return wrapper


def owner_or_admin_required(model_class, pk_param='pk', field_name='user'):
    """
    Decorator: Admin OR owner can access

    Args:
        model_class: Model class to check
        pk_param: URL parameter name for primary key
        field_name: Field name that contains user reference

    Usage:
    @api_login_required
    @owner_or_admin_required(EmailTemplate, field_name='user')
    def template_delete_view(request, pk):
        ...

    Access matrix:
    User Type | Own Object | Other's Object | Missing
    ----------|------------|----------------|--------
    Admin     | 200        | 200            | 404
    Sales     | 200        | 403            | 404
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({
                    'success': False,
                    'error': str(_('Authentication required'))
                }, status=401)

            pk = kwargs.get(pk_param)

            try:
                obj = model_class.objects.get(pk=pk)
            except model_class.DoesNotExist:
                return JsonResponse({
                    'success': False,
                    'error': f'{str(model_class._meta.verbose_name).capitalize()} not found'
                }, status=404)

            owner_id = getattr(obj, f'{field_name}_id', None)

            if request.user.can_manage(owner_id):
                return view_func(request, *args, **kwargs)

            return JsonResponse({
                'success': False,
                'error': str(_('You do not have permission to modify this item.'))
            }, status=403)

        return wrapper

    return decorator

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, Q
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html

from apps.opportunities.models import TERMINAL_STAGES
from .forms import UserCreateForm, UserEditForm
from .models import User


ROLE_COLORS = {
    User.ROLE_ADMIN: '#6f42c1',
    User.ROLE_SALES: '#007bff',
}


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    form = UserEditForm
    add_form = UserCreateForm

    list_display = ('email', 'full_name', 'role_badge', 'open_deals', 'job_title', 'is_active', 'last_login')
    list_display_links = ('email', 'full_name')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('email', 'first_name', 'last_name', 'job_title')
    ordering = ('first_name', 'last_name')
    list_per_page = 25

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        (_('Signature'), {
            'fields': ('first_name', 'last_name', 'phone', 'job_title'),
            'description': _('Used by the {{user_name}} / {{user_email}} email variables'),
        }),
        (_('CRM access'), {
            'fields': ('role', 'is_active'),
            'description': _('Admins see every record, sales users only their own'),
        }),
        (_('Django admin'), {
            'fields': ('is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Dates'), {
            'fields': ('date_joined', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'job_title', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined', 'last_login')

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            open_deal_count=Count('opportunities', filter=~Q(opportunities__stage__in=TERMINAL_STAGES)),
        )

    @admin.display(description=_('Name'), ordering='first_name')
    def full_name(self, obj):
        return obj.get_full_name()

    @admin.display(description=_('Role'), ordering='role')
    def role_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#6c757d'), obj.get_role_display()
        )

    @admin.display(description=_('Open deals'), ordering='open_deal_count')
    def open_deals(self, obj):
        return obj.open_deal_count

    actions = ['deactivate_users']

    @admin.action(description=_('Deactivate selected users (their records keep them as owner)'))
    def deactivate_users(self, request, queryset):
        updated = queryset.filter(is_superuser=False).exclude(pk=request.user.pk).update(is_active=False)
        self.message_user(request, f'{updated} user(s) deactivated.', level='success')

    def has_delete_permission(self, request, obj=None):
        # Owned records would lose their owner; deactivate instead
        if obj and obj == request.user:
            return False
        return super().has_delete_permission(request, obj)


admin.site.site_header = _('Pipeline CRM Administration')
admin.site.site_title = _('Pipeline CRM')
admin.site.index_title = _('Pipeline CRM Admin Panel')

from django.contrib import admin
from django.utils.html import format_html

from .models import Company, Contact


class ContactInline(admin.TabularInline):

    model = Contact
    extra = 0
    fields = ['name', 'email', 'phone', 'status']
    show_change_link = True


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):

    list_display = ['id', 'name', 'domain', 'industry', 'status_badge', 'city', 'owner', 'created_at']
    list_filter = ['status', 'industry', 'country']
    search_fields = ['name', 'domain', 'industry', 'city']
    ordering = ['name']
    list_per_page = 50

    fieldsets = [
        ('Basic Information', {
            'fields': ['name', 'domain', 'industry', 'size', 'status', 'owner']
        }),
        ('Address', {
            'fields': ['address', 'zipcode', 'city', 'country'],
            'classes': ['collapse'],
        }),
        ('Additional Info', {
            'fields': ['notes'],
            'classes': ['collapse'],
        }),
    ]
    inlines = [ContactInline]

    def status_badge(self, obj):
        colors = {
            Company.STATUS_PROSPECT: '#17a2b8',
            Company.STATUS_CLIENT: '#28a745',
            Company.STATUS_INACTIVE: '#6c757d',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            colors.get(obj.status, '#6c757d'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):

    list_display = ['id', 'name', 'email', 'phone', 'company', 'status', 'user', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'email', 'phone', 'company__name']
    ordering = ['-created_at']
    list_per_page = 50
    autocomplete_fields = ['company']
    date_hierarchy = 'created_at'

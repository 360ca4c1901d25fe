from django.contrib import admin

from .models import EmailTemplate


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):

    list_display = ['id', 'name', 'category', 'user', 'is_active', 'is_shared', 'usage_count', 'updated_at']
    list_filter = ['category', 'is_active', 'is_shared']
    list_editable = ['is_active', 'is_shared']
    search_fields = ['name', 'subject', 'body', 'user__email']
    ordering = ['category', 'name']
    readonly_fields = ['variables', 'usage_count', 'created_at', 'updated_at']

    fieldsets = [
        ('Template', {
            'fields': ['user', 'name', 'category', 'subject', 'body']
        }),
        ('Sharing', {
            'fields': ['is_active', 'is_shared']
        }),
        ('Statistics', {
            'fields': ['variables', 'usage_count', 'created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    def save_model(self, request, obj, form, change):
        obj.refresh_variables()
        super().save_model(request, obj, form, change)

from django.contrib import admin
from django.utils.html import format_html

from .models import Reminder


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):

    list_display = ['id', 'title', 'user', 'reminder_date', 'type', 'priority_badge', 'status', 'is_recurring']
    list_filter = ['status', 'type', 'priority', 'is_recurring']
    search_fields = ['title', 'description', 'user__email']
    ordering = ['reminder_date']
    list_per_page = 50
    date_hierarchy = 'reminder_date'
    readonly_fields = ['completed_at', 'snoozed_until', 'created_at', 'updated_at']

    fieldsets = [
        ('Reminder', {
            'fields': ['user', 'title', 'description', 'reminder_date', 'type', 'priority', 'status']
        }),
        ('Related To', {
            'fields': ['opportunity', 'contact']
        }),
        ('Recurrence', {
            'fields': ['is_recurring', 'recurrence_pattern', 'recurrence_interval', 'recurrence_end_date'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['completed_at', 'snoozed_until', 'created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    def priority_badge(self, obj):
        colors = {
            'low': '#6c757d',
            'medium': '#ffc107',
            'high': '#dc3545',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            colors.get(obj.priority, '#6c757d'),
            obj.get_priority_display()
        )
    priority_badge.short_description = 'Priority'

    actions = ['mark_completed']

    def mark_completed(self, request, queryset):
        successors = [reminder.mark_completed() for reminder in queryset.exclude(status=Reminder.STATUS_COMPLETED)]
        created = len([successor for successor in successors if successor])
        self.message_user(request, f'Completed {len(successors)} reminders ({created} next occurrences created)')
    mark_completed.short_description = 'Mark as completed'

from django.contrib import admin
from django.utils.html import format_html

from .models import Opportunity, OpportunityActivity, OpportunityProduct, OpportunityStage

BADGE_COLORS = {
    'blue': '#3b82f6',
    'yellow': '#eab308',
    'purple': '#8b5cf6',
    'orange': '#f97316',
    'green': '#22c55e',
    'red': '#ef4444',
}


class OpportunityProductInline(admin.TabularInline):

    model = OpportunityProduct
    extra = 0
    readonly_fields = ['total']
    fields = ['name', 'quantity', 'unit_price', 'total']


class OpportunityActivityInline(admin.TabularInline):

    model = OpportunityActivity
    extra = 0  # Activities are written by the application
    readonly_fields = ['created_at', 'user', 'type', 'title', 'old_value', 'new_value']
    fields = ['created_at', 'user', 'type', 'title', 'old_value', 'new_value']
    classes = ['collapse']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Opportunity)
class OpportunityAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'name',
        'stage_badge',
        'amount',
        'probability',
        'expected_close_date',
        'contact',
        'company',
        'user',
    ]
    list_filter = ['stage', 'user', 'expected_close_date']
    search_fields = ['name', 'description', 'contact__name', 'company__name']
    ordering = ['-created_at']
    list_per_page = 50
    date_hierarchy = 'created_at'
    autocomplete_fields = ['contact', 'company']

    fieldsets = [
        ('Basic Information', {
            'fields': ['name', 'description', 'contact', 'company', 'user']
        }),
        ('Pipeline', {
            'fields': ['stage', 'amount', 'currency', 'probability', 'expected_close_date', 'actual_close_date']
        }),
        ('Qualification', {
            'fields': ['lead_source', 'next_step', 'competitors', 'loss_reason', 'custom_fields'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['actual_close_date', 'created_at', 'updated_at']
    inlines = [OpportunityProductInline, OpportunityActivityInline]

    def stage_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            BADGE_COLORS.get(obj.stage_color, '#6c757d'),
            obj.stage_label
        )
    stage_badge.short_description = 'Stage'

    def save_model(self, request, obj, form, change):
        # Edits made in the admin are audited like API edits
        if change:
            obj.apply_changes({}, actor=request.user)
        else:
            super().save_model(request, obj, form, change)

    actions = ['mark_as_won', 'mark_as_lost']

    def _move_to(self, request, queryset, stage):
        for opportunity in queryset:
            opportunity.apply_changes({'stage': stage}, actor=request.user)
        self.message_user(request, f'Moved {queryset.count()} opportunities to "{OpportunityStage(stage).label}"')

    def mark_as_won(self, request, queryset):
        self._move_to(request, queryset, OpportunityStage.CONVERTI)
    mark_as_won.short_description = 'Mark as won'

    def mark_as_lost(self, request, queryset):
        self._move_to(request, queryset, OpportunityStage.PERDU)
    mark_as_lost.short_description = 'Mark as lost'


@admin.register(OpportunityActivity)
class OpportunityActivityAdmin(admin.ModelAdmin):

    list_display = ['created_at', 'opportunity', 'type', 'title', 'user', 'completed_at']
    list_filter = ['type', 'created_at']
    search_fields = ['title', 'description', 'opportunity__name']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']

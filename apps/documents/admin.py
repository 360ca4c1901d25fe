from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from .models import Document, DocumentLink, DocumentVersion


class DocumentVersionInline(admin.TabularInline):
    model = DocumentVersion
    extra = 0
    fields = ['version', 'storage_path', 'mime_type', 'size_bytes', 'created_by', 'created_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class DocumentLinkInline(admin.TabularInline):
    model = DocumentLink
    extra = 0
    fields = ['content_type', 'object_id', 'role']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):

    list_display = ['id', 'name', 'original_filename', 'owner', 'visibility_badge', 'size_human', 'version_count', 'created_at', 'deleted_at']
    list_filter = ['visibility', 'extension', 'created_at']
    search_fields = ['name', 'original_filename', 'description', 'owner__email']
    ordering = ['-created_at']
    list_per_page = 50
    readonly_fields = ['uuid', 'original_filename', 'mime_type', 'extension', 'size_bytes', 'storage_disk', 'storage_path', 'created_at', 'updated_at']
    inlines = [DocumentVersionInline, DocumentLinkInline]

    fieldsets = [
        ('Document', {
            'fields': ['name', 'owner', 'visibility', 'description', 'tags']
        }),
        ('File', {
            'fields': ['uuid', 'original_filename', 'mime_type', 'extension', 'size_bytes', 'storage_disk', 'storage_path']
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at', 'deleted_at'],
            'classes': ['collapse'],
        }),
    ]

    def get_queryset(self, request):
        # The trash is visible here
        return Document.all_objects.select_related('owner')

    def visibility_badge(self, obj):
        colors = {
            'private': '#6c757d',
            'team': '#17a2b8',
            'company': '#28a745',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            colors.get(obj.visibility, '#6c757d'),
            obj.get_visibility_display()
        )
    visibility_badge.short_description = 'Visibility'

    def version_count(self, obj):
        return obj.versions.count()
    version_count.short_description = 'Versions'

    actions = ['restore']

    def restore(self, request, queryset):
        updated = queryset.trashed().update(deleted_at=None, updated_at=timezone.now())
        self.message_user(request, f'{updated} documents restored')
    restore.short_description = 'Restore from trash'

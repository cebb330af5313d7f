"""Django admin configuration for drive app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.drive.infrastructure.metadata import get_file_extension
from server.apps.drive.models import File, Folder

_KIB = 1024


def format_size(size_bytes: int) -> str:
    """Format a byte count in human-readable form.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234.0 KB').
    """
    if size_bytes < _KIB:
        return f'{size_bytes} B'
    if size_bytes < _KIB ** 2:
        return f'{size_bytes / _KIB:.1f} KB'
    if size_bytes < _KIB ** 3:
        return f'{size_bytes / _KIB ** 2:.1f} MB'
    return f'{size_bytes / _KIB ** 3:.1f} GB'


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model.

    Lists deleted folders too, so trash can be inspected.
    """

    list_display = [
        'name',
        'owner',
        'parent_folder_id',
        'is_deleted',
        'created_at',
    ]

    list_filter = [
        'is_deleted',
        'owner',
    ]

    search_fields = ['name']

    readonly_fields = ['created_at', 'updated_at']

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Include soft-deleted folders.

        Args:
            request: HTTP request.

        Returns:
            QuerySet over every folder.
        """
        return Folder.all_objects.select_related('owner')


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'name',
        'owner',
        'folder_id',
        'extension_display',
        'size_display',
        'upload_status',
        'is_deleted',
        'updated_at',
    ]

    list_filter = [
        'upload_status',
        'is_deleted',
        'mime_type',
    ]

    search_fields = [
        'name',
        'object_key',
    ]

    readonly_fields = [
        'object_key',
        'upload_session_id',
        'size_bytes',
        'mime_type',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('name', 'owner', 'folder_id'),
        }),
        ('Upload', {
            'fields': (
                'upload_status',
                'object_key',
                'upload_session_id',
                'size_bytes',
                'mime_type',
            ),
        }),
        ('Trash', {
            'fields': ('is_deleted',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    @admin.display(description='Ext')
    def extension_display(self, obj: File) -> str:
        """Display the file extension."""
        return get_file_extension(obj.name)

    @admin.display(description='Size')
    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format."""
        return format_size(obj.size_bytes)

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Include pending, failed and soft-deleted files.

        Args:
            request: HTTP request.

        Returns:
            QuerySet over every file.
        """
        return File.all_objects.select_related('owner')

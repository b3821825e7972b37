from django.contrib import admin

from ..models import AuditLog
from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("id", "action", "object_type", "object_id", "created_at")
    search_fields = ("object_type", "object_id")
    list_filter = ("action", "object_type", "created_at")

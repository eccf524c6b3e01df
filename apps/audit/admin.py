from django.contrib import admin

from apps.audit.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "summary", "actor", "created_at")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "summary", "actor__username")
    readonly_fields = ("actor", "action", "entity_type", "entity_id", "summary", "payload", "created_at")

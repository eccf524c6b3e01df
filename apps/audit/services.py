from apps.audit.models import AuditLog


def record_audit(*, actor, action, entity_type, entity_id, payload=None, summary=""):
    return AuditLog.objects.create(
        actor=actor if actor is not None and getattr(actor, "is_authenticated", False) else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        summary=summary[:255],
        payload=payload or {},
    )


def recent_activity(limit=10, date_from=None, date_to=None):
    queryset = AuditLog.objects.select_related("actor").exclude(action__startswith="auth.")
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)
    return [
        {
            "id": str(entry.id),
            "action": entry.action,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "summary": entry.summary,
            "actor": entry.actor.display_name if entry.actor else None,
            "created_at": entry.created_at,
        }
        for entry in queryset[:limit]
    ]

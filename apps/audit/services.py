from .models import AuditLogEntry


def target_ref(kind: str, pk) -> str:
    return f"{kind}:{pk}"


def record(actor, action, target, details=""):
    """Append one audit entry for `actor` (an apps.cores.actors.Actor)."""
    return AuditLogEntry.objects.create(
        actor_id=actor.user_id,
        actor_label=actor.label,
        action=action,
        target_ref=target,
        details=details,
    )

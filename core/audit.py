"""
Audit trail writer.
Usage: log_audit(request.user, 'ATTENDANCE', 'ADMIN_MARK_ALL_PRESENT', 'Session', session.id, {...})
"""
from core.models import AuditLog
from core.utils import normalize_email


def log_audit(actor, module, action, entity_type=None, entity_id=None, meta=None):
    """
    Record one audit row. actor: a User or a dict with email/name/role.
    Silently skipped when the actor has no email or module/action are empty.
    """
    if isinstance(actor, dict):
        email, name, role = actor.get('email'), actor.get('name'), actor.get('role')
    else:
        email = getattr(actor, 'email', None)
        name = getattr(actor, 'name', None)
        role = getattr(actor, 'role', None)

    actor_email = normalize_email(email)
    if not actor_email or not module or not action:
        return None

    return AuditLog.objects.create(
        actor_email=actor_email,
        actor_name=(name or '').strip() or None,
        actor_role=(role or '').strip() or None,
        module=module,
        action=action,
        entity_type=(entity_type or '').strip() or None,
        entity_id=str(entity_id).strip() if entity_id not in (None, '') else None,
        meta=meta,
    )

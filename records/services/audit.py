from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from records.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Record who did what to which object.  Anonymous actions keep ``user`` empty."""
    actor = user if getattr(user, 'pk', None) else None
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )

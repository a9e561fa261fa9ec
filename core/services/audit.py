"""
Audit trail for business actions (logins, letters, messages, content edits).
"""
import logging
from typing import Any, Dict, List, Optional

from core.models import AuditEvent, User

logger = logging.getLogger('core.audit')


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    event = AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )
    logger.debug("audit %s %s:%s by %s", action, object_type, object_id, event.user_id)
    return event


def recent_actions(limit: int = 10) -> List[Dict[str, Any]]:
    events = AuditEvent.objects.select_related('user').order_by('-created_at', '-id')[:limit]
    return [
        {
            'action': e.action,
            'objectType': e.object_type,
            'objectId': e.object_id,
            'user': e.user.display_name() if e.user else None,
            'createdAt': e.created_at.isoformat(),
        }
        for e in events
    ]

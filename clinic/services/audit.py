"""Append-only audit trail for state-changing API calls."""
import logging
from typing import Any, Dict, Optional

from clinic.models import AuditEvent, User

logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    actor = user if isinstance(user, User) and user.pk else None
    logger.debug('audit %s %s#%s by %s', action, object_type, object_id, getattr(actor, 'pk', None))
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )

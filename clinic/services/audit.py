import logging
from typing import Optional, Any, Dict

from django.db import DatabaseError, transaction

from clinic.models import AuditLog, User

logger = logging.getLogger(__name__)


def _client_meta(request) -> Dict[str, Any]:
    if request is None:
        return {'ip_address': None, 'user_agent': ''}
    meta = getattr(request, 'META', {}) or {}
    forwarded = meta.get('HTTP_X_FORWARDED_FOR', '')
    ip = forwarded.split(',')[0].strip() if forwarded else meta.get('REMOTE_ADDR')
    return {'ip_address': ip or None, 'user_agent': (meta.get('HTTP_USER_AGENT') or '')[:255]}


def log_action(*, user: Optional[User], action: str, entity: str, entity_id: Optional[Any]=None,
               details: Optional[Dict[str, Any]]=None, request=None) -> Optional[AuditLog]:
    """Append one audit record.

    Best effort: a failed write is logged and swallowed so it never fails
    the operation being audited.  The insert runs in its own savepoint so
    an error cannot poison an enclosing transaction.
    """
    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                user=user if isinstance(user, User) else None,
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details or {},
                **_client_meta(request),
            )
    except DatabaseError:
        logger.exception('Failed to create audit log: %s %s/%s', action, entity, entity_id)
        return None

"""
Audit Log Domain Entity.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

USER_BANNED = 'user_banned'
USER_UNBANNED = 'user_unbanned'
ROLE_CHANGED = 'role_changed'
TICKET_RESOLVED = 'ticket_resolved'
TICKET_ASSIGNED = 'ticket_assigned'

AUDIT_ACTIONS = (USER_BANNED, USER_UNBANNED, ROLE_CHANGED, TICKET_RESOLVED, TICKET_ASSIGNED)

@dataclass
class AuditLog:
    action: str
    performed_by: str
    performed_by_name: str
    timestamp: datetime
    id: Optional[str] = None
    target_user_id: Optional[str] = None
    target_user_name: Optional[str] = None
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

"""
Moderation record (warning / suspension / ban) attached to a user.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

WARNING = 'warning'
SUSPENSION = 'suspension'
BAN = 'ban'

WARNING_TYPES = (WARNING, SUSPENSION, BAN)
# Types that block navigation for the user while active
RESTRICTING_TYPES = (BAN, SUSPENSION)

@dataclass
class WarningRecord:
    user_id: str
    type: str
    reason: str
    is_active: bool
    created_at: datetime
    admin_id: str
    admin_name: str
    id: Optional[str] = None
    details: Optional[str] = None
    expires_at: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None
    deactivated_by: Optional[str] = None

    @property
    def is_restricting(self) -> bool:
        return self.type in RESTRICTING_TYPES

    def has_expired(self, now: datetime) -> bool:
        # Bans never carry expiresAt, so they never expire
        return self.expires_at is not None and self.expires_at <= now

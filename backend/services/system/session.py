"""Per-request session built from verified Firebase credentials."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

ADMIN_ROLES = frozenset({'admin', 'founder'})


@dataclass(frozen=True)
class Session:
    """Authenticated caller of one request.

    Built by the auth middleware and passed explicitly to the services that
    need to know who is acting; nothing reads it from module state.
    """

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: Optional[str] = None
    is_admin: bool = False
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def actor_name(self) -> str:
        return self.display_name or self.email or self.user_id

    def can_act_for(self, user_id: str) -> bool:
        return self.is_admin or self.user_id == user_id

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Session":
        role = claims.get('role')
        is_admin = bool(claims.get('admin', False)) or role in ADMIN_ROLES
        return cls(
            user_id=claims.get('uid') or claims.get('user_id') or claims.get('sub'),
            email=claims.get('email'),
            display_name=claims.get('name'),
            role=role,
            is_admin=is_admin,
            claims=dict(claims),
        )

"""
Moderation Service.

Owns the Warning/Ban store: bans, unbans, suspensions and plain warnings,
plus the gating policy the route guard consults. Ban and unban write the
user flags, the moderation record and the audit entry in one Firestore
write batch, so an applied ban is never left unaudited.
"""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from backend.common.base.base_service import BaseService, Clock
from backend.features.audit.domain.audit_entity import ROLE_CHANGED, USER_BANNED, USER_UNBANNED, AuditLog
from backend.features.audit.mapper.audit_mapper import to_response_dict as audit_to_response
from backend.features.audit.repository.audit_repository import AuditRepository
from backend.features.audit.service.audit_service import AuditService
from backend.features.moderation.domain.warning_entity import (
    BAN,
    SUSPENSION,
    WARNING,
    WarningRecord,
)
from backend.features.moderation.mapper.warning_mapper import to_response_dict
from backend.features.moderation.repository.user_repository import UserRepository
from backend.features.moderation.repository.warning_repository import WarningRepository
from backend.services.system.logger_service import get_logger, log_moderation_action
from backend.services.system.session import Session
from backend.utils.time_utils import format_display, isoformat

logger = get_logger(__name__)


class UserNotFound(LookupError):
    pass


class ModerationService(BaseService):
    def __init__(
        self,
        warning_repository: WarningRepository,
        user_repository: UserRepository,
        audit_repository: AuditRepository,
        audit_service: AuditService,
        suspension_auto_expire: bool = False,
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock)
        self.warning_repository = warning_repository
        self.user_repository = user_repository
        self.audit_repository = audit_repository
        self.audit_service = audit_service
        self.suspension_auto_expire = suspension_auto_expire

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def record_action(
        self,
        action: str,
        actor_id: str,
        actor_name: str,
        target_id: Optional[str] = None,
        target_name: Optional[str] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Append an audit entry. Write failures propagate to the caller."""
        entry = self.audit_service.build_entry(
            action, actor_id, actor_name,
            target_user_id=target_id,
            target_user_name=target_name,
            reason=reason,
            details=details,
        )
        return self.audit_service.append(entry)

    # ------------------------------------------------------------------
    # Ban / Unban
    # ------------------------------------------------------------------

    def ban(self, actor: Session, target_id: str, target_name: Optional[str], reason: str) -> Dict[str, Any]:
        reason = (reason or '').strip()
        if not reason:
            raise ValueError("Please provide a ban reason")
        self._check_target(actor, target_id)

        now = self.now()
        batch = self.warning_repository.batch()

        self.user_repository.stage_update_fields(batch, target_id, {
            'isBanned': True,
            'banReason': reason,
            'banDate': now,
        })
        warning = self.warning_repository.stage(batch, WarningRecord(
            user_id=target_id,
            type=BAN,
            reason=reason,
            is_active=True,
            created_at=now,
            admin_id=actor.user_id,
            admin_name=actor.actor_name,
        ))
        entry = self.audit_repository.stage(batch, self.audit_service.build_entry(
            USER_BANNED, actor.user_id, actor.actor_name,
            target_user_id=target_id,
            target_user_name=target_name,
            reason=reason,
            details={'warningId': warning.id},
        ))
        batch.commit()

        log_moderation_action(logger, USER_BANNED, target_id, actor.user_id, warning_id=warning.id)
        return {'warning': to_response_dict(warning), 'auditEntry': audit_to_response(entry)}

    def unban(self, actor: Session, target_id: str, target_name: Optional[str] = None) -> Dict[str, Any]:
        self._check_target(actor, target_id)

        now = self.now()
        lifted = [w for w in self.warning_repository.find_active_by_user(target_id) if w.is_restricting]

        batch = self.warning_repository.batch()
        self.user_repository.stage_update_fields(batch, target_id, {
            'isBanned': False,
            'banReason': firestore.DELETE_FIELD,
            'banDate': firestore.DELETE_FIELD,
        })
        for warning in lifted:
            self.warning_repository.stage_update(batch, warning.id, {
                'isActive': False,
                'deactivatedAt': now,
                'deactivatedBy': actor.user_id,
            })
        entry = self.audit_repository.stage(batch, self.audit_service.build_entry(
            USER_UNBANNED, actor.user_id, actor.actor_name,
            target_user_id=target_id,
            target_user_name=target_name,
            details={'deactivatedWarnings': [w.id for w in lifted]},
        ))
        batch.commit()

        log_moderation_action(logger, USER_UNBANNED, target_id, actor.user_id, lifted=len(lifted))
        return {
            'deactivatedWarnings': [w.id for w in lifted],
            'auditEntry': audit_to_response(entry),
        }

    # ------------------------------------------------------------------
    # Warnings / Suspensions / Roles
    # ------------------------------------------------------------------

    def issue_warning(self, actor: Session, target_id: str, reason: str, details: Optional[str] = None) -> Dict[str, Any]:
        reason = (reason or '').strip()
        if not reason:
            raise ValueError("Please provide a warning reason")
        self._check_target(actor, target_id)

        warning = self.warning_repository.save(WarningRecord(
            user_id=target_id,
            type=WARNING,
            reason=reason,
            details=details,
            is_active=True,
            created_at=self.now(),
            admin_id=actor.user_id,
            admin_name=actor.actor_name,
        ))
        log_moderation_action(logger, 'user_warned', target_id, actor.user_id, warning_id=warning.id)
        return to_response_dict(warning)

    def suspend(
        self,
        actor: Session,
        target_id: str,
        target_name: Optional[str],
        reason: str,
        expires_at: datetime,
        details: Optional[str] = None,
    ) -> Dict[str, Any]:
        reason = (reason or '').strip()
        if not reason:
            raise ValueError("Please provide a suspension reason")
        if expires_at is None:
            raise ValueError("Suspension end time is required")
        self._check_target(actor, target_id)

        now = self.now()
        if expires_at <= now:
            raise ValueError("Suspension end time must be in the future")

        batch = self.warning_repository.batch()
        warning = self.warning_repository.stage(batch, WarningRecord(
            user_id=target_id,
            type=SUSPENSION,
            reason=reason,
            details=details,
            is_active=True,
            created_at=now,
            expires_at=expires_at,
            admin_id=actor.user_id,
            admin_name=actor.actor_name,
        ))
        # The audit action set is fixed; suspensions are recorded as bans with their type in details
        entry = self.audit_repository.stage(batch, self.audit_service.build_entry(
            USER_BANNED, actor.user_id, actor.actor_name,
            target_user_id=target_id,
            target_user_name=target_name,
            reason=reason,
            details={'type': SUSPENSION, 'expiresAt': isoformat(expires_at), 'warningId': warning.id},
        ))
        batch.commit()

        log_moderation_action(logger, 'user_suspended', target_id, actor.user_id,
                              warning_id=warning.id, expires_at=isoformat(expires_at))
        return {'warning': to_response_dict(warning), 'auditEntry': audit_to_response(entry)}

    def change_role(self, actor: Session, target_id: str, target_name: Optional[str], role: str) -> Dict[str, Any]:
        role = (role or '').strip()
        if not role:
            raise ValueError("Role is required")
        self._check_target(actor, target_id)

        user = self.user_repository.find_by_id(target_id)
        if user is None:
            raise UserNotFound(f"User {target_id} not found")

        previous_role = user.get('role')
        if previous_role == role:
            return {'role': role, 'changed': False}

        batch = self.user_repository.batch()
        self.user_repository.stage_update_fields(batch, target_id, {'role': role})
        entry = self.audit_repository.stage(batch, self.audit_service.build_entry(
            ROLE_CHANGED, actor.user_id, actor.actor_name,
            target_user_id=target_id,
            target_user_name=target_name or user.get('displayName'),
            details={'previousRole': previous_role, 'newRole': role},
        ))
        batch.commit()

        log_moderation_action(logger, ROLE_CHANGED, target_id, actor.user_id,
                              previous_role=previous_role, new_role=role)
        return {'role': role, 'changed': True, 'auditEntry': audit_to_response(entry)}

    # ------------------------------------------------------------------
    # Reads / gating policy
    # ------------------------------------------------------------------

    def get_active_warnings(self, user_id: str) -> List[WarningRecord]:
        """Every record with isActive set; expired suspensions are not filtered out."""
        return self.warning_repository.find_active_by_user(user_id)

    def get_user_warnings(self, user_id: str) -> List[Dict[str, Any]]:
        return [to_response_dict(w) for w in self.warning_repository.find_by_user(user_id)]

    def restricting_warning(self, warnings: List[WarningRecord]) -> Optional[WarningRecord]:
        """The active ban or suspension that restricts the user, bans first."""
        now = self.now()
        candidates = []
        for warning in warnings:
            if not warning.is_active or not warning.is_restricting:
                continue
            if self.suspension_auto_expire and warning.type == SUSPENSION and warning.has_expired(now):
                continue
            candidates.append(warning)
        if not candidates:
            return None
        bans = [w for w in candidates if w.type == BAN]
        return (bans or candidates)[0]

    def build_ban_notice(self, user_id: str) -> Optional[Dict[str, Any]]:
        warning = self.restricting_warning(self.get_active_warnings(user_id))
        if warning is None:
            return None

        now = self.now()
        is_ban = warning.type == BAN
        days_remaining = None
        if warning.type == SUSPENSION and warning.expires_at is not None:
            days_remaining = max(0, math.ceil((warning.expires_at - now).total_seconds() / 86400))

        return {
            'warningId': warning.id,
            'type': warning.type,
            'title': self._notice_title(warning, days_remaining),
            'accountStatus': 'Permanently Disabled' if is_ban else 'Temporarily Suspended',
            'isPermanent': is_ban,
            'reason': warning.reason,
            'details': warning.details,
            'reviewDate': format_display(warning.created_at),
            'canReactivateDate': None if is_ban else format_display(warning.expires_at),
            'daysRemaining': days_remaining,
        }

    @staticmethod
    def _notice_title(warning: WarningRecord, days_remaining: Optional[int]) -> str:
        if warning.type == BAN:
            return 'Permanently Banned'
        if warning.type == SUSPENSION:
            if days_remaining is None:
                return 'Suspended'
            return f'Suspended for {days_remaining} Days'
        return 'Account Warning'

    @staticmethod
    def _check_target(actor: Session, target_id: str) -> None:
        if not target_id:
            raise ValueError("Target user is required")
        if actor.user_id == target_id:
            raise ValueError("You cannot moderate your own account")

"""
Audit Service.
Append-only record of administrative actions.
"""
from typing import Any, Dict, List, Optional
from backend.common.base.base_service import BaseService, Clock
from backend.features.audit.domain.audit_entity import AUDIT_ACTIONS, AuditLog
from backend.features.audit.mapper.audit_mapper import to_response_dict
from backend.features.audit.repository.audit_repository import AuditRepository
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)


class AuditService(BaseService):
    def __init__(self, audit_repository: AuditRepository, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.audit_repository = audit_repository

    def build_entry(
        self,
        action: str,
        performed_by: str,
        performed_by_name: str,
        target_user_id: Optional[str] = None,
        target_user_name: Optional[str] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Validate and timestamp an entry without writing it."""
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"Unknown audit action: {action}")
        if not performed_by:
            raise ValueError("performedBy is required")

        return AuditLog(
            action=action,
            performed_by=performed_by,
            performed_by_name=performed_by_name or performed_by,
            timestamp=self.now(),
            target_user_id=target_user_id,
            target_user_name=target_user_name,
            reason=reason,
            details=details,
        )

    def append(self, entry: AuditLog) -> AuditLog:
        if entry.action not in AUDIT_ACTIONS:
            raise ValueError(f"Unknown audit action: {entry.action}")
        saved = self.audit_repository.save(entry)
        logger.info(
            "Audit entry appended",
            extra={'audit_id': saved.id, 'action': saved.action, 'target_user_id': saved.target_user_id}
        )
        return saved

    def list_all(self) -> List[Dict[str, Any]]:
        return [to_response_dict(entry) for entry in self.audit_repository.find_all()]

    def list_for_user(self, target_user_id: str) -> List[Dict[str, Any]]:
        return [to_response_dict(entry) for entry in self.audit_repository.find_by_target(target_user_id)]

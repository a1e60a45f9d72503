"""
Audit Controller.
"""
from flask import request
from pydantic import ValidationError
from backend.common.base.base_controller import BaseController
from backend.features.audit.mapper.audit_mapper import to_response_dict
from backend.features.audit.service.audit_service import AuditService
from backend.schemas.moderation_schemas import AuditEntryRequest
from backend.services.system.logger_service import get_logger, log_error

logger = get_logger(__name__)


class AuditController(BaseController):
    def __init__(self, audit_service: AuditService):
        self.audit_service = audit_service

    def record_action(self):
        session = self.current_session()
        try:
            payload = AuditEntryRequest(**(request.get_json(silent=True) or {}))
        except ValidationError as e:
            return self.handle_validation_error(e, 'Invalid audit entry')

        try:
            entry = self.audit_service.build_entry(
                payload.action,
                session.user_id,
                session.actor_name,
                target_user_id=payload.targetUserId,
                target_user_name=payload.targetUserName,
                reason=payload.reason,
                details=payload.details,
            )
            saved = self.audit_service.append(entry)
            return self.handle_response({'success': True, 'entry': to_response_dict(saved)}, 201)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'record_audit_action'})
            return self.handle_error('Failed to record action', 500)

    def list_logs(self):
        logs = self.audit_service.list_all()
        return self.handle_response({'success': True, 'logs': logs, 'count': len(logs)})

    def list_logs_for_user(self, user_id: str):
        logs = self.audit_service.list_for_user(user_id)
        return self.handle_response({'success': True, 'logs': logs, 'count': len(logs)})

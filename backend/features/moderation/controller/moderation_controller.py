"""
Moderation Controller.
"""
from flask import request
from pydantic import ValidationError
from backend.common.base.base_controller import BaseController
from backend.features.moderation.mapper.warning_mapper import to_response_dict
from backend.features.moderation.service.moderation_service import ModerationService, UserNotFound
from backend.features.moderation.service.route_guard import RouteGuard
from backend.schemas.moderation_schemas import (
    BanUserRequest,
    ChangeRoleRequest,
    SuspendUserRequest,
    UnbanUserRequest,
    WarnUserRequest,
)
from backend.services.system.logger_service import get_logger, log_error
from backend.utils.time_utils import to_utc

logger = get_logger(__name__)


class ModerationController(BaseController):
    def __init__(self, moderation_service: ModerationService, route_guard: RouteGuard):
        self.moderation_service = moderation_service
        self.route_guard = route_guard

    def _body(self) -> dict:
        return request.get_json(silent=True) or {}

    def ban_user(self, uid: str):
        try:
            payload = BanUserRequest(**self._body())
        except ValidationError as e:
            return self.handle_validation_error(e, 'Please provide a ban reason')

        try:
            logger.info(f"Request to ban user {uid}", extra={'reason': payload.reason})
            result = self.moderation_service.ban(self.current_session(), uid, payload.targetName, payload.reason)
            return self.handle_response({'success': True, **result})
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'ban_user', 'target_user_id': uid})
            return self.handle_error('Failed to ban user', 500)

    def unban_user(self, uid: str):
        try:
            payload = UnbanUserRequest(**self._body())
        except ValidationError as e:
            return self.handle_validation_error(e)

        try:
            logger.info(f"Request to unban user {uid}")
            result = self.moderation_service.unban(self.current_session(), uid, payload.targetName)
            return self.handle_response({'success': True, **result})
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'unban_user', 'target_user_id': uid})
            return self.handle_error('Failed to unban user', 500)

    def suspend_user(self, uid: str):
        try:
            payload = SuspendUserRequest(**self._body())
        except ValidationError as e:
            return self.handle_validation_error(e, 'Invalid suspension request')

        try:
            expires_at = to_utc(payload.expiresAt)
            result = self.moderation_service.suspend(
                self.current_session(), uid, payload.targetName, payload.reason, expires_at, payload.details
            )
            return self.handle_response({'success': True, **result})
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'suspend_user', 'target_user_id': uid})
            return self.handle_error('Failed to suspend user', 500)

    def warn_user(self, uid: str):
        try:
            payload = WarnUserRequest(**self._body())
        except ValidationError as e:
            return self.handle_validation_error(e, 'Please provide a warning reason')

        try:
            warning = self.moderation_service.issue_warning(self.current_session(), uid, payload.reason, payload.details)
            return self.handle_response({'success': True, 'warning': warning}, 201)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'warn_user', 'target_user_id': uid})
            return self.handle_error('Failed to issue warning', 500)

    def change_role(self, uid: str):
        try:
            payload = ChangeRoleRequest(**self._body())
        except ValidationError as e:
            return self.handle_validation_error(e, 'Role is required')

        try:
            result = self.moderation_service.change_role(self.current_session(), uid, payload.targetName, payload.role)
            return self.handle_response({'success': True, **result})
        except UserNotFound as e:
            return self.handle_error(str(e), 404)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'change_role', 'target_user_id': uid})
            return self.handle_error('Failed to change role', 500)

    def get_active_warnings(self, uid: str):
        session = self.current_session()
        if not session.can_act_for(uid):
            return self.handle_error('Not allowed to view these warnings', 403)
        try:
            warnings = [to_response_dict(w) for w in self.moderation_service.get_active_warnings(uid)]
            return self.handle_response({'success': True, 'warnings': warnings, 'count': len(warnings)})
        except Exception as e:
            log_error(logger, e, {'operation': 'get_active_warnings', 'user_id': uid})
            return self.handle_error('Failed to load warnings', 500)

    def get_user_warnings(self, uid: str):
        session = self.current_session()
        if not session.can_act_for(uid):
            return self.handle_error('Not allowed to view these warnings', 403)
        warnings = self.moderation_service.get_user_warnings(uid)
        return self.handle_response({'success': True, 'warnings': warnings, 'count': len(warnings)})

    def get_ban_notice(self):
        session = self.current_session()
        try:
            notice = self.moderation_service.build_ban_notice(session.user_id)
        except Exception as e:
            log_error(logger, e, {'operation': 'get_ban_notice', 'user_id': session.user_id})
            notice = None
        if notice is None:
            # Nothing restricts this user: the client returns to the home page
            return self.handle_response({'success': True, 'notice': None, 'redirect': '/'})
        return self.handle_response({'success': True, 'notice': notice})

    def get_guard_status(self):
        decision = self.route_guard.evaluate(self.current_session())
        return self.handle_response({'success': True, 'guard': decision.to_dict()})

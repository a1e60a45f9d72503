"""
Moderation Feature Module.
"""
from flask import Blueprint
from backend.config.env_config import get_app_config
from backend.features.audit.index import audit_repository, audit_service
from backend.features.moderation.controller.moderation_controller import ModerationController
from backend.features.moderation.repository.user_repository import UserRepository
from backend.features.moderation.repository.warning_repository import WarningRepository
from backend.features.moderation.service.moderation_service import ModerationService
from backend.features.moderation.service.route_guard import RouteGuard
from backend.services.system.auth_middleware import require_admin, require_auth

# Dependency Injection
warning_repository = WarningRepository()
user_repository = UserRepository()
moderation_service = ModerationService(
    warning_repository=warning_repository,
    user_repository=user_repository,
    audit_repository=audit_repository,
    audit_service=audit_service,
    suspension_auto_expire=get_app_config()['suspension_auto_expire'],
)
route_guard = RouteGuard(moderation_service)
moderation_controller = ModerationController(moderation_service, route_guard)

# Blueprint
moderation_bp = Blueprint('moderation', __name__)

# Admin actions
moderation_bp.add_url_rule(
    '/api/admin/users/<uid>/ban',
    view_func=require_admin(moderation_controller.ban_user),
    endpoint='ban_user',
    methods=['POST']
)
moderation_bp.add_url_rule(
    '/api/admin/users/<uid>/unban',
    view_func=require_admin(moderation_controller.unban_user),
    endpoint='unban_user',
    methods=['POST']
)
moderation_bp.add_url_rule(
    '/api/admin/users/<uid>/suspend',
    view_func=require_admin(moderation_controller.suspend_user),
    endpoint='suspend_user',
    methods=['POST']
)
moderation_bp.add_url_rule(
    '/api/admin/users/<uid>/warn',
    view_func=require_admin(moderation_controller.warn_user),
    endpoint='warn_user',
    methods=['POST']
)
moderation_bp.add_url_rule(
    '/api/admin/users/<uid>/role',
    view_func=require_admin(moderation_controller.change_role),
    endpoint='change_role',
    methods=['PUT']
)

# User-facing reads
moderation_bp.add_url_rule(
    '/api/users/<uid>/warnings',
    view_func=require_auth(moderation_controller.get_user_warnings),
    endpoint='get_user_warnings',
    methods=['GET']
)
moderation_bp.add_url_rule(
    '/api/users/<uid>/warnings/active',
    view_func=require_auth(moderation_controller.get_active_warnings),
    endpoint='get_active_warnings',
    methods=['GET']
)
moderation_bp.add_url_rule(
    '/api/moderation/ban-notice',
    view_func=require_auth(moderation_controller.get_ban_notice),
    endpoint='get_ban_notice',
    methods=['GET']
)
moderation_bp.add_url_rule(
    '/api/moderation/guard',
    view_func=require_auth(moderation_controller.get_guard_status),
    endpoint='get_guard_status',
    methods=['GET']
)

"""
Audit Feature Module.
"""
from flask import Blueprint
from backend.features.audit.controller.audit_controller import AuditController
from backend.features.audit.repository.audit_repository import AuditRepository
from backend.features.audit.service.audit_service import AuditService
from backend.services.system.auth_middleware import require_admin

# Dependency Injection
audit_repository = AuditRepository()
audit_service = AuditService(audit_repository=audit_repository)
audit_controller = AuditController(audit_service=audit_service)

# Blueprint
audit_bp = Blueprint('audit', __name__)

# Routes
audit_bp.add_url_rule(
    '/api/audit/logs',
    view_func=require_admin(audit_controller.record_action),
    endpoint='record_action',
    methods=['POST']
)

audit_bp.add_url_rule(
    '/api/audit/logs',
    view_func=require_admin(audit_controller.list_logs),
    endpoint='list_logs',
    methods=['GET']
)

audit_bp.add_url_rule(
    '/api/audit/logs/<user_id>',
    view_func=require_admin(audit_controller.list_logs_for_user),
    endpoint='list_logs_for_user',
    methods=['GET']
)

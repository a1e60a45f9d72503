"""
Scheduled Uploads Feature Module.
"""
from flask import Blueprint
from backend.config.env_config import get_app_config
from backend.features.uploads.controller.scheduled_upload_controller import ScheduledUploadController
from backend.features.uploads.repository.asset_repository import AssetRepository
from backend.features.uploads.repository.scheduled_upload_repository import ScheduledUploadRepository
from backend.features.uploads.service.asset_publisher import AssetPublisher
from backend.features.uploads.service.scheduled_upload_service import ScheduledUploadService
from backend.services.system.auth_middleware import require_admin, require_auth

# Dependency Injection
scheduled_upload_repository = ScheduledUploadRepository()
asset_repository = AssetRepository()
scheduled_upload_service = ScheduledUploadService(
    repository=scheduled_upload_repository,
    lease_seconds=get_app_config()['worker_lease_seconds'],
)
asset_publisher = AssetPublisher(asset_repository)
scheduled_upload_controller = ScheduledUploadController(scheduled_upload_service)

# Blueprint
uploads_bp = Blueprint('uploads', __name__)

# Routes
uploads_bp.add_url_rule(
    '/api/scheduled-uploads',
    view_func=require_auth(scheduled_upload_controller.schedule_upload),
    endpoint='schedule_upload',
    methods=['POST']
)

uploads_bp.add_url_rule(
    '/api/scheduled-uploads',
    view_func=require_auth(scheduled_upload_controller.list_uploads),
    endpoint='list_uploads',
    methods=['GET']
)

uploads_bp.add_url_rule(
    '/api/scheduled-uploads/pending',
    view_func=require_admin(scheduled_upload_controller.list_pending),
    endpoint='list_pending_uploads',
    methods=['GET']
)

uploads_bp.add_url_rule(
    '/api/scheduled-uploads/<upload_id>/status',
    view_func=require_admin(scheduled_upload_controller.update_status),
    endpoint='update_upload_status',
    methods=['PUT']
)

uploads_bp.add_url_rule(
    '/api/scheduled-uploads/<upload_id>/cancel',
    view_func=require_auth(scheduled_upload_controller.cancel_upload),
    endpoint='cancel_upload',
    methods=['POST']
)

uploads_bp.add_url_rule(
    '/api/scheduled-uploads/<upload_id>',
    view_func=require_auth(scheduled_upload_controller.delete_upload),
    endpoint='delete_upload',
    methods=['DELETE']
)

from flask import Blueprint
from backend.config.env_config import get_app_config
from backend.features.system.controller.download_controller import DownloadController
from backend.features.system.controller.health_controller import HealthController
from backend.features.system.controller.nsfw_controller import NsfwController
from backend.features.system.service.download_service import DownloadService
from backend.features.system.service.health_service import HealthService
from backend.features.system.service.nsfw_service import NsfwService
from backend.services.system.auth_middleware import require_admin
from backend.services.system.security import limiter, user_id_rate_key

config = get_app_config()

# Instantiate Services
health_service = HealthService()
download_service = DownloadService(
    bucket=config['storage_bucket'],
    timeout=config['download_timeout_seconds'],
)
nsfw_service = NsfwService(
    detection_url=config['nsfw_detection_url'],
    timeout=config['nsfw_detection_timeout_seconds'],
)

# Instantiate Controllers
health_controller = HealthController(health_service)
download_controller = DownloadController(download_service)
nsfw_controller = NsfwController(nsfw_service)

# Blueprint
system_bp = Blueprint('system', __name__)

# Health Routes
system_bp.add_url_rule('/health', view_func=health_controller.health_check, endpoint='health', methods=['GET'])
system_bp.add_url_rule('/api/health', view_func=health_controller.health_check, endpoint='api_health', methods=['GET'])

# Storage download proxy
system_bp.add_url_rule('/api/download', view_func=download_controller.download, endpoint='download', methods=['GET'])

# NSFW pre-check, limited per ?userId=
nsfw_limit = f"{config['nsfw_checks_per_minute']} per minute"
system_bp.add_url_rule(
    '/api/nsfw-check',
    view_func=limiter.limit(nsfw_limit, key_func=user_id_rate_key)(nsfw_controller.check_image),
    endpoint='nsfw_check',
    methods=['POST']
)
system_bp.add_url_rule(
    '/api/nsfw-check/stats',
    view_func=require_admin(nsfw_controller.get_stats),
    endpoint='nsfw_stats',
    methods=['GET']
)
system_bp.add_url_rule(
    '/api/nsfw-check/audit',
    view_func=require_admin(nsfw_controller.get_audit_logs),
    endpoint='nsfw_audit',
    methods=['GET']
)

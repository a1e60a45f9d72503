from flask import jsonify
from backend.common.base.base_controller import BaseController
from backend.features.system.service.health_service import HealthService
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

class HealthController(BaseController):
    def __init__(self, health_service: HealthService):
        self.health_service = health_service

    def health_check(self):
        try:
            data = self.health_service.get_health_data()
            logger.debug("Health check", extra={"uptime_hours": data.get('uptime_hours')})
            return jsonify(data)
        except Exception as e:
            return jsonify({
                'status': 'unhealthy',
                'error': str(e)
            }), 500

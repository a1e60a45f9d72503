from flask import request
from backend.common.base.base_controller import BaseController
from backend.features.system.service.nsfw_service import AUDIT_LOG_SIZE, NsfwService
from backend.services.system.logger_service import get_logger, log_error

logger = get_logger(__name__)

class NsfwController(BaseController):
    def __init__(self, service: NsfwService):
        self.service = service

    def check_image(self):
        user_id = request.args.get('userId') or 'anonymous'
        upload = request.files.get('file')
        if upload is None:
            return self.handle_error('No image provided', 400, code='NO_IMAGE')

        image = upload.read()
        if not image:
            return self.handle_error('No image provided', 400, code='NO_IMAGE')

        try:
            result = self.service.detect(
                image,
                upload.filename or 'file',
                user_id,
                upload.mimetype or 'application/octet-stream',
            )
        except Exception as e:
            log_error(logger, e, {'operation': 'nsfw_check', 'user_id': user_id})
            return self.handle_error('Image validation failed', 500, code='VALIDATION_ERROR')

        confidence = round(result['confidence'], 2)
        if result['isNSFW']:
            return self.handle_error(
                'Image rejected: contains prohibited content', 403,
                code='NSFW_CONTENT_DETECTED',
                details={'category': result['category'], 'confidence': confidence},
            )

        return self.handle_response({
            'success': True,
            'approved': True,
            'category': result['category'],
            'confidence': confidence,
        })

    def get_stats(self):
        return self.handle_response({
            'success': True,
            'stats': self.service.get_stats(),
            'timestamp': self.service.now().isoformat(),
        })

    def get_audit_logs(self):
        try:
            limit = int(request.args.get('limit', 100))
        except ValueError:
            return self.handle_error('limit must be an integer', 400)
        logs = self.service.get_audit_logs(min(limit, AUDIT_LOG_SIZE))
        return self.handle_response({
            'success': True,
            'logs': logs,
            'count': len(logs),
            'timestamp': self.service.now().isoformat(),
        })

from flask import Response, request, stream_with_context
from backend.common.base.base_controller import BaseController
from backend.features.system.service.download_service import (
    CHUNK_SIZE,
    DownloadService,
    StorageAccessDenied,
    StorageObjectNotFound,
    StorageUpstreamError,
)
from backend.services.system.logger_service import get_logger, log_error

logger = get_logger(__name__)

class DownloadController(BaseController):
    def __init__(self, service: DownloadService):
        self.service = service

    def download(self):
        file_path = request.args.get('filePath')
        file_name = request.args.get('fileName')
        try:
            upstream = self.service.open(file_path)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except StorageObjectNotFound:
            return self.handle_error('File not found', 404, code='OBJECT_NOT_FOUND')
        except StorageAccessDenied:
            return self.handle_error('Access denied', 403, code='UNAUTHORIZED')
        except StorageUpstreamError as e:
            return self.handle_error('Firebase Storage error', e.status_code, code=e.status_code)
        except Exception as e:
            log_error(logger, e, {'operation': 'download', 'file_path': file_path})
            return self.handle_error('Failed to download file', 500, message=str(e))

        def generate():
            try:
                for chunk in upstream.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        yield chunk
            finally:
                upstream.close()

        headers = {
            'Content-Disposition': f'attachment; filename="{self.service.download_name(file_path, file_name)}"',
            'Cache-Control': 'public, max-age=3600',
            'Accept-Ranges': 'bytes',
        }
        content_length = upstream.headers.get('Content-Length')
        if content_length:
            headers['Content-Length'] = content_length

        return Response(
            stream_with_context(generate()),
            status=200,
            content_type=upstream.headers.get('Content-Type') or 'application/octet-stream',
            headers=headers,
        )

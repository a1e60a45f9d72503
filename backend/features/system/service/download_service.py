"""
Firebase Storage download proxy.

Objects are fetched through the public ``alt=media`` endpoint and streamed
back to the caller so browsers never hit the storage CORS policy.
"""
from typing import Optional
from urllib.parse import quote

import requests

from backend.common.base.base_service import BaseService
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

STORAGE_DOWNLOAD_URL = 'https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media'
CHUNK_SIZE = 64 * 1024


class StorageObjectNotFound(LookupError):
    pass


class StorageAccessDenied(PermissionError):
    pass


class StorageUpstreamError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"Firebase Storage error: {status_code}")
        self.status_code = status_code


class DownloadService(BaseService):
    def __init__(self, bucket: str, timeout: float = 30.0):
        super().__init__()
        self.bucket = bucket
        self.timeout = timeout

    @staticmethod
    def validate_path(file_path: Optional[str]) -> str:
        if not file_path:
            raise ValueError('Missing filePath parameter')
        # Traversal check only; the path is not canonicalised
        if '..' in file_path or file_path.startswith('/'):
            raise ValueError('Invalid file path')
        return file_path

    @staticmethod
    def download_name(file_path: str, file_name: Optional[str] = None) -> str:
        return file_name or file_path.split('/')[-1] or 'file'

    def build_url(self, file_path: str) -> str:
        return STORAGE_DOWNLOAD_URL.format(bucket=self.bucket, path=quote(file_path, safe=''))

    def open(self, file_path: str) -> requests.Response:
        """Start a streamed fetch of the object. The caller closes the response."""
        file_path = self.validate_path(file_path)
        if not self.bucket:
            raise RuntimeError('Storage bucket is not configured')

        logger.info('Proxying download', extra={'file_path': file_path})
        upstream = requests.get(self.build_url(file_path), stream=True, timeout=self.timeout)

        if upstream.ok:
            return upstream

        upstream.close()
        logger.warning(
            'Firebase Storage error',
            extra={'file_path': file_path, 'status_code': upstream.status_code}
        )
        if upstream.status_code == 404:
            raise StorageObjectNotFound(file_path)
        if upstream.status_code == 403:
            raise StorageAccessDenied(file_path)
        raise StorageUpstreamError(upstream.status_code)

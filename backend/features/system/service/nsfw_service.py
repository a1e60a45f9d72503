"""
NSFW pre-check client.

Images are forwarded to an external detector over HTTP. Outcomes are kept
in process memory only: running counters and a bounded log of recent
checks, both reset on restart.
"""
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import requests

from backend.common.base.base_service import BaseService, Clock
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

AUDIT_LOG_SIZE = 1000


class NsfwDetectionError(Exception):
    """The detector could not be reached or returned an unusable answer."""


class NsfwService(BaseService):
    def __init__(self, detection_url: str, timeout: float = 15.0, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.detection_url = detection_url
        self.timeout = timeout
        self._lock = threading.Lock()
        self._audit_log: Deque[Dict[str, Any]] = deque(maxlen=AUDIT_LOG_SIZE)
        self._stats = {
            'totalChecks': 0,
            'approved': 0,
            'rejected': 0,
            'errors': 0,
            'categories': {},
        }

    def detect(self, image: bytes, file_name: str, user_id: str,
               content_type: str = 'application/octet-stream') -> Dict[str, Any]:
        """Classify one image. Returns ``{'isNSFW', 'category', 'confidence'}``."""
        if not self.detection_url:
            self._record(user_id, file_name, len(image), error='detector not configured')
            raise NsfwDetectionError('NSFW detector is not configured')

        try:
            response = requests.post(
                self.detection_url,
                files={'file': (file_name, image, content_type)},
                data={'userId': user_id},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            result = {
                'isNSFW': bool(payload.get('isNSFW', payload.get('is_nsfw', False))),
                'category': payload.get('category') or 'unknown',
                'confidence': float(payload.get('confidence') or 0.0),
            }
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning('NSFW detector call failed', extra={'user_id': user_id, 'error': str(e)})
            self._record(user_id, file_name, len(image), error=str(e))
            raise NsfwDetectionError(str(e)) from e

        self._record(user_id, file_name, len(image), result=result)
        logger.info(
            'NSFW check completed',
            extra={
                'user_id': user_id,
                'is_nsfw': result['isNSFW'],
                'category': result['category'],
                'confidence': result['confidence'],
            }
        )
        return result

    def _record(self, user_id: str, file_name: str, size: int,
                result: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> None:
        entry = {
            'timestamp': self.now().isoformat(),
            'userId': user_id,
            'fileName': file_name,
            'fileSize': size,
        }
        with self._lock:
            self._stats['totalChecks'] += 1
            if error is not None:
                self._stats['errors'] += 1
                entry['error'] = error
            else:
                self._stats['rejected' if result['isNSFW'] else 'approved'] += 1
                categories = self._stats['categories']
                categories[result['category']] = categories.get(result['category'], 0) + 1
                entry.update(result)
            self._audit_log.append(entry)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = dict(self._stats)
            stats['categories'] = dict(self._stats['categories'])
        total = stats['totalChecks']
        stats['rejectionRate'] = round(stats['rejected'] / total, 4) if total else 0.0
        return stats

    def get_audit_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent checks first."""
        limit = max(0, min(limit, AUDIT_LOG_SIZE))
        with self._lock:
            entries = list(self._audit_log)
        return list(reversed(entries))[:limit]

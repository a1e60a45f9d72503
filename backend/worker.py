"""
Scheduled upload worker.

Polls for due scheduled uploads, claims each one under a lease, publishes
it onto its asset and records the outcome. A failed publish is marked
``failed`` and left for the owner; nothing is retried automatically.
Jobs left in ``processing`` by a worker that died are taken over once
their lease expires.
"""
import os
import signal
import socket
import threading
import uuid
from typing import Dict, Optional

from backend.config.env_config import get_app_config, load_env_file
from backend.features.uploads.domain.scheduled_upload_entity import (
    COMPLETED,
    FAILED,
    ConcurrentUpdate,
    ScheduledUploadNotFound,
)
from backend.features.uploads.service.asset_publisher import AssetPublisher
from backend.features.uploads.service.scheduled_upload_service import ScheduledUploadService
from backend.services.system.logger_service import get_logger, log_error

logger = get_logger(__name__)


class ScheduledUploadWorker:
    def __init__(
        self,
        upload_service: ScheduledUploadService,
        publisher: AssetPublisher,
        worker_id: Optional[str] = None,
        poll_interval: float = 60.0,
    ):
        self.upload_service = upload_service
        self.publisher = publisher
        self.worker_id = worker_id or f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:6]}"
        self.poll_interval = poll_interval

    def run_once(self) -> Dict[str, int]:
        """One polling pass. Returns counts of claimed, completed and failed jobs."""
        summary = {'claimed': 0, 'completed': 0, 'failed': 0}
        candidates = self.upload_service.list_pending() + self.upload_service.list_expired_leases()
        for pending in candidates:
            upload = self.upload_service.claim(pending.id, self.worker_id)
            if upload is None:
                continue
            summary['claimed'] += 1

            try:
                self.publisher.publish(upload)
            except Exception as e:
                log_error(logger, e, {'operation': 'publish_scheduled_upload', 'upload_id': upload.id})
                if self._finish(upload.id, FAILED, str(e) or type(e).__name__):
                    summary['failed'] += 1
                continue

            if self._finish(upload.id, COMPLETED):
                summary['completed'] += 1

        if summary['claimed']:
            logger.info("Scheduled upload poll finished", extra={'worker_id': self.worker_id, **summary})
        return summary

    def _finish(self, upload_id: str, status: str, error_message: Optional[str] = None) -> bool:
        """Record the outcome of a claimed job. False when the record was deleted
        or taken over while it was being published."""
        try:
            self.upload_service.update_status(upload_id, status, error_message, worker_id=self.worker_id)
        except (ScheduledUploadNotFound, ConcurrentUpdate) as e:
            logger.warning(
                "Scheduled upload outcome not recorded",
                extra={'upload_id': upload_id, 'worker_id': self.worker_id, 'outcome': status, 'reason': str(e)}
            )
            return False
        return True

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        stop_event = stop_event or threading.Event()
        logger.info(
            "Scheduled upload worker started",
            extra={'worker_id': self.worker_id, 'poll_interval': self.poll_interval}
        )
        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                # Store outages skip this pass; the next poll tries again
                log_error(logger, e, {'operation': 'worker_poll', 'worker_id': self.worker_id})
            stop_event.wait(self.poll_interval)
        logger.info("Scheduled upload worker stopped", extra={'worker_id': self.worker_id})


def build_worker() -> ScheduledUploadWorker:
    from backend.features.uploads.index import asset_publisher, scheduled_upload_service

    config = get_app_config()
    return ScheduledUploadWorker(
        scheduled_upload_service,
        asset_publisher,
        poll_interval=config['worker_poll_interval_seconds'],
    )


if __name__ == "__main__":
    load_env_file()
    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    build_worker().run_forever(stop)

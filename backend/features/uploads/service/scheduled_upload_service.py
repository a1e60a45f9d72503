"""
Scheduled Upload Service.

Lifecycle: scheduled -> processing -> {completed, failed}, or
scheduled -> cancelled. Terminal records never move again.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from google.api_core.exceptions import FailedPrecondition, NotFound

from backend.common.base.base_service import BaseService, Clock
from backend.features.uploads.domain.scheduled_upload_entity import (
    CANCELLED,
    PROCESSING,
    SCHEDULED,
    STATUSES,
    ConcurrentUpdate,
    FileDescriptor,
    InvalidStatusTransition,
    LeaseLost,
    ScheduledUpload,
    ScheduledUploadNotFound,
)
from backend.features.uploads.mapper.scheduled_upload_mapper import file_from_dict
from backend.features.uploads.repository.scheduled_upload_repository import ScheduledUploadRepository
from backend.services.system.logger_service import get_logger, log_upload_operation

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ScheduledUploadService(BaseService):
    IMMEDIATE_DELAY = timedelta(minutes=1)
    DEFAULT_LEASE_SECONDS = 600

    def __init__(
        self,
        repository: ScheduledUploadRepository,
        lease_seconds: int = DEFAULT_LEASE_SECONDS,
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock)
        self.repository = repository
        self.lease_seconds = lease_seconds

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def schedule(
        self,
        user_id: str,
        asset_id: str,
        files: Sequence[Any],
        change_notes: str,
        scheduled_for: Optional[datetime],
    ) -> ScheduledUpload:
        """Create a ``scheduled`` record. Validation happens before any write."""
        if not asset_id:
            raise ValueError("Asset is required")
        if not files:
            raise ValueError("Please select at least one file to upload")
        if scheduled_for is None:
            raise ValueError("Please select a date and time")

        now = self.now()
        if scheduled_for <= now:
            raise ValueError("Schedule time must be in the future")

        upload = ScheduledUpload(
            asset_id=asset_id,
            user_id=user_id,
            files=[self._to_descriptor(f) for f in files],
            change_notes=change_notes or '',
            scheduled_for=scheduled_for,
            status=SCHEDULED,
            created_at=now,
            updated_at=now,
        )
        saved = self.repository.save(upload)
        log_upload_operation(
            logger, 'SCHEDULE', saved.id,
            user_id=user_id, asset_id=asset_id, file_count=len(saved.files),
            scheduled_for=scheduled_for.isoformat(),
        )
        return saved

    def schedule_immediately(self, user_id: str, asset_id: str, files: Sequence[Any], change_notes: str) -> ScheduledUpload:
        return self.schedule(user_id, asset_id, files, change_notes, self.now() + self.IMMEDIATE_DELAY)

    @staticmethod
    def _to_descriptor(value: Any) -> FileDescriptor:
        if isinstance(value, FileDescriptor):
            return value
        if isinstance(value, dict):
            descriptor = file_from_dict(value)
        else:
            descriptor = FileDescriptor(
                name=getattr(value, 'name', ''),
                size=int(getattr(value, 'size', 0) or 0),
                content_type=getattr(value, 'type', None) or 'application/octet-stream',
            )
        if not descriptor.name:
            raise ValueError("Every file needs a name")
        return descriptor

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, upload_id: str) -> ScheduledUpload:
        upload = self.repository.find_by_id(upload_id)
        if upload is None:
            raise ScheduledUploadNotFound(upload_id)
        return upload

    def list_for_user(self, user_id: str) -> List[ScheduledUpload]:
        """User's records, furthest ``scheduledFor`` first (display order)."""
        uploads = self.repository.find_by_user(user_id)
        uploads.sort(key=lambda u: u.scheduled_for or _EPOCH, reverse=True)
        return uploads

    def list_pending(self) -> List[ScheduledUpload]:
        """Due jobs: status predicate in the store, time predicate in memory."""
        now = self.now()
        pending = []
        for upload in self.repository.find_by_status(SCHEDULED):
            if upload.scheduled_for is None:
                logger.warning("Scheduled upload has no scheduledFor; skipping", extra={'upload_id': upload.id})
                continue
            if upload.scheduled_for <= now:
                pending.append(upload)
        return pending

    def list_expired_leases(self) -> List[ScheduledUpload]:
        """Processing jobs whose worker let the lease run out."""
        now = self.now()
        return [u for u in self.repository.find_by_status(PROCESSING) if u.lease_expired(now)]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def update_status(
        self,
        upload_id: str,
        status: str,
        error_message: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> ScheduledUpload:
        """Apply a lifecycle transition.

        With ``worker_id`` the write is refused (``LeaseLost``) unless that worker
        still holds the claim on the record.
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status}")

        current = self.get(upload_id)
        if worker_id is not None and current.claimed_by != worker_id:
            raise LeaseLost(upload_id, worker_id, current.claimed_by)
        if current.status == status:
            return current
        if not current.can_transition_to(status):
            raise InvalidStatusTransition(upload_id, current.status, status)

        now = self.now()
        fields = {
            'status': status,
            'errorMessage': error_message or None,
            'updatedAt': now,
        }
        self._write(upload_id, fields, current.update_time)

        current.status = status
        current.error_message = error_message or None
        current.updated_at = now
        log_upload_operation(logger, status.upper(), upload_id, error_message=error_message)
        return current

    def cancel(self, upload_id: str) -> ScheduledUpload:
        return self.update_status(upload_id, CANCELLED)

    def delete(self, upload_id: str) -> None:
        current = self.get(upload_id)
        if current.status == PROCESSING:
            logger.warning(
                "Deleting a scheduled upload that a worker is processing",
                extra={'upload_id': upload_id, 'claimed_by': current.claimed_by}
            )
        self.repository.delete(upload_id)
        log_upload_operation(logger, 'DELETE', upload_id, status=current.status)

    def claim(self, upload_id: str, worker_id: str) -> Optional[ScheduledUpload]:
        """Move a due job to ``processing`` under a lease held by ``worker_id``.

        A ``processing`` job whose lease has expired is taken over the same way.
        Returns None when the job is gone, not claimable, or another worker won.
        """
        current = self.repository.find_by_id(upload_id)
        now = self.now()
        if current is None:
            return None
        reclaiming = current.lease_expired(now)
        if not (current.is_due(now) or reclaiming):
            return None

        previous_worker = current.claimed_by
        lease_expires_at = now + timedelta(seconds=self.lease_seconds)
        fields = {
            'status': PROCESSING,
            'claimedBy': worker_id,
            'leaseExpiresAt': lease_expires_at,
            'errorMessage': None,
            'updatedAt': now,
        }
        try:
            self._write(upload_id, fields, current.update_time)
        except ConcurrentUpdate:
            logger.info("Scheduled upload already claimed", extra={'upload_id': upload_id, 'worker_id': worker_id})
            return None

        current.status = PROCESSING
        current.claimed_by = worker_id
        current.lease_expires_at = lease_expires_at
        current.error_message = None
        current.updated_at = now
        log_upload_operation(
            logger, 'RECLAIM' if reclaiming else 'CLAIM', upload_id,
            worker_id=worker_id, previous_worker=previous_worker if reclaiming else None,
        )
        return current

    def _write(self, upload_id: str, fields: Dict[str, Any], expected_update_time: Any) -> None:
        try:
            self.repository.update_fields(upload_id, fields, expected_update_time=expected_update_time)
        except NotFound:
            raise ScheduledUploadNotFound(upload_id)
        except FailedPrecondition as exc:
            raise ConcurrentUpdate(f"Scheduled upload {upload_id} changed concurrently") from exc

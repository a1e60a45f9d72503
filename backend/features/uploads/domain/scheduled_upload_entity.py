"""
Scheduled Upload Domain Entity.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

SCHEDULED = 'scheduled'
PROCESSING = 'processing'
COMPLETED = 'completed'
FAILED = 'failed'
CANCELLED = 'cancelled'

STATUSES = (SCHEDULED, PROCESSING, COMPLETED, FAILED, CANCELLED)
TERMINAL_STATUSES = (COMPLETED, FAILED, CANCELLED)

# scheduled -> processing -> {completed, failed}, or scheduled -> cancelled
ALLOWED_TRANSITIONS = {
    SCHEDULED: (PROCESSING, CANCELLED),
    PROCESSING: (COMPLETED, FAILED),
    COMPLETED: (),
    FAILED: (),
    CANCELLED: (),
}


class ScheduledUploadNotFound(LookupError):
    def __init__(self, upload_id: str):
        super().__init__(f"Scheduled upload {upload_id} not found")
        self.upload_id = upload_id


class InvalidStatusTransition(ValueError):
    def __init__(self, upload_id: str, current: str, requested: str):
        super().__init__(f"Cannot move scheduled upload {upload_id} from '{current}' to '{requested}'")
        self.upload_id = upload_id
        self.current = current
        self.requested = requested


class ConcurrentUpdate(RuntimeError):
    """The record changed between read and write."""


class LeaseLost(ConcurrentUpdate):
    def __init__(self, upload_id: str, worker_id: str, holder: Optional[str]):
        super().__init__(f"Worker {worker_id} no longer holds scheduled upload {upload_id} (held by {holder})")
        self.upload_id = upload_id
        self.worker_id = worker_id
        self.holder = holder


@dataclass
class FileDescriptor:
    name: str
    size: int
    content_type: str


@dataclass
class ScheduledUpload:
    asset_id: str
    user_id: str
    files: List[FileDescriptor]
    change_notes: str
    scheduled_for: Optional[datetime]
    status: str
    created_at: datetime
    updated_at: datetime
    id: Optional[str] = None
    error_message: Optional[str] = None
    claimed_by: Optional[str] = None
    lease_expires_at: Optional[datetime] = None
    # Firestore update_time of the snapshot this entity was read from; never persisted
    update_time: Any = field(default=None, compare=False, repr=False)

    def is_due(self, now: datetime) -> bool:
        return self.status == SCHEDULED and self.scheduled_for is not None and self.scheduled_for <= now

    def lease_expired(self, now: datetime) -> bool:
        """A processing record whose claiming worker ran past its lease."""
        return (
            self.status == PROCESSING
            and self.lease_expires_at is not None
            and self.lease_expires_at <= now
        )

    def can_transition_to(self, status: str) -> bool:
        return status in ALLOWED_TRANSITIONS.get(self.status, ())

"""
Scheduled Upload Mapper.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from backend.features.uploads.domain.scheduled_upload_entity import SCHEDULED, FileDescriptor, ScheduledUpload
from backend.utils.time_utils import isoformat, to_utc


def file_from_dict(data: Dict[str, Any]) -> FileDescriptor:
    return FileDescriptor(
        name=data.get('name', ''),
        size=int(data.get('size') or 0),
        content_type=data.get('type') or data.get('contentType') or 'application/octet-stream',
    )


def file_to_dict(descriptor: FileDescriptor) -> Dict[str, Any]:
    return {'name': descriptor.name, 'size': descriptor.size, 'type': descriptor.content_type}


def to_firestore_dict(upload: ScheduledUpload) -> Dict[str, Any]:
    data = {
        'assetId': upload.asset_id,
        'userId': upload.user_id,
        'files': [file_to_dict(f) for f in upload.files],
        'changeNotes': upload.change_notes,
        'scheduledFor': upload.scheduled_for,
        'status': upload.status,
        'createdAt': upload.created_at,
        'updatedAt': upload.updated_at,
    }
    if upload.error_message is not None:
        data['errorMessage'] = upload.error_message
    if upload.claimed_by is not None:
        data['claimedBy'] = upload.claimed_by
        data['leaseExpiresAt'] = upload.lease_expires_at
    return data


def from_firestore_dict(data: Dict[str, Any], doc_id: str, update_time: Any = None) -> ScheduledUpload:
    return ScheduledUpload(
        id=doc_id,
        asset_id=data.get('assetId', ''),
        user_id=data.get('userId', ''),
        files=[file_from_dict(f) for f in data.get('files') or []],
        change_notes=data.get('changeNotes', ''),
        scheduled_for=to_utc(data.get('scheduledFor')),
        status=data.get('status', SCHEDULED),
        created_at=to_utc(data.get('createdAt')),
        updated_at=to_utc(data.get('updatedAt')),
        error_message=data.get('errorMessage'),
        claimed_by=data.get('claimedBy'),
        lease_expires_at=to_utc(data.get('leaseExpiresAt')),
        update_time=update_time,
    )


def time_remaining(scheduled_for: datetime, now: datetime) -> str:
    """Short countdown label shown next to a scheduled upload."""
    diff_ms = (scheduled_for - now).total_seconds() * 1000
    if diff_ms < 0:
        return 'Ready to upload'

    minutes = int(diff_ms // 60000)
    hours = int(diff_ms // 3600000)
    days = int(diff_ms // 86400000)

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m"
    return 'Now'


def to_response_dict(upload: ScheduledUpload, now: Optional[datetime] = None) -> Dict[str, Any]:
    data = {
        'id': upload.id,
        'assetId': upload.asset_id,
        'userId': upload.user_id,
        'files': [file_to_dict(f) for f in upload.files],
        'changeNotes': upload.change_notes,
        'scheduledFor': isoformat(upload.scheduled_for),
        'status': upload.status,
        'createdAt': isoformat(upload.created_at),
        'updatedAt': isoformat(upload.updated_at),
        'errorMessage': upload.error_message,
    }
    if upload.claimed_by is not None:
        data['claimedBy'] = upload.claimed_by
        data['leaseExpiresAt'] = isoformat(upload.lease_expires_at)
    if now is not None and upload.scheduled_for is not None:
        data['timeRemaining'] = time_remaining(upload.scheduled_for, now)
    return data

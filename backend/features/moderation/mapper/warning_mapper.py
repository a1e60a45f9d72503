"""
Warning Mapper.
"""
from typing import Any, Dict
from backend.features.moderation.domain.warning_entity import WARNING, WarningRecord
from backend.utils.time_utils import isoformat, to_utc


def to_firestore_dict(record: WarningRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        'userId': record.user_id,
        'type': record.type,
        'reason': record.reason,
        'isActive': record.is_active,
        'createdAt': record.created_at,
        'adminId': record.admin_id,
        'adminName': record.admin_name,
    }
    if record.details is not None:
        data['details'] = record.details
    if record.expires_at is not None:
        data['expiresAt'] = record.expires_at
    if record.deactivated_at is not None:
        data['deactivatedAt'] = record.deactivated_at
    if record.deactivated_by is not None:
        data['deactivatedBy'] = record.deactivated_by
    return data


def from_firestore_dict(data: Dict[str, Any], doc_id: str) -> WarningRecord:
    return WarningRecord(
        id=doc_id,
        user_id=data.get('userId', ''),
        type=data.get('type', WARNING),
        reason=data.get('reason', ''),
        is_active=bool(data.get('isActive', False)),
        created_at=to_utc(data.get('createdAt')),
        admin_id=data.get('adminId', ''),
        admin_name=data.get('adminName', ''),
        details=data.get('details'),
        expires_at=to_utc(data.get('expiresAt')),
        deactivated_at=to_utc(data.get('deactivatedAt')),
        deactivated_by=data.get('deactivatedBy'),
    )


def to_response_dict(record: WarningRecord) -> Dict[str, Any]:
    return {
        'id': record.id,
        'userId': record.user_id,
        'type': record.type,
        'reason': record.reason,
        'details': record.details,
        'isActive': record.is_active,
        'createdAt': isoformat(record.created_at),
        'expiresAt': isoformat(record.expires_at),
        'adminId': record.admin_id,
        'adminName': record.admin_name,
    }

"""
Audit Log Mapper.
"""
from typing import Any, Dict
from backend.features.audit.domain.audit_entity import AuditLog
from backend.utils.time_utils import isoformat, to_utc


def to_firestore_dict(entry: AuditLog) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        'action': entry.action,
        'performedBy': entry.performed_by,
        'performedByName': entry.performed_by_name,
        'timestamp': entry.timestamp,
    }
    # Optional fields are left out rather than stored as nulls
    optional = {
        'targetUserId': entry.target_user_id,
        'targetUserName': entry.target_user_name,
        'reason': entry.reason,
        'details': entry.details,
    }
    data.update({key: value for key, value in optional.items() if value is not None})
    return data


def from_firestore_dict(data: Dict[str, Any], doc_id: str) -> AuditLog:
    return AuditLog(
        id=doc_id,
        action=data.get('action', ''),
        performed_by=data.get('performedBy', ''),
        performed_by_name=data.get('performedByName', ''),
        timestamp=to_utc(data.get('timestamp')),
        target_user_id=data.get('targetUserId'),
        target_user_name=data.get('targetUserName'),
        reason=data.get('reason'),
        details=data.get('details'),
    )


def to_response_dict(entry: AuditLog) -> Dict[str, Any]:
    return {
        'id': entry.id,
        'action': entry.action,
        'performedBy': entry.performed_by,
        'performedByName': entry.performed_by_name,
        'targetUserId': entry.target_user_id,
        'targetUserName': entry.target_user_name,
        'reason': entry.reason,
        'details': entry.details,
        'timestamp': isoformat(entry.timestamp),
    }

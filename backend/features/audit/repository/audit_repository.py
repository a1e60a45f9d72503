"""
Audit Log Repository.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter
from backend.common.base.base_repository import FirestoreRepository
from backend.features.audit.domain.audit_entity import AuditLog
from backend.features.audit.mapper.audit_mapper import from_firestore_dict, to_firestore_dict
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AuditRepository(FirestoreRepository[AuditLog]):
    """Append-only access to the ``audit_logs`` collection."""

    collection_name = 'audit_logs'

    def find_by_id(self, id: str) -> Optional[AuditLog]:
        doc = self._collection().document(id).get()
        if not doc.exists:
            return None
        return from_firestore_dict(doc.to_dict(), doc.id)

    def save(self, entity: AuditLog) -> AuditLog:
        doc_ref = self._collection().document()
        doc_ref.set(to_firestore_dict(entity))
        entity.id = doc_ref.id
        return entity

    def stage(self, batch: Any, entity: AuditLog) -> AuditLog:
        """Queue the append on a caller-owned write batch; committed by the caller."""
        doc_ref = self._collection().document()
        batch.set(doc_ref, to_firestore_dict(entity))
        entity.id = doc_ref.id
        return entity

    def find_all(self) -> List[AuditLog]:
        try:
            docs = self._collection().order_by('timestamp', direction=firestore.Query.DESCENDING).stream()
            return [from_firestore_dict(doc.to_dict(), doc.id) for doc in docs]
        except Exception as e:
            logger.error(f"Error fetching audit logs: {str(e)}")
            return []

    def find_by_target(self, target_user_id: str) -> List[AuditLog]:
        try:
            docs = self._collection().where(
                filter=FieldFilter('targetUserId', '==', target_user_id)
            ).stream()
            entries = [from_firestore_dict(doc.to_dict(), doc.id) for doc in docs]
        except Exception as e:
            logger.error(f"Error fetching audit logs for user {target_user_id}: {str(e)}")
            return []
        # Sorted in memory: equality filter + order_by would need a composite index
        entries.sort(key=lambda entry: entry.timestamp or _EPOCH, reverse=True)
        return entries

"""
Warning Repository.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from google.cloud.firestore_v1 import FieldFilter
from backend.common.base.base_repository import FirestoreRepository
from backend.features.moderation.domain.warning_entity import WarningRecord
from backend.features.moderation.mapper.warning_mapper import from_firestore_dict, to_firestore_dict
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class WarningRepository(FirestoreRepository[WarningRecord]):
    """Moderation records in the ``warnings`` collection. Records are never deleted."""

    collection_name = 'warnings'

    def find_by_id(self, id: str) -> Optional[WarningRecord]:
        doc = self._collection().document(id).get()
        if not doc.exists:
            return None
        return from_firestore_dict(doc.to_dict(), doc.id)

    def save(self, entity: WarningRecord) -> WarningRecord:
        doc_ref = self._collection().document(entity.id) if entity.id else self._collection().document()
        doc_ref.set(to_firestore_dict(entity))
        entity.id = doc_ref.id
        return entity

    def stage(self, batch: Any, entity: WarningRecord) -> WarningRecord:
        doc_ref = self._collection().document()
        batch.set(doc_ref, to_firestore_dict(entity))
        entity.id = doc_ref.id
        return entity

    def stage_update(self, batch: Any, warning_id: str, fields: Dict[str, Any]) -> None:
        batch.update(self._collection().document(warning_id), fields)

    def find_by_user(self, user_id: str) -> List[WarningRecord]:
        """All records for the user, newest first. Read failures yield an empty list."""
        try:
            docs = self._collection().where(filter=FieldFilter('userId', '==', user_id)).stream()
            records = [from_firestore_dict(doc.to_dict(), doc.id) for doc in docs]
        except Exception as e:
            logger.error(f"Error fetching warnings for user {user_id}: {str(e)}")
            return []
        records.sort(key=lambda record: record.created_at or _EPOCH, reverse=True)
        return records

    def find_active_by_user(self, user_id: str) -> List[WarningRecord]:
        """Records with isActive == True. Expiry is not evaluated here."""
        docs = (
            self._collection()
            .where(filter=FieldFilter('userId', '==', user_id))
            .where(filter=FieldFilter('isActive', '==', True))
            .stream()
        )
        records = [from_firestore_dict(doc.to_dict(), doc.id) for doc in docs]
        records.sort(key=lambda record: record.created_at or _EPOCH, reverse=True)
        return records

"""
Scheduled Upload Repository.
"""
from typing import Any, Dict, List, Optional
from google.cloud.firestore_v1 import FieldFilter
from backend.common.base.base_repository import FirestoreRepository
from backend.features.uploads.domain.scheduled_upload_entity import ScheduledUpload
from backend.features.uploads.mapper.scheduled_upload_mapper import from_firestore_dict, to_firestore_dict
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)


class ScheduledUploadRepository(FirestoreRepository[ScheduledUpload]):
    collection_name = 'scheduled_uploads'

    def _from_snapshot(self, doc) -> ScheduledUpload:
        return from_firestore_dict(doc.to_dict(), doc.id, update_time=getattr(doc, 'update_time', None))

    def find_by_id(self, id: str) -> Optional[ScheduledUpload]:
        doc = self._collection().document(id).get()
        if not doc.exists:
            return None
        return self._from_snapshot(doc)

    def save(self, entity: ScheduledUpload) -> ScheduledUpload:
        doc_ref = self._collection().document(entity.id) if entity.id else self._collection().document()
        doc_ref.set(to_firestore_dict(entity))
        entity.id = doc_ref.id
        return entity

    def find_by_user(self, user_id: str) -> List[ScheduledUpload]:
        try:
            docs = self._collection().where(filter=FieldFilter('userId', '==', user_id)).stream()
            return [self._from_snapshot(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error fetching scheduled uploads for user {user_id}: {str(e)}")
            return []

    def find_by_status(self, status: str) -> List[ScheduledUpload]:
        try:
            docs = self._collection().where(filter=FieldFilter('status', '==', status)).stream()
            return [self._from_snapshot(doc) for doc in docs]
        except Exception as e:
            logger.error(f"Error fetching scheduled uploads with status {status}: {str(e)}")
            return []

    def update_fields(self, upload_id: str, fields: Dict[str, Any], expected_update_time: Any = None) -> None:
        """Partial update. With ``expected_update_time`` the write only lands if the
        document is unchanged since it was read (FailedPrecondition otherwise)."""
        doc_ref = self._collection().document(upload_id)
        if expected_update_time is None:
            doc_ref.update(fields)
            return
        option = self._db().write_option(last_update_time=expected_update_time)
        doc_ref.update(fields, option=option)

    def delete(self, upload_id: str) -> None:
        self._collection().document(upload_id).delete()

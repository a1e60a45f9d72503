"""
User Repository (moderation fields of ``users`` documents).
"""
from typing import Any, Dict, Optional
from backend.common.base.base_repository import FirestoreRepository
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)


class UserRepository(FirestoreRepository[Dict[str, Any]]):
    collection_name = 'users'

    def find_by_id(self, id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection().document(id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data['id'] = doc.id
        return data

    def save(self, entity: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(entity)
        uid = data.pop('id')
        self._collection().document(uid).set(data, merge=True)
        return entity

    def stage_update_fields(self, batch: Any, uid: str, fields: Dict[str, Any]) -> None:
        # set(merge=True) so moderation still applies to users without a profile document
        batch.set(self._collection().document(uid), fields, merge=True)

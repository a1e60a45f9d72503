"""
Asset Repository (publish target of scheduled uploads).
"""
from typing import Any, Dict, Optional
from backend.common.base.base_repository import FirestoreRepository


class AssetRepository(FirestoreRepository[Dict[str, Any]]):
    collection_name = 'assets'

    def find_by_id(self, id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection().document(id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data['id'] = doc.id
        return data

    def save(self, entity: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(entity)
        asset_id = data.pop('id')
        self._collection().document(asset_id).set(data, merge=True)
        return entity

    def update_fields(self, asset_id: str, fields: Dict[str, Any]) -> None:
        self._collection().document(asset_id).update(fields)

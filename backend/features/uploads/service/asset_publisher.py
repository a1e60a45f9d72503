"""
Publishes a claimed scheduled upload onto its asset document.
"""
from typing import Any, Dict, Optional

from backend.common.base.base_service import BaseService, Clock
from backend.features.uploads.domain.scheduled_upload_entity import ScheduledUpload
from backend.features.uploads.repository.asset_repository import AssetRepository
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

ASSETS_PREFIX = 'assets'


class AssetPublisher(BaseService):
    def __init__(self, asset_repository: AssetRepository, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.asset_repository = asset_repository

    def publish(self, upload: ScheduledUpload) -> Dict[str, Any]:
        asset = self.asset_repository.find_by_id(upload.asset_id)
        if asset is None:
            raise LookupError(f"Asset {upload.asset_id} not found")

        # Same-name files are replaced in place, new ones appended
        files = {f.get('name'): f for f in asset.get('files') or [] if isinstance(f, dict)}
        for descriptor in upload.files:
            files[descriptor.name] = {
                'name': descriptor.name,
                'size': descriptor.size,
                'type': descriptor.content_type,
                'path': f"{ASSETS_PREFIX}/{upload.asset_id}/{descriptor.name}",
            }

        now = self.now()
        version = int(asset.get('version') or 0) + 1
        self.asset_repository.update_fields(upload.asset_id, {
            'files': list(files.values()),
            'changeNotes': upload.change_notes,
            'version': version,
            'updatedAt': now,
            'lastPublishedAt': now,
        })

        logger.info(
            "Asset published from scheduled upload",
            extra={'asset_id': upload.asset_id, 'upload_id': upload.id, 'version': version}
        )
        return {'assetId': upload.asset_id, 'version': version, 'fileCount': len(files)}

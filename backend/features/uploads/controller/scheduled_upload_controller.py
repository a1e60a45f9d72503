"""
Scheduled Upload Controller.
"""
from datetime import datetime, timezone
from typing import Optional

from flask import request
from pydantic import ValidationError

from backend.common.base.base_controller import BaseController
from backend.features.uploads.domain.scheduled_upload_entity import (
    ConcurrentUpdate,
    InvalidStatusTransition,
    ScheduledUploadNotFound,
)
from backend.features.uploads.mapper.scheduled_upload_mapper import to_response_dict
from backend.features.uploads.service.scheduled_upload_service import ScheduledUploadService
from backend.schemas.upload_schemas import ScheduleUploadRequest, UpdateStatusRequest
from backend.services.system.logger_service import get_logger, log_error
from backend.utils.time_utils import to_utc

logger = get_logger(__name__)


class ScheduledUploadController(BaseController):
    def __init__(self, upload_service: ScheduledUploadService):
        self.upload_service = upload_service

    @staticmethod
    def _resolve_schedule_time(payload: ScheduleUploadRequest) -> Optional[datetime]:
        if payload.scheduledFor is not None:
            return to_utc(payload.scheduledFor)
        if payload.scheduleDate and payload.scheduleTime:
            # Date and time pickers submit wall-clock values; they are read as UTC
            try:
                parsed = datetime.strptime(f"{payload.scheduleDate} {payload.scheduleTime}", "%Y-%m-%d %H:%M")
            except ValueError:
                raise ValueError("Invalid schedule date or time")
            return parsed.replace(tzinfo=timezone.utc)
        return None

    def schedule_upload(self):
        try:
            payload = ScheduleUploadRequest(**(request.get_json(silent=True) or {}))
        except ValidationError as e:
            return self.handle_validation_error(e, 'Invalid scheduled upload request')

        session = self.current_session()
        files = [f.model_dump() for f in payload.files]
        try:
            if payload.immediate:
                upload = self.upload_service.schedule_immediately(
                    session.user_id, payload.assetId, files, payload.changeNotes
                )
            else:
                upload = self.upload_service.schedule(
                    session.user_id, payload.assetId, files, payload.changeNotes,
                    self._resolve_schedule_time(payload),
                )
            return self.handle_response({
                'success': True,
                'upload': to_response_dict(upload, self.upload_service.now()),
            }, 201)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': 'schedule_upload', 'user_id': session.user_id})
            return self.handle_error('Failed to schedule upload', 500)

    def list_uploads(self):
        session = self.current_session()
        user_id = request.args.get('userId') or session.user_id
        if not session.can_act_for(user_id):
            return self.handle_error('Not allowed to view these uploads', 403)

        now = self.upload_service.now()
        uploads = [to_response_dict(u, now) for u in self.upload_service.list_for_user(user_id)]
        return self.handle_response({'success': True, 'uploads': uploads, 'count': len(uploads)})

    def list_pending(self):
        now = self.upload_service.now()
        uploads = [to_response_dict(u, now) for u in self.upload_service.list_pending()]
        return self.handle_response({'success': True, 'uploads': uploads, 'count': len(uploads)})

    def update_status(self, upload_id: str):
        try:
            payload = UpdateStatusRequest(**(request.get_json(silent=True) or {}))
        except ValidationError as e:
            return self.handle_validation_error(e, 'Status is required')

        return self._transition(
            'update_status', upload_id,
            lambda: self.upload_service.update_status(upload_id, payload.status, payload.errorMessage),
        )

    def cancel_upload(self, upload_id: str):
        denied = self._check_owner(upload_id)
        if denied is not None:
            return denied
        return self._transition('cancel_upload', upload_id, lambda: self.upload_service.cancel(upload_id))

    def delete_upload(self, upload_id: str):
        denied = self._check_owner(upload_id)
        if denied is not None:
            return denied
        try:
            self.upload_service.delete(upload_id)
            return self.handle_response({'success': True, 'deleted': upload_id})
        except ScheduledUploadNotFound as e:
            return self.handle_error(str(e), 404)
        except Exception as e:
            log_error(logger, e, {'operation': 'delete_upload', 'upload_id': upload_id})
            return self.handle_error('Failed to delete scheduled upload', 500)

    def _check_owner(self, upload_id: str):
        session = self.current_session()
        try:
            upload = self.upload_service.get(upload_id)
        except ScheduledUploadNotFound as e:
            return self.handle_error(str(e), 404)
        if not session.can_act_for(upload.user_id):
            return self.handle_error('Not allowed to modify this upload', 403)
        return None

    def _transition(self, operation: str, upload_id: str, action):
        try:
            upload = action()
            return self.handle_response({'success': True, 'upload': to_response_dict(upload)})
        except ScheduledUploadNotFound as e:
            return self.handle_error(str(e), 404)
        except InvalidStatusTransition as e:
            return self.handle_error(str(e), 409, currentStatus=e.current)
        except ConcurrentUpdate as e:
            return self.handle_error(str(e), 409)
        except ValueError as e:
            return self.handle_error(str(e), 400)
        except Exception as e:
            log_error(logger, e, {'operation': operation, 'upload_id': upload_id})
            return self.handle_error('Failed to update scheduled upload', 500)

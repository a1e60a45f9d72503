from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class FileDescriptorModel(BaseModel):
    name: str = Field(..., min_length=1)
    size: int = Field(default=0, ge=0)
    type: str = Field(default='application/octet-stream', description="Content type")


class ScheduleUploadRequest(BaseModel):
    assetId: str = Field(..., min_length=1)
    files: List[FileDescriptorModel] = Field(default_factory=list)
    changeNotes: str = ''
    scheduledFor: Optional[datetime] = Field(default=None, description="ISO format publish time")
    scheduleDate: Optional[str] = Field(default=None, description="YYYY-MM-DD, used with scheduleTime")
    scheduleTime: Optional[str] = Field(default=None, description="HH:MM, used with scheduleDate")
    immediate: bool = False

    @field_validator('scheduleDate', 'scheduleTime')
    def empty_string_to_none(cls, v):
        if v == '':
            return None
        return v


class UpdateStatusRequest(BaseModel):
    status: str
    errorMessage: Optional[str] = None

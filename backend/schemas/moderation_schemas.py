from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


def _strip_required(value: str) -> str:
    value = (value or '').strip()
    if not value:
        raise ValueError('must not be empty')
    return value


class BanUserRequest(BaseModel):
    reason: str = Field(..., description="Reason for banning the user")
    targetName: Optional[str] = Field(default=None, description="Display name of the banned user")

    @field_validator('reason')
    @classmethod
    def reason_required(cls, v):
        return _strip_required(v)


class UnbanUserRequest(BaseModel):
    targetName: Optional[str] = Field(default=None, description="Display name of the user")


class SuspendUserRequest(BaseModel):
    reason: str = Field(..., description="Reason for the suspension")
    expiresAt: datetime = Field(..., description="ISO format time the suspension ends")
    details: Optional[str] = Field(default=None, description="Violation details shown to the user")
    targetName: Optional[str] = None

    @field_validator('reason')
    @classmethod
    def reason_required(cls, v):
        return _strip_required(v)


class WarnUserRequest(BaseModel):
    reason: str = Field(..., description="Reason for the warning")
    details: Optional[str] = None
    targetName: Optional[str] = None

    @field_validator('reason')
    @classmethod
    def reason_required(cls, v):
        return _strip_required(v)


class ChangeRoleRequest(BaseModel):
    role: str = Field(..., min_length=1, description="New role for the user")
    targetName: Optional[str] = None


class AuditEntryRequest(BaseModel):
    action: str = Field(..., description="Audit action name")
    targetUserId: Optional[str] = None
    targetUserName: Optional[str] = None
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, field_validator

from consent_authz.schemas.enums import AccessStatus, AccessType, ResourceType
from consent_authz.utils.timeutils import as_utc


class AccessLogCreate(BaseModel):
    consent_id: UUID
    party_id: Optional[UUID] = None
    third_party_id: Optional[str] = None
    access_type: AccessType
    resource_type: ResourceType
    resource_id: Optional[str] = None
    status: AccessStatus
    error_message: Optional[str] = None

    # correlation and client details
    x_request_id: Optional[str] = None
    tpp_request_id: Optional[str] = None
    psu_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AccessLogEntry(AccessLogCreate):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return as_utc(v)

from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from consent_authz.schemas.enums import ConsentStatus, ConsentType
from consent_authz.utils.timeutils import as_utc


class ConsentCreate(BaseModel):
    party_id: UUID
    consent_type: ConsentType
    valid_from: Optional[datetime] = None
    valid_until: datetime
    access_frequency: Optional[int] = None
    access_scope: Optional[str] = None

    @field_validator("valid_from", "valid_until")
    @classmethod
    def utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class Consent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    party_id: UUID
    consent_type: ConsentType
    status: ConsentStatus
    valid_from: datetime
    valid_until: datetime
    access_frequency: Optional[int] = None
    access_scope: Optional[str] = None
    last_action_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("valid_from", "valid_until", "last_action_date", "created_at", "updated_at")
    @classmethod
    def utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def check_invariants(self) -> "Consent":
        if self.valid_from >= self.valid_until:
            raise ValueError("valid_from must be earlier than valid_until")
        if self.access_frequency is not None and self.access_frequency <= 0:
            raise ValueError("access_frequency must be positive when set")
        return self

    def is_within_window(self, now: datetime) -> bool:
        return self.valid_from <= now < self.valid_until

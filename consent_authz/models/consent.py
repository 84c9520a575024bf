import uuid
from sqlalchemy import Column, String, DateTime, Text, Integer, Uuid, Index
from consent_authz.db.base import Base

class ConsentRecord(Base):
    __tablename__ = "consents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    party_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    consent_type = Column(String(32), nullable=False)         # ACCOUNT_INFORMATION, ...
    status = Column(String(16), nullable=False, index=True)   # RECEIVED, VALID, ...
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False, index=True)

    access_frequency = Column(Integer, nullable=True)         # lifetime cap on SUCCESS accesses
    access_scope = Column(Text, nullable=True)                # free text, e.g. "account,balance"
    last_action_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

Index("idx_consents_party_status", ConsentRecord.party_id, ConsentRecord.status)

import uuid
from sqlalchemy import Column, String, DateTime, Text, Uuid, Index
from consent_authz.db.base import Base

class AccessLogRecord(Base):
    """One row per access attempt. Rows are never updated or deleted."""

    __tablename__ = "access_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    consent_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    party_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    third_party_id = Column(Text, nullable=True, index=True)

    access_type = Column(String(8), nullable=False)       # READ, WRITE, DELETE
    resource_type = Column(String(32), nullable=False)
    resource_id = Column(Text, nullable=True)
    status = Column(String(8), nullable=False)            # SUCCESS, FAILURE
    error_message = Column(Text, nullable=True)

    x_request_id = Column(Text, nullable=True)
    tpp_request_id = Column(Text, nullable=True)
    psu_id = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

# count_by_consent filters on both
Index("idx_access_logs_consent_status", AccessLogRecord.consent_id, AccessLogRecord.status)

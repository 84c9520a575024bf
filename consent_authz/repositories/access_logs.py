from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from consent_authz.models.access_log import AccessLogRecord

def append(db: Session, *, values: Dict[str, Any]) -> AccessLogRecord:
    obj = AccessLogRecord(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def get_by_id(db: Session, log_id: UUID) -> Optional[AccessLogRecord]:
    return db.get(AccessLogRecord, log_id)

def count_by_consent(db: Session, consent_id: UUID, status: str = "SUCCESS") -> int:
    stmt = (
        select(func.count())
        .select_from(AccessLogRecord)
        .where(AccessLogRecord.consent_id == consent_id)
        .where(AccessLogRecord.status == status)
    )
    return int(db.scalar(stmt) or 0)

def _ordered(stmt):
    return stmt.order_by(AccessLogRecord.timestamp, AccessLogRecord.id)

def list_by_party(db: Session, party_id: UUID) -> List[AccessLogRecord]:
    stmt = select(AccessLogRecord).where(AccessLogRecord.party_id == party_id)
    return list(db.scalars(_ordered(stmt)))

def list_by_consent(db: Session, consent_id: UUID) -> List[AccessLogRecord]:
    stmt = select(AccessLogRecord).where(AccessLogRecord.consent_id == consent_id)
    return list(db.scalars(_ordered(stmt)))

def list_by_provider(db: Session, third_party_id: str) -> List[AccessLogRecord]:
    stmt = select(AccessLogRecord).where(AccessLogRecord.third_party_id == third_party_id)
    return list(db.scalars(_ordered(stmt)))

def list_by_party_in_range(
    db: Session, party_id: UUID, from_: datetime, to: datetime
) -> List[AccessLogRecord]:
    stmt = (
        select(AccessLogRecord)
        .where(AccessLogRecord.party_id == party_id)
        .where(AccessLogRecord.timestamp >= from_)
        .where(AccessLogRecord.timestamp <= to)
    )
    return list(db.scalars(_ordered(stmt)))

from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from consent_authz.models.consent import ConsentRecord

def get_by_id(db: Session, consent_id: UUID) -> Optional[ConsentRecord]:
    return db.get(ConsentRecord, consent_id)

def list_by_party(db: Session, party_id: UUID) -> List[ConsentRecord]:
    stmt = (
        select(ConsentRecord)
        .where(ConsentRecord.party_id == party_id)
        .order_by(ConsentRecord.created_at, ConsentRecord.id)
    )
    return list(db.scalars(stmt))

def upsert(db: Session, *, values: Dict[str, Any]) -> ConsentRecord:
    """
    Full replace keyed by id: every column not present in ``values`` is
    written as NULL, so callers always pass the complete record.
    """
    row = {c.name: values.get(c.name) for c in ConsentRecord.__table__.columns}
    obj = db.merge(ConsentRecord(**row))
    db.commit()
    db.refresh(obj)
    return obj

def expire_due(db: Session, now: datetime) -> int:
    """
    Mark due consents as EXPIRED. Returns affected row count.
    Only VALID consents can expire; RECEIVED ones are rejected or revoked instead.
    """
    stmt = (
        update(ConsentRecord)
        .where(ConsentRecord.status == "VALID")
        .where(ConsentRecord.valid_until <= now)
        .values(status="EXPIRED", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    res = db.execute(stmt)
    db.commit()
    return int(res.rowcount or 0)

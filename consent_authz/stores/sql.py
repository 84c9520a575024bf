from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar
from uuid import UUID

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from consent_authz.core.errors import StoreUnavailableError
from consent_authz.repositories import access_logs as log_repo
from consent_authz.repositories import consents as consent_repo
from consent_authz.schemas.access_log import AccessLogCreate, AccessLogEntry
from consent_authz.schemas.consent import Consent
from consent_authz.utils.timeutils import Clock, as_utc, utcnow

log = logging.getLogger(__name__)

T = TypeVar("T")


def _column_values(model: Any) -> Dict[str, Any]:
    values = {}
    for key, value in dict(model).items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = as_utc(value)
        values[key] = value
    return values


class _SqlBase:
    """Runs blocking repository calls on a worker thread, one session per call."""

    name = "store"

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await to_thread.run_sync(self._in_session, fn, *args)
        except SQLAlchemyError as exc:
            log.error("%s_unavailable: %s", self.name, exc.__class__.__name__)
            raise StoreUnavailableError(f"{self.name} unavailable") from exc

    def _in_session(self, fn: Callable[..., T], *args: Any) -> T:
        db: Session = self._session_factory()
        try:
            return fn(db, *args)
        finally:
            db.close()


class SqlConsentStore(_SqlBase):
    name = "consent_store"

    async def get(self, consent_id: UUID) -> Optional[Consent]:
        return await self._run(self._get, consent_id)

    async def list_by_party(self, party_id: UUID) -> List[Consent]:
        return await self._run(self._list_by_party, party_id)

    async def upsert(self, consent: Consent) -> Consent:
        return await self._run(self._upsert, _column_values(consent))

    @staticmethod
    def _get(db: Session, consent_id: UUID) -> Optional[Consent]:
        obj = consent_repo.get_by_id(db, consent_id)
        return Consent.model_validate(obj) if obj else None

    @staticmethod
    def _list_by_party(db: Session, party_id: UUID) -> List[Consent]:
        return [Consent.model_validate(o) for o in consent_repo.list_by_party(db, party_id)]

    @staticmethod
    def _upsert(db: Session, values: Dict[str, Any]) -> Consent:
        return Consent.model_validate(consent_repo.upsert(db, values=values))


class SqlAccessLedger(_SqlBase):
    name = "access_ledger"

    def __init__(self, session_factory: sessionmaker, clock: Clock = utcnow) -> None:
        super().__init__(session_factory)
        self._clock = clock

    async def append(self, entry: AccessLogCreate) -> AccessLogEntry:
        values = _column_values(entry)
        values["id"] = uuid.uuid4()
        values["timestamp"] = as_utc(self._clock())
        return await self._run(self._append, values)

    async def get(self, log_id: UUID) -> Optional[AccessLogEntry]:
        return await self._run(self._get, log_id)

    async def count_by_consent(self, consent_id: UUID) -> int:
        return await self._run(log_repo.count_by_consent, consent_id)

    async def list_by_party(self, party_id: UUID) -> List[AccessLogEntry]:
        return await self._run(self._listing, log_repo.list_by_party, party_id)

    async def list_by_consent(self, consent_id: UUID) -> List[AccessLogEntry]:
        return await self._run(self._listing, log_repo.list_by_consent, consent_id)

    async def list_by_provider(self, third_party_id: str) -> List[AccessLogEntry]:
        return await self._run(self._listing, log_repo.list_by_provider, third_party_id)

    async def list_by_party_in_range(
        self, party_id: UUID, from_: datetime, to: datetime
    ) -> List[AccessLogEntry]:
        return await self._run(
            self._listing, log_repo.list_by_party_in_range, party_id, as_utc(from_), as_utc(to)
        )

    @staticmethod
    def _append(db: Session, values: Dict[str, Any]) -> AccessLogEntry:
        return AccessLogEntry.model_validate(log_repo.append(db, values=values))

    @staticmethod
    def _get(db: Session, log_id: UUID) -> Optional[AccessLogEntry]:
        obj = log_repo.get_by_id(db, log_id)
        return AccessLogEntry.model_validate(obj) if obj else None

    @staticmethod
    def _listing(db: Session, query: Callable[..., list], *args: Any) -> List[AccessLogEntry]:
        return [AccessLogEntry.model_validate(o) for o in query(db, *args)]

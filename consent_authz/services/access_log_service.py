from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from consent_authz.core.correlation import get_correlation_id
from consent_authz.core.errors import AccessLogNotFoundError
from consent_authz.core.metrics import inc_access_log_entries
from consent_authz.schemas.access_log import AccessLogCreate, AccessLogEntry
from consent_authz.schemas.enums import (
    AccessStatus,
    AccessType,
    ResourceType,
    parse_access_status,
    parse_access_type,
    parse_resource_type,
)
from consent_authz.stores.base import AccessLedger

log = logging.getLogger(__name__)


class AccessLogService:
    """
    Records access attempts and answers audit queries.

    This is the collaborator that writes to the ledger; the authorization
    engine only reads counts from it.
    """

    def __init__(self, ledger: AccessLedger) -> None:
        self._ledger = ledger

    async def log_access(
        self,
        *,
        consent_id: UUID,
        access_type: Union[AccessType, str],
        resource_type: Union[ResourceType, str],
        status: Union[AccessStatus, str],
        party_id: Optional[UUID] = None,
        third_party_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        error_message: Optional[str] = None,
        x_request_id: Optional[str] = None,
        tpp_request_id: Optional[str] = None,
        psu_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AccessLogEntry:
        log.debug(
            "Logging access", extra={"consent_id": consent_id, "party_id": party_id}
        )
        entry = AccessLogCreate(
            consent_id=consent_id,
            party_id=party_id,
            third_party_id=third_party_id,
            access_type=parse_access_type(access_type),
            resource_type=parse_resource_type(resource_type),
            resource_id=resource_id,
            status=parse_access_status(status),
            error_message=error_message,
            x_request_id=x_request_id or get_correlation_id(),
            tpp_request_id=tpp_request_id,
            psu_id=psu_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        saved = await self._ledger.append(entry)
        inc_access_log_entries(saved.status.value)
        log.info("Access logged with ID: %s", saved.id, extra={"consent_id": consent_id})
        return saved

    async def get_access_log(self, log_id: UUID) -> AccessLogEntry:
        entry = await self._ledger.get(log_id)
        if entry is None:
            raise AccessLogNotFoundError(log_id)
        return entry

    async def get_access_logs_for_customer(self, party_id: UUID) -> List[AccessLogEntry]:
        return await self._ledger.list_by_party(party_id)

    async def get_access_logs_for_customer_in_date_range(
        self, party_id: UUID, from_: datetime, to: datetime
    ) -> List[AccessLogEntry]:
        return await self._ledger.list_by_party_in_range(party_id, from_, to)

    async def get_access_logs_for_consent(self, consent_id: UUID) -> List[AccessLogEntry]:
        return await self._ledger.list_by_consent(consent_id)

    async def get_access_logs_for_third_party(self, third_party_id: str) -> List[AccessLogEntry]:
        return await self._ledger.list_by_provider(third_party_id)

    async def count_access_logs_for_consent(self, consent_id: UUID) -> int:
        count = await self._ledger.count_by_consent(consent_id)
        log.debug("Counted %d access logs", count, extra={"consent_id": consent_id})
        return count

    async def get_access_logs(
        self,
        *,
        party_id: Optional[UUID] = None,
        consent_id: Optional[UUID] = None,
        third_party_id: Optional[str] = None,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[AccessLogEntry]:
        # First matching filter wins: party+range, party, consent, provider
        if party_id is not None and from_ is not None and to is not None:
            return await self.get_access_logs_for_customer_in_date_range(party_id, from_, to)
        if party_id is not None:
            return await self.get_access_logs_for_customer(party_id)
        if consent_id is not None:
            return await self.get_access_logs_for_consent(consent_id)
        if third_party_id is not None:
            return await self.get_access_logs_for_third_party(third_party_id)
        return []

"""Boundary protocols for the two shared resources the engine depends on.

Both are injected; nothing in the package reaches for a module-level store.
Implementations raise :class:`~consent_authz.core.errors.InfrastructureError`
(or a subclass) when the backing service cannot answer.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable
from uuid import UUID

from consent_authz.schemas.access_log import AccessLogCreate, AccessLogEntry
from consent_authz.schemas.consent import Consent


@runtime_checkable
class ConsentStore(Protocol):
    """Durable consent records keyed by id."""

    async def get(self, consent_id: UUID) -> Optional[Consent]:
        """Point read. Returns None if not found."""
        ...

    async def list_by_party(self, party_id: UUID) -> List[Consent]:
        """All consents owned by a customer, oldest first."""
        ...

    async def upsert(self, consent: Consent) -> Consent:
        """Full replace of the stored record; unset fields are cleared."""
        ...


@runtime_checkable
class AccessLedger(Protocol):
    """Append-only audit trail of access attempts."""

    async def append(self, entry: AccessLogCreate) -> AccessLogEntry:
        """Write one entry, stamping its id and timestamp."""
        ...

    async def get(self, log_id: UUID) -> Optional[AccessLogEntry]:
        """Point read. Returns None if not found."""
        ...

    async def count_by_consent(self, consent_id: UUID) -> int:
        """Number of SUCCESS entries recorded for the consent."""
        ...

    async def list_by_party(self, party_id: UUID) -> List[AccessLogEntry]:
        ...

    async def list_by_consent(self, consent_id: UUID) -> List[AccessLogEntry]:
        ...

    async def list_by_provider(self, third_party_id: str) -> List[AccessLogEntry]:
        ...

    async def list_by_party_in_range(
        self, party_id: UUID, from_: datetime, to: datetime
    ) -> List[AccessLogEntry]:
        """Entries for a customer with from_ <= timestamp <= to."""
        ...

# consent_authz/services/consent_service.py
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Union
from uuid import UUID, uuid4

from pydantic import ValidationError

from consent_authz.core.errors import (
    ConsentNotFoundError,
    ConsentValidationError,
    InvalidTransitionError,
)
from consent_authz.core.metrics import (
    inc_consents_created,
    inc_consents_revoked,
    inc_consents_status_poll,
)
from consent_authz.schemas.consent import Consent, ConsentCreate
from consent_authz.schemas.enums import ConsentStatus, parse_consent_status
from consent_authz.stores.base import ConsentStore
from consent_authz.utils.timeutils import Clock, utcnow

log = logging.getLogger(__name__)

# RECEIVED -> VALID happens after customer authentication elsewhere; a pending
# consent ends through REJECTED. REJECTED, EXPIRED and REVOKED are terminal.
ALLOWED_TRANSITIONS: Dict[ConsentStatus, FrozenSet[ConsentStatus]] = {
    ConsentStatus.RECEIVED: frozenset({ConsentStatus.VALID, ConsentStatus.REJECTED}),
    ConsentStatus.VALID: frozenset({ConsentStatus.EXPIRED, ConsentStatus.REVOKED}),
    ConsentStatus.REJECTED: frozenset(),
    ConsentStatus.EXPIRED: frozenset(),
    ConsentStatus.REVOKED: frozenset(),
}


def is_transition_allowed(current: ConsentStatus, new: ConsentStatus) -> bool:
    # same-status updates are idempotent re-stamps
    return current == new or new in ALLOWED_TRANSITIONS.get(current, frozenset())


class ConsentLifecycleManager:
    """Creates, reads and moves consents through their status lifecycle."""

    def __init__(
        self,
        store: ConsentStore,
        clock: Clock = utcnow,
        enforce_transitions: bool = True,
    ) -> None:
        self._store = store
        self._clock = clock
        self._enforce_transitions = enforce_transitions

    async def create(self, request: ConsentCreate) -> Consent:
        """
        Create a consent in RECEIVED status.

        Raises ConsentValidationError (and persists nothing) when the window is
        not in the future or the frequency limit is not positive.
        """
        log.debug("Creating consent for party_id=%s", request.party_id)
        now = self._clock()

        if request.valid_until <= now:
            raise ConsentValidationError("valid_until must be in the future")
        valid_from = request.valid_from or now
        if valid_from >= request.valid_until:
            raise ConsentValidationError("valid_from must be earlier than valid_until")
        if request.access_frequency is not None and request.access_frequency <= 0:
            raise ConsentValidationError("access_frequency must be positive when set")

        try:
            consent = Consent(
                id=uuid4(),
                party_id=request.party_id,
                consent_type=request.consent_type,
                status=ConsentStatus.RECEIVED,
                valid_from=valid_from,
                valid_until=request.valid_until,
                access_frequency=request.access_frequency,
                access_scope=request.access_scope,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as exc:
            raise ConsentValidationError(str(exc)) from exc

        saved = await self._store.upsert(consent)
        inc_consents_created()
        log.info("Consent created", extra={"consent_id": saved.id, "party_id": saved.party_id})
        return saved

    async def get_consent(self, consent_id: UUID) -> Consent:
        consent = await self._store.get(consent_id)
        if consent is None:
            log.debug("Consent not found", extra={"consent_id": consent_id})
            raise ConsentNotFoundError(consent_id)
        return consent

    async def get_consents_for_customer(self, party_id: UUID) -> List[Consent]:
        consents = await self._store.list_by_party(party_id)
        log.debug("Retrieved %d consents", len(consents), extra={"party_id": party_id})
        return consents

    async def get_consent_status(self, consent_id: UUID) -> ConsentStatus:
        # a direct lookup, so absence is an error rather than a default
        inc_consents_status_poll()
        return (await self.get_consent(consent_id)).status

    async def update_status(
        self, consent_id: UUID, new_status: Union[ConsentStatus, str]
    ) -> Consent:
        status = parse_consent_status(new_status)
        consent = await self.get_consent(consent_id)
        return await self._transition(consent, status)

    async def revoke(self, consent_id: UUID) -> Consent:
        consent = await self.get_consent(consent_id)
        already = consent.status == ConsentStatus.REVOKED
        updated = await self._transition(consent, ConsentStatus.REVOKED)
        if not already:
            # Count a successful revoke exactly once
            inc_consents_revoked()
        return updated

    async def _transition(self, consent: Consent, status: ConsentStatus) -> Consent:
        consent_id = consent.id
        if self._enforce_transitions and not is_transition_allowed(consent.status, status):
            log.warning(
                "Rejected status change %s -> %s", consent.status.value, status.value,
                extra={"consent_id": consent_id},
            )
            raise InvalidTransitionError(consent_id, consent.status, status)

        updated = await self._store.upsert(
            consent.model_copy(update={"status": status, "updated_at": self._clock()})
        )
        log.info(
            "Updated consent status to %s", status.value, extra={"consent_id": consent_id}
        )
        return updated

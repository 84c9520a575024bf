# consent_authz/services/authorization.py
"""
Consent authorization decisions.

Two predicates live here and are kept apart on purpose, because call sites
depend on their different strictness:

* ``authorize``: the strict check used where customer and provider context
  matter (status, window, ownership, scope table, usage frequency). On
  success it stamps ``last_action_date``.
* ``validate_consent``: the loose gate used by the data-access services
  right before calling a backend port (status, window, free-text scope).
  It has no side effects.

Denials are normal ``False`` results. Store and ledger failures propagate as
``InfrastructureError`` so callers can tell "denied" from "could not decide".
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from consent_authz.core.errors import InfrastructureError, UnknownValueError
from consent_authz.core.metrics import observe_authorization
from consent_authz.schemas.consent import Consent
from consent_authz.schemas.enums import (
    AccessType,
    ConsentStatus,
    ResourceType,
    parse_resource_type,
)
from consent_authz.services.scope import is_resource_type_allowed
from consent_authz.stores.base import AccessLedger, ConsentStore
from consent_authz.utils.timeutils import Clock, utcnow

log = logging.getLogger(__name__)

# Denial reasons, also used as metric outcomes
NOT_FOUND = "not_found"
BAD_STATUS = "status"
NOT_YET_VALID = "not_yet_valid"
EXPIRED = "expired"
PARTY_MISMATCH = "party_mismatch"
SCOPE = "scope"
FREQUENCY_EXCEEDED = "frequency_exceeded"

ALLOWED = "allowed"


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str
    consent: Optional[Consent] = None

    def __bool__(self) -> bool:
        return self.allowed


class ConsentAuthorizationEngine:
    def __init__(
        self,
        store: ConsentStore,
        ledger: AccessLedger,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._clock = clock

    async def authorize(
        self,
        consent_id: UUID,
        resource_type: Union[ResourceType, str],
        requesting_party_id: Optional[UUID] = None,
        third_party_id: Optional[str] = None,
    ) -> bool:
        decision = await self.evaluate(consent_id, resource_type, requesting_party_id, third_party_id)
        return decision.allowed

    async def evaluate(
        self,
        consent_id: UUID,
        resource_type: Union[ResourceType, str],
        requesting_party_id: Optional[UUID] = None,
        third_party_id: Optional[str] = None,
    ) -> AuthorizationDecision:
        """Strict check. Same procedure as ``authorize`` but keeps the reason."""
        log.debug(
            "authorize consent_id=%s resource_type=%s party_id=%s third_party_id=%s",
            consent_id, resource_type, requesting_party_id, third_party_id,
        )
        start = time.perf_counter()
        try:
            decision = await self._evaluate(consent_id, resource_type, requesting_party_id)
        except InfrastructureError:
            observe_authorization("strict", "error", time.perf_counter() - start)
            log.exception("authorize_failed consent_id=%s", consent_id)
            raise
        observe_authorization("strict", decision.reason, time.perf_counter() - start)

        if not decision.allowed:
            log.warning(
                "consent_denied",
                extra={
                    "consent_id": consent_id,
                    "reason": decision.reason,
                    "resource_type": getattr(resource_type, "value", resource_type),
                    "party_id": requesting_party_id,
                    "third_party_id": third_party_id,
                },
            )
        return decision

    async def _evaluate(
        self,
        consent_id: UUID,
        resource_type: Union[ResourceType, str],
        requesting_party_id: Optional[UUID],
    ) -> AuthorizationDecision:
        now = self._clock()

        consent = await self._store.get(consent_id)
        if consent is None:
            return AuthorizationDecision(False, NOT_FOUND)

        if consent.status != ConsentStatus.VALID:
            return AuthorizationDecision(False, BAD_STATUS, consent)

        if now < consent.valid_from:
            return AuthorizationDecision(False, NOT_YET_VALID, consent)
        if now >= consent.valid_until:
            return AuthorizationDecision(False, EXPIRED, consent)

        if requesting_party_id is not None and requesting_party_id != consent.party_id:
            return AuthorizationDecision(False, PARTY_MISMATCH, consent)

        try:
            resource = parse_resource_type(resource_type)
        except UnknownValueError:
            resource = None
        if not is_resource_type_allowed(consent.consent_type, resource):
            return AuthorizationDecision(False, SCOPE, consent)

        if consent.access_frequency is not None and consent.access_frequency > 0:
            count = await self._ledger.count_by_consent(consent.id)
            if count >= consent.access_frequency:
                log.info(
                    "consent_frequency_exhausted %d/%d",
                    count, consent.access_frequency,
                    extra={"consent_id": consent.id, "count": count},
                )
                return AuthorizationDecision(False, FREQUENCY_EXCEEDED, consent)

        # Last write wins if two checks on the same consent race; see locks.py
        updated = await self._store.upsert(consent.model_copy(update={"last_action_date": now}))
        return AuthorizationDecision(True, ALLOWED, updated)

    async def validate_consent(
        self,
        consent_id: UUID,
        resource_type: Union[ResourceType, str],
        access_type: Union[AccessType, str],
    ) -> bool:
        """Loose check: status, window and a substring match on the free-text scope."""
        log.debug(
            "validate consent_id=%s resource_type=%s access_type=%s",
            consent_id, resource_type, access_type,
        )
        start = time.perf_counter()
        try:
            consent = await self._store.get(consent_id)
        except InfrastructureError:
            observe_authorization("loose", "error", time.perf_counter() - start)
            log.exception("validate_failed consent_id=%s", consent_id)
            raise

        now = self._clock()
        wanted = str(getattr(resource_type, "value", resource_type)).lower()
        if consent is None:
            outcome = NOT_FOUND
        elif consent.status != ConsentStatus.VALID:
            outcome = BAD_STATUS
        elif not consent.is_within_window(now):
            outcome = EXPIRED if now >= consent.valid_until else NOT_YET_VALID
        elif not consent.access_scope or wanted not in consent.access_scope:
            outcome = SCOPE
        else:
            outcome = ALLOWED

        observe_authorization("loose", outcome, time.perf_counter() - start)
        log.debug("validation result consent_id=%s outcome=%s", consent_id, outcome)
        return outcome == ALLOWED

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union
from uuid import UUID

from consent_authz.core.errors import ConsentInvalidError
from consent_authz.locks import ConsentLocks, NullConsentLocks
from consent_authz.schemas.enums import (
    AccessStatus,
    AccessType,
    ResourceType,
    parse_access_type,
    parse_resource_type,
)
from consent_authz.services.access_log_service import AccessLogService
from consent_authz.services.authorization import AuthorizationDecision, ConsentAuthorizationEngine

log = logging.getLogger(__name__)


class ConsentGuard:
    """
    Strict consent gate for one access attempt, plus its audit entry.

    Usage::

        async with guard.access(consent_id, ResourceType.ACCOUNT, AccessType.READ,
                                party_id=psu, third_party_id=tpp) as decision:
            ...  # call the backend

    Unknown resource or access types raise UnknownValueError before any
    check runs; no entry is written for input that names nothing.
    A denial writes a FAILURE entry and raises ConsentInvalidError. A block
    that raises writes FAILURE with the error text; a clean exit writes
    SUCCESS. Infrastructure errors from the engine propagate with no entry.
    The whole sequence runs under the consent's lock, so with a real lock
    backend the frequency limit cannot be overrun by concurrent requests.
    """

    def __init__(
        self,
        engine: ConsentAuthorizationEngine,
        access_logs: AccessLogService,
        locks: Optional[ConsentLocks] = None,
    ) -> None:
        self._engine = engine
        self._access_logs = access_logs
        self._locks = locks or NullConsentLocks()

    @asynccontextmanager
    async def access(
        self,
        consent_id: UUID,
        resource_type: Union[ResourceType, str],
        access_type: Union[AccessType, str],
        *,
        party_id: Optional[UUID] = None,
        third_party_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        x_request_id: Optional[str] = None,
        tpp_request_id: Optional[str] = None,
        psu_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AsyncIterator[AuthorizationDecision]:
        resource_type = parse_resource_type(resource_type)
        access_type = parse_access_type(access_type)

        async def record(status: AccessStatus, error_message: Optional[str] = None) -> None:
            await self._access_logs.log_access(
                consent_id=consent_id,
                party_id=party_id,
                third_party_id=third_party_id,
                access_type=access_type,
                resource_type=resource_type,
                resource_id=resource_id,
                status=status,
                error_message=error_message,
                x_request_id=x_request_id,
                tpp_request_id=tpp_request_id,
                psu_id=psu_id,
                ip_address=ip_address,
                user_agent=user_agent,
            )

        async with self._locks.hold(consent_id):
            decision = await self._engine.evaluate(
                consent_id, resource_type, party_id, third_party_id
            )
            if not decision.allowed:
                await record(AccessStatus.FAILURE, f"consent denied: {decision.reason}")
                raise ConsentInvalidError(
                    "The provided consent is invalid, expired, or does not grant "
                    "access to the requested resource",
                    reason=decision.reason,
                )

            try:
                yield decision
            except Exception as exc:
                await record(AccessStatus.FAILURE, str(exc) or exc.__class__.__name__)
                raise
            await record(AccessStatus.SUCCESS)

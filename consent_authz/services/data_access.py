"""Consent-gated data-access services.

Each operation runs the loose consent check with its resource and access
type, then dispatches to the backend port. A denial surfaces as
ConsentInvalidError before the port is touched. Audit entries are written
by ConsentGuard at the edge, not here.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from consent_authz.core.errors import BackendOperationError, ConsentInvalidError
from consent_authz.ports import (
    AccountPort,
    CardPort,
    FundsConfirmationPort,
    PaymentPort,
    TransactionPort,
)
from consent_authz.schemas.enums import AccessType, ResourceType
from consent_authz.services.authorization import ConsentAuthorizationEngine

log = logging.getLogger(__name__)


class _ConsentGatedService:
    def __init__(self, engine: ConsentAuthorizationEngine) -> None:
        self._engine = engine

    async def _require_consent(
        self, consent_id: UUID, resource_type: ResourceType, access_type: AccessType
    ) -> None:
        if not await self._engine.validate_consent(consent_id, resource_type, access_type):
            raise ConsentInvalidError()


class AccountInformationService(_ConsentGatedService):
    def __init__(
        self,
        engine: ConsentAuthorizationEngine,
        accounts: AccountPort,
        transactions: TransactionPort,
    ) -> None:
        super().__init__(engine)
        self._accounts = accounts
        self._transactions = transactions

    async def get_accounts(self, consent_id: UUID, party_id: UUID) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.ACCOUNT, AccessType.READ)
        return await self._accounts.get_accounts_by_party_id(party_id)

    async def get_account(self, consent_id: UUID, account_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.ACCOUNT, AccessType.READ)
        return await self._accounts.get_account_by_id(account_id)

    async def get_balances(self, consent_id: UUID, account_id: UUID) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.BALANCE, AccessType.READ)
        return await self._accounts.get_balances_by_account_id(account_id)

    async def get_transactions(
        self,
        consent_id: UUID,
        account_id: UUID,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.TRANSACTION, AccessType.READ)
        return await self._transactions.get_transactions_by_account_id(account_id, from_date, to_date)

    async def get_transaction(self, consent_id: UUID, account_id: UUID, transaction_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.TRANSACTION, AccessType.READ)
        return await self._transactions.get_transaction_by_id(transaction_id)


class CardAccountService(_ConsentGatedService):
    def __init__(self, engine: ConsentAuthorizationEngine, cards: CardPort) -> None:
        super().__init__(engine)
        self._cards = cards

    async def get_card_accounts(self, consent_id: UUID, party_id: UUID) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.CARD, AccessType.READ)
        return await self._cards.get_card_accounts_by_party_id(party_id)

    async def get_card_account(self, consent_id: UUID, card_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.CARD, AccessType.READ)
        return await self._cards.get_card_account_by_id(card_id)

    async def get_card_balances(self, consent_id: UUID, card_id: UUID) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.CARD_BALANCE, AccessType.READ)
        return await self._cards.get_balances_by_card_id(card_id)

    async def get_card_transactions(
        self,
        consent_id: UUID,
        card_id: UUID,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Any]:
        await self._require_consent(consent_id, ResourceType.CARD_TRANSACTION, AccessType.READ)
        return await self._cards.get_transactions_by_card_id(card_id, from_date, to_date)

    async def get_card_transaction(self, consent_id: UUID, card_id: UUID, transaction_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.CARD_TRANSACTION, AccessType.READ)
        return await self._cards.get_card_transaction(card_id, transaction_id)


class PaymentInitiationService(_ConsentGatedService):
    def __init__(self, engine: ConsentAuthorizationEngine, payments: PaymentPort) -> None:
        super().__init__(engine)
        self._payments = payments

    async def initiate_payment(self, consent_id: UUID, request: Any) -> Any:
        await self._require_consent(consent_id, ResourceType.PAYMENT, AccessType.WRITE)
        payment = await self._payments.initiate_payment(request)
        log.info("Payment initiated", extra={"consent_id": consent_id})
        return payment

    async def get_payment_status(self, consent_id: UUID, payment_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.PAYMENT, AccessType.READ)
        return await self._payments.get_payment_status(payment_id)

    async def get_payment(self, consent_id: UUID, payment_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.PAYMENT, AccessType.READ)
        return await self._payments.get_payment(payment_id)

    async def cancel_payment(self, consent_id: UUID, payment_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.PAYMENT, AccessType.WRITE)
        if not await self._payments.cancel_payment(payment_id):
            log.warning("Failed to cancel payment %s", payment_id, extra={"consent_id": consent_id})
            raise BackendOperationError("Failed to cancel payment")
        log.info("Payment %s cancelled", payment_id, extra={"consent_id": consent_id})
        return await self._payments.get_payment(payment_id)

    async def authorize_payment(self, consent_id: UUID, payment_id: UUID, authorization_code: str) -> Any:
        await self._require_consent(consent_id, ResourceType.PAYMENT, AccessType.WRITE)
        return await self._payments.authorize_payment(payment_id, authorization_code)


class FundsConfirmationService(_ConsentGatedService):
    def __init__(self, engine: ConsentAuthorizationEngine, funds: FundsConfirmationPort) -> None:
        super().__init__(engine)
        self._funds = funds

    async def confirm_funds(self, consent_id: UUID, request: Any) -> Any:
        await self._require_consent(consent_id, ResourceType.FUNDS_CONFIRMATION, AccessType.READ)
        return await self._funds.confirm_funds(request)

    async def get_funds_confirmation(self, consent_id: UUID, confirmation_id: UUID) -> Any:
        await self._require_consent(consent_id, ResourceType.FUNDS_CONFIRMATION, AccessType.READ)
        return await self._funds.get_funds_confirmation(confirmation_id)

"""Backend ports the data-access services dispatch to.

The banking core lives elsewhere; these protocols only pin down the calls
made once a consent check has passed. Payloads are opaque to this package.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Optional, Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class AccountPort(Protocol):
    async def get_accounts_by_party_id(self, party_id: UUID) -> List[Any]:
        ...

    async def get_account_by_id(self, account_id: UUID) -> Any:
        ...

    async def get_balances_by_account_id(self, account_id: UUID) -> List[Any]:
        ...


@runtime_checkable
class TransactionPort(Protocol):
    async def get_transactions_by_account_id(
        self, account_id: UUID, from_date: Optional[date], to_date: Optional[date]
    ) -> List[Any]:
        ...

    async def get_transaction_by_id(self, transaction_id: UUID) -> Any:
        ...


@runtime_checkable
class CardPort(Protocol):
    async def get_card_accounts_by_party_id(self, party_id: UUID) -> List[Any]:
        ...

    async def get_card_account_by_id(self, card_id: UUID) -> Any:
        ...

    async def get_balances_by_card_id(self, card_id: UUID) -> List[Any]:
        ...

    async def get_transactions_by_card_id(
        self, card_id: UUID, from_date: Optional[date], to_date: Optional[date]
    ) -> List[Any]:
        ...

    async def get_card_transaction(self, card_id: UUID, transaction_id: UUID) -> Any:
        ...


@runtime_checkable
class PaymentPort(Protocol):
    async def initiate_payment(self, request: Any) -> Any:
        ...

    async def get_payment_status(self, payment_id: UUID) -> Any:
        ...

    async def get_payment(self, payment_id: UUID) -> Any:
        ...

    async def cancel_payment(self, payment_id: UUID) -> bool:
        ...

    async def authorize_payment(self, payment_id: UUID, authorization_code: str) -> Any:
        ...


@runtime_checkable
class FundsConfirmationPort(Protocol):
    async def confirm_funds(self, request: Any) -> Any:
        ...

    async def get_funds_confirmation(self, confirmation_id: UUID) -> Any:
        ...

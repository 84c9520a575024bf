from __future__ import annotations
from enum import Enum
from typing import Type, TypeVar, Union

from consent_authz.core.errors import UnknownStatusError, UnknownValueError


class ConsentType(str, Enum):
    ACCOUNT_INFORMATION = "ACCOUNT_INFORMATION"
    PAYMENT_INITIATION = "PAYMENT_INITIATION"
    FUNDS_CONFIRMATION = "FUNDS_CONFIRMATION"
    CARD_INFORMATION = "CARD_INFORMATION"


class ConsentStatus(str, Enum):
    RECEIVED = "RECEIVED"
    VALID = "VALID"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class ResourceType(str, Enum):
    ACCOUNT = "ACCOUNT"
    PAYMENT = "PAYMENT"
    CONSENT = "CONSENT"
    BALANCE = "BALANCE"
    TRANSACTION = "TRANSACTION"
    FUNDS_CONFIRMATION = "FUNDS_CONFIRMATION"
    CARD = "CARD"
    CARD_BALANCE = "CARD_BALANCE"
    CARD_TRANSACTION = "CARD_TRANSACTION"


class AccessType(str, Enum):
    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"


class AccessStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


E = TypeVar("E", bound=Enum)


def _lookup(enum_cls: Type[E], value: Union[E, str, None]) -> E | None:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    return enum_cls.__members__.get(value.strip().upper())


def parse_consent_status(value: Union[ConsentStatus, str, None]) -> ConsentStatus:
    member = _lookup(ConsentStatus, value)
    if member is None:
        raise UnknownStatusError(value)
    return member


def parse_consent_type(value: Union[ConsentType, str, None]) -> ConsentType:
    member = _lookup(ConsentType, value)
    if member is None:
        raise UnknownValueError("consent type", value)
    return member


def parse_resource_type(value: Union[ResourceType, str, None]) -> ResourceType:
    member = _lookup(ResourceType, value)
    if member is None:
        raise UnknownValueError("resource type", value)
    return member


def parse_access_type(value: Union[AccessType, str, None]) -> AccessType:
    member = _lookup(AccessType, value)
    if member is None:
        raise UnknownValueError("access type", value)
    return member


def parse_access_status(value: Union[AccessStatus, str, None]) -> AccessStatus:
    member = _lookup(AccessStatus, value)
    if member is None:
        raise UnknownValueError("access status", value)
    return member

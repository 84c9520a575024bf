from __future__ import annotations
from typing import Any, FrozenSet, Mapping

from consent_authz.schemas.enums import ConsentType, ResourceType

_ALLOWED: Mapping[ConsentType, FrozenSet[ResourceType]] = {
    ConsentType.ACCOUNT_INFORMATION: frozenset(
        {ResourceType.ACCOUNT, ResourceType.BALANCE, ResourceType.TRANSACTION}
    ),
    ConsentType.PAYMENT_INITIATION: frozenset({ResourceType.PAYMENT}),
    ConsentType.FUNDS_CONFIRMATION: frozenset({ResourceType.FUNDS_CONFIRMATION}),
    ConsentType.CARD_INFORMATION: frozenset(
        {ResourceType.CARD, ResourceType.CARD_BALANCE, ResourceType.CARD_TRANSACTION}
    ),
}


def allowed_resource_types(consent_type: Any) -> FrozenSet[ResourceType]:
    """Resource types a consent type may authorize; empty for anything unknown."""
    try:
        return _ALLOWED.get(consent_type, frozenset())
    except TypeError:  # unhashable input
        return frozenset()


def is_resource_type_allowed(consent_type: Any, resource_type: Any) -> bool:
    # str-valued enums hash and compare like their values, so plain strings work too
    try:
        return resource_type in allowed_resource_types(consent_type)
    except TypeError:
        return False

"""
Tests for the consent authorization engine.

Covers:
- strict check: status, window, ownership, scope, frequency limit
- side effect of a successful strict check (last_action_date)
- loose check used by the data-access services
- infrastructure failures are propagated, never turned into a decision
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

from consent_authz.core.errors import StoreUnavailableError
from consent_authz.schemas.access_log import AccessLogCreate
from consent_authz.schemas.enums import (
    AccessStatus,
    AccessType,
    ConsentStatus,
    ConsentType,
    ResourceType,
)
from consent_authz.services.authorization import ConsentAuthorizationEngine

from tests.factories import NOW, OTHER_PARTY_ID, PARTY_ID, TPP_ID, metric_value


async def _record_accesses(ledger, consent_id, count, status=AccessStatus.SUCCESS):
    for _ in range(count):
        await ledger.append(AccessLogCreate(
            consent_id=consent_id,
            party_id=PARTY_ID,
            third_party_id=TPP_ID,
            access_type=AccessType.READ,
            resource_type=ResourceType.ACCOUNT,
            status=status,
        ))


# ============================================================
# Scenarios
# ============================================================

class TestAuthorizeScenarios:
    """Reference scenarios for the strict check"""

    @pytest.mark.asyncio
    async def test_valid_in_window_consent_is_authorized(self, authz, make_consent):
        """Scenario A: valid AIS consent, own party, account access"""
        consent = await make_consent()

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is True

    @pytest.mark.asyncio
    async def test_expired_consent_is_denied(self, authz, make_consent):
        """Scenario B: valid_until an hour ago"""
        consent = await make_consent(valid_until=NOW - timedelta(hours=1))

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False

    @pytest.mark.asyncio
    async def test_revoked_consent_is_denied(self, authz, make_consent):
        """Scenario C: status REVOKED"""
        consent = await make_consent(status=ConsentStatus.REVOKED)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False

    @pytest.mark.asyncio
    async def test_frequency_limit_reached_is_denied(self, authz, ledger, make_consent):
        """Scenario D: five of five accesses used"""
        consent = await make_consent(access_frequency=5)
        await _record_accesses(ledger, consent.id, 5)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False

    @pytest.mark.asyncio
    async def test_frequency_below_limit_is_authorized_and_stamped(
        self, authz, ledger, consent_store, make_consent
    ):
        """Scenario D: three of five accesses used"""
        consent = await make_consent(access_frequency=5)
        await _record_accesses(ledger, consent.id, 3)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is True

        stored = await consent_store.get(consent.id)
        assert stored.last_action_date == NOW

    @pytest.mark.asyncio
    async def test_scope_mismatch_is_denied(self, authz, make_consent):
        """Scenario E: AIS consent asked for a payment"""
        consent = await make_consent()

        assert await authz.authorize(consent.id, ResourceType.PAYMENT, PARTY_ID, TPP_ID) is False


# ============================================================
# Properties
# ============================================================

class TestAuthorizeChecks:
    """Each step of the strict check in isolation"""

    @pytest.mark.asyncio
    async def test_unknown_consent_is_denied(self, authz):
        """An absent consent is a plain denial, not an error"""
        assert await authz.authorize(uuid4(), ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        ConsentStatus.RECEIVED,
        ConsentStatus.REJECTED,
        ConsentStatus.EXPIRED,
        ConsentStatus.REVOKED,
    ])
    async def test_non_valid_status_is_denied(self, authz, make_consent, status):
        """Only VALID consents authorize anything"""
        consent = await make_consent(status=status)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False

    @pytest.mark.asyncio
    async def test_not_yet_valid_is_denied(self, authz, make_consent):
        """now < valid_from"""
        consent = await make_consent(valid_from=NOW + timedelta(minutes=1))

        decision = await authz.evaluate(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID)

        assert decision.allowed is False
        assert decision.reason == "not_yet_valid"

    @pytest.mark.asyncio
    async def test_window_end_is_exclusive(self, authz, make_consent):
        """now == valid_until is already expired"""
        consent = await make_consent(valid_until=NOW)

        decision = await authz.evaluate(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID)

        assert decision.allowed is False
        assert decision.reason == "expired"

    @pytest.mark.asyncio
    async def test_window_start_is_inclusive(self, authz, make_consent):
        """now == valid_from is inside the window"""
        consent = await make_consent(valid_from=NOW)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is True

    @pytest.mark.asyncio
    async def test_party_mismatch_is_denied(self, authz, make_consent):
        """A consent cannot be reused for another customer"""
        consent = await make_consent()

        decision = await authz.evaluate(consent.id, ResourceType.ACCOUNT, OTHER_PARTY_ID, TPP_ID)

        assert decision.allowed is False
        assert decision.reason == "party_mismatch"

    @pytest.mark.asyncio
    async def test_party_check_skipped_without_party(self, authz, make_consent):
        """No requesting party means no ownership check"""
        consent = await make_consent()

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, None, TPP_ID) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource_type, expected", [
        (ResourceType.ACCOUNT, True),
        (ResourceType.BALANCE, True),
        (ResourceType.TRANSACTION, True),
        (ResourceType.PAYMENT, False),
        (ResourceType.CARD, False),
        (ResourceType.CARD_BALANCE, False),
        (ResourceType.FUNDS_CONFIRMATION, False),
        (ResourceType.CONSENT, False),
    ])
    async def test_account_information_scope(self, authz, make_consent, resource_type, expected):
        """AIS consents cover accounts, balances and transactions only"""
        consent = await make_consent()

        assert await authz.authorize(consent.id, resource_type, PARTY_ID, TPP_ID) is expected

    @pytest.mark.asyncio
    async def test_resource_type_as_string(self, authz, make_consent):
        """Transport strings are accepted; unknown ones deny at the scope step"""
        consent = await make_consent(consent_type=ConsentType.CARD_INFORMATION)

        assert await authz.authorize(consent.id, "CARD_BALANCE", PARTY_ID, TPP_ID) is True
        decision = await authz.evaluate(consent.id, "LOANS", PARTY_ID, TPP_ID)
        assert decision.reason == "scope"

    @pytest.mark.asyncio
    async def test_failed_accesses_do_not_consume_frequency(self, authz, ledger, make_consent):
        """Only SUCCESS entries count towards the limit"""
        consent = await make_consent(access_frequency=2)
        await _record_accesses(ledger, consent.id, 1)
        await _record_accesses(ledger, consent.id, 4, status=AccessStatus.FAILURE)

        assert await authz.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is True

    @pytest.mark.asyncio
    async def test_denial_does_not_touch_last_action_date(self, authz, consent_store, make_consent):
        """No state is mutated on a denial"""
        consent = await make_consent()

        await authz.authorize(consent.id, ResourceType.PAYMENT, PARTY_ID, TPP_ID)

        stored = await consent_store.get(consent.id)
        assert stored.last_action_date is None

    @pytest.mark.asyncio
    async def test_repeat_check_is_stable(self, authz, clock, consent_store, make_consent):
        """Same answer twice without ledger writes; the stamp follows the clock"""
        consent = await make_consent()

        first = await authz.authorize(consent.id, ResourceType.BALANCE, PARTY_ID, TPP_ID)
        clock.advance(minutes=5)
        second = await authz.authorize(consent.id, ResourceType.BALANCE, PARTY_ID, TPP_ID)

        assert first is second is True
        stored = await consent_store.get(consent.id)
        assert stored.last_action_date == NOW + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_checks_short_circuit(self, make_consent):
        """The ledger is not consulted once an earlier check fails"""
        store = AsyncMock()
        ledger = AsyncMock()
        consent = await make_consent(access_frequency=1, status=ConsentStatus.REVOKED)
        store.get.return_value = consent
        engine = ConsentAuthorizationEngine(store, ledger, clock=lambda: NOW)

        assert await engine.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID) is False
        ledger.count_by_consent.assert_not_awaited()
        store.upsert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_denials_are_counted_by_reason(self, authz, make_consent):
        """Denials show up in the decision metric"""
        consent = await make_consent()
        labels = {"check": "strict", "outcome": "scope"}
        before = metric_value("consent_authorizations_total", labels)

        await authz.authorize(consent.id, ResourceType.CARD, PARTY_ID, TPP_ID)

        assert metric_value("consent_authorizations_total", labels) == before + 1


# ============================================================
# Infrastructure Errors
# ============================================================

class TestAuthorizeInfrastructureErrors:
    """Failures to decide are not denials"""

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self):
        """The engine never answers when the store is down"""
        store = AsyncMock()
        store.get.side_effect = StoreUnavailableError("consent_store unavailable")
        engine = ConsentAuthorizationEngine(store, AsyncMock(), clock=lambda: NOW)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await engine.authorize(uuid4(), ResourceType.ACCOUNT, PARTY_ID, TPP_ID)
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_ledger_failure_propagates(self, consent_store, make_consent):
        """A frequency check that cannot count fails closed by raising"""
        consent = await make_consent(access_frequency=3)
        ledger = AsyncMock()
        ledger.count_by_consent.side_effect = StoreUnavailableError("access_ledger unavailable")
        engine = ConsentAuthorizationEngine(consent_store, ledger, clock=lambda: NOW)

        with pytest.raises(StoreUnavailableError):
            await engine.authorize(consent.id, ResourceType.ACCOUNT, PARTY_ID, TPP_ID)

        stored = await consent_store.get(consent.id)
        assert stored.last_action_date is None

    @pytest.mark.asyncio
    async def test_loose_check_store_failure_propagates(self):
        """validate_consent does not default to False on errors"""
        store = AsyncMock()
        store.get.side_effect = StoreUnavailableError("consent_store unavailable")
        engine = ConsentAuthorizationEngine(store, AsyncMock(), clock=lambda: NOW)

        with pytest.raises(StoreUnavailableError):
            await engine.validate_consent(uuid4(), "ACCOUNT", "READ")


# ============================================================
# Loose Check
# ============================================================

class TestValidateConsent:
    """The simpler gate used before dispatching to backend ports"""

    @pytest.mark.asyncio
    async def test_scope_substring_match(self, authz, make_consent):
        """Lower-cased resource type must appear in the free-text scope"""
        consent = await make_consent(access_scope="account,balance")

        assert await authz.validate_consent(consent.id, "ACCOUNT", "READ") is True
        assert await authz.validate_consent(consent.id, ResourceType.BALANCE, AccessType.READ) is True
        assert await authz.validate_consent(consent.id, "TRANSACTION", "READ") is False

    @pytest.mark.asyncio
    async def test_ignores_scope_table_and_frequency(self, authz, ledger, make_consent):
        """An AIS consent whose scope text mentions payments passes the loose check"""
        consent = await make_consent(access_scope="payment", access_frequency=1)
        await _record_accesses(ledger, consent.id, 3)

        assert await authz.validate_consent(consent.id, "PAYMENT", "WRITE") is True

    @pytest.mark.asyncio
    async def test_missing_scope_denies(self, authz, make_consent):
        consent = await make_consent(access_scope=None)

        assert await authz.validate_consent(consent.id, "ACCOUNT", "READ") is False

    @pytest.mark.asyncio
    async def test_status_and_window(self, authz, make_consent):
        """Status and window still apply"""
        received = await make_consent(status=ConsentStatus.RECEIVED)
        expired = await make_consent(valid_until=NOW - timedelta(seconds=1))
        future = await make_consent(valid_from=NOW + timedelta(hours=1))

        assert await authz.validate_consent(received.id, "ACCOUNT", "READ") is False
        assert await authz.validate_consent(expired.id, "ACCOUNT", "READ") is False
        assert await authz.validate_consent(future.id, "ACCOUNT", "READ") is False

    @pytest.mark.asyncio
    async def test_unknown_consent(self, authz):
        assert await authz.validate_consent(uuid4(), "ACCOUNT", "READ") is False

    @pytest.mark.asyncio
    async def test_no_side_effects(self, authz, consent_store, make_consent):
        """The loose check never stamps last_action_date"""
        consent = await make_consent()

        assert await authz.validate_consent(consent.id, "ACCOUNT", "READ") is True

        stored = await consent_store.get(consent.id)
        assert stored.last_action_date is None

"""
Test configuration and fixtures for the consent authorization tests.
"""
import pytest
from datetime import timedelta
from uuid import uuid4

from consent_authz.db.base import Base
from consent_authz.db.init_db import init_db
from consent_authz.db.session import make_engine, make_session_factory
from consent_authz.schemas.consent import Consent
from consent_authz.schemas.enums import ConsentStatus, ConsentType
from consent_authz.services.access_log_service import AccessLogService
from consent_authz.services.authorization import ConsentAuthorizationEngine
from consent_authz.services.consent_service import ConsentLifecycleManager
from consent_authz.stores.sql import SqlAccessLedger, SqlConsentStore

from tests.factories import NOW, PARTY_ID, FrozenClock


# ============================================================
# Database Fixtures
# ============================================================

@pytest.fixture
def db_engine():
    """In-memory SQLite with the full schema"""
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def consent_store(session_factory):
    return SqlConsentStore(session_factory)


@pytest.fixture
def ledger(session_factory, clock):
    return SqlAccessLedger(session_factory, clock=clock)


@pytest.fixture
def authz(consent_store, ledger, clock):
    return ConsentAuthorizationEngine(consent_store, ledger, clock=clock)


@pytest.fixture
def lifecycle(consent_store, clock):
    return ConsentLifecycleManager(consent_store, clock=clock)


@pytest.fixture
def access_logs(ledger):
    return AccessLogService(ledger)


# ============================================================
# Consent Fixtures
# ============================================================

@pytest.fixture
def make_consent(consent_store):
    """Persist a consent; defaults describe a valid, in-window AIS consent for PARTY_ID"""

    async def _make(**overrides) -> Consent:
        values = dict(
            id=uuid4(),
            party_id=PARTY_ID,
            consent_type=ConsentType.ACCOUNT_INFORMATION,
            status=ConsentStatus.VALID,
            valid_from=NOW - timedelta(days=1),
            valid_until=NOW + timedelta(days=1),
            access_frequency=None,
            access_scope="account,balance,transaction",
            created_at=NOW - timedelta(days=1),
            updated_at=NOW - timedelta(days=1),
        )
        values.update(overrides)
        return await consent_store.upsert(Consent(**values))

    return _make

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from consent_authz.cache.redis_client import close_redis, get_redis
from consent_authz.core.config import Settings, settings as default_settings
from consent_authz.core.logging import setup_logging
from consent_authz.db.init_db import init_db
from consent_authz.db.session import make_engine, make_session_factory
from consent_authz.housekeeping.expiry import ExpirySweeper
from consent_authz.locks import ConsentLocks, LocalConsentLocks, NullConsentLocks, RedisConsentLocks
from consent_authz.services.access_log_service import AccessLogService
from consent_authz.services.authorization import ConsentAuthorizationEngine
from consent_authz.services.consent_service import ConsentLifecycleManager
from consent_authz.services.guard import ConsentGuard
from consent_authz.stores.sql import SqlAccessLedger, SqlConsentStore

log = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a host process needs, wired from one Settings object."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    consent_store: SqlConsentStore
    access_ledger: SqlAccessLedger
    authorization: ConsentAuthorizationEngine
    consents: ConsentLifecycleManager
    access_logs: AccessLogService
    locks: ConsentLocks
    guard: ConsentGuard
    sweeper: Optional[ExpirySweeper] = field(default=None)

    async def start(self) -> None:
        setup_logging(self.settings.LOG_LEVEL)
        if self.settings.INIT_DB_ON_STARTUP:
            init_db(self.engine)
        if self.sweeper is not None:
            await self.sweeper.start()
        log.info("runtime_started app=%s env=%s", self.settings.APP_NAME, self.settings.APP_ENV)

    async def stop(self) -> None:
        if self.sweeper is not None:
            await self.sweeper.stop()
        if isinstance(self.locks, RedisConsentLocks):
            await close_redis()
        self.engine.dispose()
        log.info("runtime_stopped")


def _build_locks(settings: Settings) -> ConsentLocks:
    if settings.LOCK_BACKEND == "redis":
        return RedisConsentLocks(
            get_redis(settings.REDIS_URL),
            ttl_seconds=settings.LOCK_TTL_SECONDS,
            wait_seconds=settings.LOCK_WAIT_SECONDS,
            retry_seconds=settings.LOCK_RETRY_SECONDS,
        )
    if settings.LOCK_BACKEND == "local":
        return LocalConsentLocks()
    return NullConsentLocks()


def create_runtime(settings: Optional[Settings] = None) -> Runtime:
    settings = settings or default_settings
    engine = make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    session_factory = make_session_factory(engine)

    consent_store = SqlConsentStore(session_factory)
    access_ledger = SqlAccessLedger(session_factory)
    authorization = ConsentAuthorizationEngine(consent_store, access_ledger)
    access_logs = AccessLogService(access_ledger)
    locks = _build_locks(settings)

    sweeper = None
    if settings.EXPIRY_SWEEP_ENABLED:
        sweeper = ExpirySweeper(session_factory, interval_seconds=settings.EXPIRY_SWEEP_SECONDS)

    return Runtime(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        consent_store=consent_store,
        access_ledger=access_ledger,
        authorization=authorization,
        consents=ConsentLifecycleManager(
            consent_store, enforce_transitions=settings.ENFORCE_STATUS_TRANSITIONS
        ),
        access_logs=access_logs,
        locks=locks,
        guard=ConsentGuard(authorization, access_logs, locks),
        sweeper=sweeper,
    )

"""Per-consent serialization.

Authorization checks on different consents never contend. For the same
consent, the frequency check and the ledger write that follows it race
unless the caller holds one of these locks around both.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

from consent_authz.core.errors import LockUnavailableError

log = logging.getLogger(__name__)


class ConsentLocks(Protocol):
    def hold(self, consent_id: UUID) -> AsyncContextManager[None]:
        ...


class NullConsentLocks:
    @asynccontextmanager
    async def hold(self, consent_id: UUID) -> AsyncIterator[None]:
        yield


class LocalConsentLocks:
    """One asyncio.Lock per consent id within this process."""

    def __init__(self) -> None:
        # idle locks drop out once no coroutine references them
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, consent_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(consent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[consent_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, consent_id: UUID) -> AsyncIterator[None]:
        lock = self._lock_for(consent_id)
        async with lock:
            yield


# delete only if we still own it
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisConsentLocks:
    """Cross-process lock: SET NX with a TTL so a crashed holder cannot wedge a consent."""

    def __init__(
        self,
        redis: Redis,
        ttl_seconds: int = 10,
        wait_seconds: float = 5.0,
        retry_seconds: float = 0.05,
        prefix: str = "consent-lock",
    ) -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._wait = wait_seconds
        self._retry = retry_seconds
        self._prefix = prefix

    def _key(self, consent_id: UUID) -> str:
        return f"{self._prefix}:{consent_id}"

    async def _acquire(self, key: str, token: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._wait
        while True:
            try:
                if await self._redis.set(key, token, nx=True, ex=self._ttl):
                    return
            except RedisError as exc:
                raise LockUnavailableError("lock backend unavailable") from exc
            if loop.time() >= deadline:
                raise LockUnavailableError(f"timed out waiting for {key}")
            await asyncio.sleep(self._retry)

    @asynccontextmanager
    async def hold(self, consent_id: UUID) -> AsyncIterator[None]:
        key = self._key(consent_id)
        token = uuid.uuid4().hex
        await self._acquire(key, token)
        try:
            yield
        finally:
            try:
                await self._redis.eval(_RELEASE_SCRIPT, 1, key, token)
            except RedisError:
                # the TTL frees it
                log.warning("lock_release_failed key=%s", key)

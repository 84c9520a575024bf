from __future__ import annotations
import asyncio
import logging
from anyio import to_thread
from sqlalchemy.orm import sessionmaker

from consent_authz.core.metrics import inc_consents_expired
from consent_authz.repositories.consents import expire_due
from consent_authz.utils.timeutils import Clock, utcnow

log = logging.getLogger(__name__)


class ExpirySweeper:
    """Moves VALID consents past their valid_until to EXPIRED on a fixed interval."""

    def __init__(
        self,
        session_factory: sessionmaker,
        interval_seconds: int = 60,
        clock: Clock = utcnow,
    ) -> None:
        self.interval = interval_seconds
        self._session_factory = session_factory
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")

    async def stop(self) -> None:
        self._stopping = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            finally:
                self._task = None

    async def sweep(self) -> int:
        """One pass; returns how many consents moved to EXPIRED."""
        count = await to_thread.run_sync(self._expire_once)
        if count:
            inc_consents_expired(count)
            log.info("expired_consents", extra={"count": count})
        return count

    async def _run(self) -> None:
        while not self._stopping:
            try:
                await self.sweep()
            except Exception:
                log.exception("expiry_sweep_error")
            await asyncio.sleep(self.interval)

    def _expire_once(self) -> int:
        db = self._session_factory()
        try:
            return expire_due(db, self._clock())
        finally:
            db.close()

"""Unit of work: one AsyncSession, one transaction, explicit per-court locking.

Usage:
    async with UnitOfWork(async_session_factory, court_locks) as uow:
        await uow.lock_court_dates([(court_id, booking_date)])
        ... uow.session ...
    # committed on clean exit, rolled back on exception

The overlap check and the CourtSlot inserts that follow it must not interleave
with another request for the same court and date. lock_court_dates() takes an
in-process asyncio.Lock per (court, date) and, on PostgreSQL, a transaction
scoped advisory lock so separate worker processes are serialized as well.
Keys are acquired in sorted order to avoid deadlocks between batches.
"""

import asyncio
import hashlib
import logging
import weakref
from collections.abc import Callable, Iterable
from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

CourtDateKey = tuple[int, date]


class CourtDateLocks:
    """Registry of in-process locks keyed by (court_id, date)."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[CourtDateKey, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, key: CourtDateKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


def advisory_key(key: CourtDateKey) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    court_id, day = key
    digest = hashlib.blake2b(f"court-slot:{court_id}:{day.isoformat()}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], locks: CourtDateLocks):
        self._session_factory = session_factory
        self._locks = locks
        self._held: list[asyncio.Lock] = []
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self.session.close()
            self._release()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def lock_court_dates(self, keys: Iterable[CourtDateKey]) -> None:
        """Serialize this transaction against others touching the same court/date cells."""
        ordered = sorted(set(keys))
        is_postgres = self.session.bind.dialect.name == "postgresql"
        for key in ordered:
            lock = self._locks.get(key)
            await lock.acquire()
            self._held.append(lock)
            if is_postgres:
                await self.session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": advisory_key(key)})
        logger.debug("Acquired court/date locks %s", ordered)

    def _release(self) -> None:
        while self._held:
            self._held.pop().release()


UnitOfWorkFactory = Callable[[], UnitOfWork]


def make_uow_factory(
    session_factory: async_sessionmaker[AsyncSession], locks: CourtDateLocks | None = None
) -> UnitOfWorkFactory:
    locks = locks or CourtDateLocks()
    return lambda: UnitOfWork(session_factory, locks)

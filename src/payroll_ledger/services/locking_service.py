"""Per-key write serialization for the payroll ledger."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.clock import Period
from payroll_ledger.database import acquire_period_key_lock


class LockingService:
    """Serializes writes to one (employee_id, month, year) ledger key.

    Two layers:
    1. An in-process asyncio.Lock per key, shared by every service that
       receives the same LockingService (the app keeps one instance).
    2. A transaction-scoped advisory lock on PostgreSQL so that separate
       worker processes also queue on the same key.

    Both are held until the owning session's transaction ends, so a waiter
    always reads what the previous holder committed. A session that already
    holds a key re-enters it without waiting. Locks for idle keys are
    dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}
        self._owners: dict[str, AsyncSession] = {}

    @staticmethod
    def ledger_key(employee_id: str, period: Period) -> str:
        return f"payroll:{employee_id}:{period.lock_key}"

    @asynccontextmanager
    async def hold(
        self,
        session: AsyncSession,
        employee_id: str,
        period: Period,
    ) -> AsyncIterator[None]:
        """Hold the write lock for a ledger key for the session's transaction."""
        key = self.ledger_key(employee_id, period)
        if self._owners.get(key) is not session:
            await self._acquire(key)
            self._owners[key] = session
            self._release_on_transaction_end(session, key)
        try:
            await acquire_period_key_lock(session, key)
            yield
        finally:
            # Nothing to wait for when the block never opened a transaction
            if not session.in_transaction() and self._owners.get(key) is session:
                self._release(key)

    async def _acquire(self, key: str) -> None:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._forget(key)
            raise

    def _release(self, key: str) -> None:
        del self._owners[key]
        self._locks[key].release()
        self._forget(key)

    def _forget(self, key: str) -> None:
        self._waiters[key] -= 1
        if self._waiters[key] == 0:
            del self._waiters[key]
            self._locks.pop(key, None)

    def _release_on_transaction_end(self, session: AsyncSession, key: str) -> None:
        def on_transaction_end(sync_session, transaction) -> None:
            if transaction.parent is None and self._owners.get(key) is session:
                self._release(key)

        event.listen(session.sync_session, "after_transaction_end", on_transaction_end)

"""Best-effort propagation of salary changes into current-period payroll."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_ledger.clock import Clock, SystemClock
from payroll_ledger.errors import PropagationFailure
from payroll_ledger.services.locking_service import LockingService

logger = logging.getLogger(__name__)


class SyncPropagator:
    """Refreshes an employee's current-period record after a salary change.

    ``dispatch`` schedules the refresh as a background task and returns at
    once; the salary write that triggered it is already committed and is
    never rolled back or delayed by the refresh. Each refresh runs in its
    own session. Failures are logged as PropagationFailure and swallowed.

    Usage:
        propagator = SyncPropagator(session_factory)
        propagator.dispatch("EMP001")
        ...
        await propagator.drain()  # on shutdown
    """

    SYNC_EDITOR = "system-sync"
    MAX_RECORDED_FAILURES = 100

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
        locks: LockingService | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.locks = locks or LockingService()
        self._tasks: set[asyncio.Task[None]] = set()
        self.failures: deque[PropagationFailure] = deque(maxlen=self.MAX_RECORDED_FAILURES)

    def dispatch(self, employee_id: str) -> asyncio.Task[None] | None:
        """Schedule a refresh without awaiting it."""
        try:
            task = asyncio.get_running_loop().create_task(self._sync(employee_id))
        except RuntimeError as e:
            self._record_failure(employee_id, e)
            return None
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _sync(self, employee_id: str) -> None:
        # Imported here to avoid circular imports
        from payroll_ledger.services.payroll_service import PayrollService

        try:
            async with self.session_factory() as session:
                service = PayrollService(session, clock=self.clock, locks=self.locks)
                try:
                    record = await service.sync_current_period(
                        employee_id, edited_by=self.SYNC_EDITOR
                    )
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
            if record is not None:
                logger.info(
                    "Synced payroll for %s for %s", employee_id, record.period
                )
        except Exception as e:
            self._record_failure(employee_id, e)

    def _record_failure(self, employee_id: str, cause: BaseException) -> None:
        failure = PropagationFailure(employee_id, cause)
        self.failures.append(failure)
        logger.error("%s", failure, exc_info=cause)

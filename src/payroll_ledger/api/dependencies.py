"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.clock import Clock
from payroll_ledger.services.locking_service import LockingService
from payroll_ledger.services.payroll_service import PayrollService
from payroll_ledger.services.payslip_service import PayslipService
from payroll_ledger.services.salary_service import SalaryService
from payroll_ledger.services.sync_service import SyncPropagator


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_locks(request: Request) -> LockingService:
    return request.app.state.locks


def get_propagator(request: Request) -> SyncPropagator:
    return request.app.state.propagator


async def get_editor(x_user: Annotated[str | None, Header()] = None) -> str | None:
    """Editor identity recorded on ledger writes."""
    if x_user is None:
        return None
    return x_user.strip() or None


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppClock = Annotated[Clock, Depends(get_clock)]
Locks = Annotated[LockingService, Depends(get_locks)]
Propagator = Annotated[SyncPropagator, Depends(get_propagator)]
Editor = Annotated[str | None, Depends(get_editor)]


def get_payroll_service(db: DbSession, clock: AppClock, locks: Locks) -> PayrollService:
    return PayrollService(db, clock=clock, locks=locks)


def get_salary_service(
    db: DbSession, clock: AppClock, propagator: Propagator
) -> SalaryService:
    return SalaryService(db, clock=clock, propagator=propagator)


def get_payslip_service(db: DbSession) -> PayslipService:
    return PayslipService(db)


Payroll = Annotated[PayrollService, Depends(get_payroll_service)]
Salaries = Annotated[SalaryService, Depends(get_salary_service)]
Payslips = Annotated[PayslipService, Depends(get_payslip_service)]

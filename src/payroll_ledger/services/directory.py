"""Read-only access to the employee directory."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.errors import NotFoundError
from payroll_ledger.models import Employee


class EmployeeDirectory:
    """Looks up employee identity and status."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: str) -> Employee | None:
        return await self.session.get(Employee, employee_id)

    async def require(self, employee_id: str) -> Employee:
        employee = await self.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def list_active(self) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.status == "active")
            .order_by(Employee.employee_id)
        )
        return list(result.scalars().all())

    async def get_many(self, employee_ids: Iterable[str]) -> dict[str, Employee]:
        ids = list(dict.fromkeys(employee_ids))
        if not ids:
            return {}
        result = await self.session.execute(
            select(Employee).where(Employee.employee_id.in_(ids))
        )
        return {e.employee_id: e for e in result.scalars().all()}

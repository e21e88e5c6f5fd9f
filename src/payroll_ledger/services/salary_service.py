"""Salary profile store: append-only compensation history."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.calculators.salary_calculator import (
    SalaryCalculator,
    apply_update,
    build_manual_breakdown,
    parse_component_update,
    validate_breakdown,
)
from payroll_ledger.calculators.types import SalaryBreakdown
from payroll_ledger.clock import Clock, SystemClock
from payroll_ledger.errors import InvalidInputError
from payroll_ledger.models import Employee, SalaryProfile
from payroll_ledger.services.directory import EmployeeDirectory

if TYPE_CHECKING:
    from payroll_ledger.services.sync_service import SyncPropagator

logger = logging.getLogger(__name__)


@dataclass
class EmployeeSalaryRow:
    """Directory entry joined with its latest salary (zero-filled if none)."""

    employee: Employee
    salary: SalaryBreakdown
    has_salary_profile: bool
    effective_from: datetime | None


class SalaryService:
    """Appends and reads SalaryProfile rows.

    Rows are never updated: every compensation change appends a new row and
    the most recent ``effective_from`` wins.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock | None = None,
        propagator: SyncPropagator | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.propagator = propagator
        self.directory = EmployeeDirectory(session)

    async def get_latest(self, employee_id: str) -> SalaryProfile | None:
        result = await self.session.execute(
            select(SalaryProfile)
            .where(SalaryProfile.employee_id == employee_id)
            .order_by(SalaryProfile.effective_from.desc(), SalaryProfile.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_salary_history(self, employee_id: str) -> list[SalaryProfile]:
        """All profiles for an employee, newest first."""
        result = await self.session.execute(
            select(SalaryProfile)
            .where(SalaryProfile.employee_id == employee_id)
            .order_by(SalaryProfile.effective_from.desc(), SalaryProfile.created_at.desc())
        )
        return list(result.scalars().all())

    async def append(
        self,
        employee_id: str,
        breakdown: SalaryBreakdown,
        effective_from: datetime | None = None,
    ) -> SalaryProfile:
        """Append a validated profile row (flush only, no commit)."""
        validate_breakdown(breakdown)
        now = self.clock.now()
        profile = SalaryProfile(
            employee_id=employee_id,
            effective_from=effective_from or now,
            created_at=now,
        )
        profile.apply_breakdown(breakdown)
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def update_salary(
        self,
        employee_id: str,
        components: Mapping[str, Any],
        effective_from: datetime | None = None,
    ) -> SalaryProfile:
        """Record a compensation change and sync the current payroll.

        With ``ctc`` present the structure is decomposed from it and any
        other supplied component overrides the computed value (e.g. a manual
        professional tax). Without ``ctc`` the components are taken as
        entered. The new row is committed before the sync is dispatched so
        the background refresh sees it; sync failures never reach the caller.
        """
        await self.directory.require(employee_id)
        breakdown = self.build_from_components(components)

        profile = await self.append(employee_id, breakdown, effective_from)
        await self.session.commit()
        logger.info("Salary updated for %s (net %s)", employee_id, profile.net_pay)

        if self.propagator is not None:
            self.propagator.dispatch(employee_id)
        return profile

    @staticmethod
    def build_from_components(components: Mapping[str, Any]) -> SalaryBreakdown:
        update = parse_component_update(components)
        if update.status is not None:
            raise InvalidInputError("status", update.status, "not a salary component")
        if "ctc" in update.values:
            return apply_update(SalaryCalculator.calculate_from_ctc(update.values["ctc"]), update)
        return build_manual_breakdown(update.values)

    async def list_employees_with_salary(self) -> list[EmployeeSalaryRow]:
        """Active employees with their latest salary; zero-filled when missing."""
        rows = []
        for employee in await self.directory.list_active():
            profile = await self.get_latest(employee.employee_id)
            rows.append(
                EmployeeSalaryRow(
                    employee=employee,
                    salary=profile.to_breakdown() if profile else SalaryBreakdown(),
                    has_salary_profile=profile is not None,
                    effective_from=profile.effective_from if profile else None,
                )
            )
        return rows

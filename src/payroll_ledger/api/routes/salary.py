"""Salary structure API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from payroll_ledger.api.dependencies import Salaries
from payroll_ledger.api.schemas import (
    EmployeeSalaryResponse,
    EmployeeSummary,
    ErrorResponse,
    SalaryBreakdownResponse,
    SalaryProfileResponse,
    SalaryUpdateRequest,
    SalaryUpdateResponse,
)
from payroll_ledger.calculators.salary_calculator import calculate_from_ctc

router = APIRouter(prefix="/payroll", tags=["salary"])


@router.get(
    "/salary/calculate",
    response_model=SalaryBreakdownResponse,
    responses={400: {"model": ErrorResponse}},
)
async def calculate_salary(
    ctc: Annotated[str, Query(description="Annual cost to company")],
    professional_tax: Annotated[str, Query()] = "0",
) -> SalaryBreakdownResponse:
    """Preview the monthly structure for an annual CTC. Writes nothing."""
    return SalaryBreakdownResponse.from_breakdown(calculate_from_ctc(ctc, professional_tax))


@router.post(
    "/salary",
    response_model=SalaryUpdateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_salary(
    salaries: Salaries,
    payload: SalaryUpdateRequest,
) -> SalaryUpdateResponse:
    """Append a salary profile and refresh the current period in the background."""
    profile = await salaries.update_salary(
        payload.employee_id,
        payload.components(),
        effective_from=payload.effective_from,
    )
    employee = await salaries.directory.require(payload.employee_id)
    return SalaryUpdateResponse(
        message="Salary updated successfully",
        salary_record=SalaryProfileResponse.model_validate(profile),
        employee=EmployeeSummary.model_validate(employee),
    )


@router.get(
    "/salary-history/{employee_id}",
    response_model=list[SalaryProfileResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_salary_history(
    salaries: Salaries,
    employee_id: Annotated[str, Path()],
) -> list[SalaryProfileResponse]:
    """All salary profiles of an employee, newest first."""
    await salaries.directory.require(employee_id)
    history = await salaries.get_salary_history(employee_id)
    return [SalaryProfileResponse.model_validate(p) for p in history]


@router.get("/employees", response_model=list[EmployeeSalaryResponse])
async def list_employees_with_salary(salaries: Salaries) -> list[EmployeeSalaryResponse]:
    """Active employees with their latest salary (zeros when none is set)."""
    rows = await salaries.list_employees_with_salary()
    return [
        EmployeeSalaryResponse(
            employee_id=row.employee.employee_id,
            name=row.employee.name,
            email=row.employee.email,
            department=row.employee.department,
            designation=row.employee.designation,
            employment_type=row.employee.employment_type,
            status=row.employee.status,
            location=row.employee.location,
            date_of_joining=row.employee.date_of_joining,
            has_salary_profile=row.has_salary_profile,
            effective_from=row.effective_from,
            salary=SalaryBreakdownResponse.from_breakdown(row.salary),
        )
        for row in rows
    ]

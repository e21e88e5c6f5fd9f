"""Payroll run, history, edit and payslip API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from payroll_ledger.api.dependencies import AppClock, DbSession, Editor, Payroll, Payslips
from payroll_ledger.api.schemas import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    DeletePeriodResponse,
    ErrorResponse,
    LastRunResponse,
    PayrollRecordResponse,
    PayrollRecordUpdate,
    PayslipResponse,
    PeriodDetailResponse,
    PeriodRequest,
    PeriodSummaryResponse,
    RunPayrollRequest,
    RunResponse,
)
from payroll_ledger.clock import Period

router = APIRouter(prefix="/payroll", tags=["payroll"])


# ============================================================================
# Run / rerun
# ============================================================================


@router.post(
    "/run",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}},
)
async def run_payroll(
    db: DbSession,
    payroll: Payroll,
    clock: AppClock,
    editor: Editor,
    payload: RunPayrollRequest,
) -> RunResponse:
    """Process payroll for a period; repeating a run updates instead of duplicating."""
    result = await payroll.run_payroll(
        payload.month, payload.year, payload.employee_ids, edited_by=editor
    )
    await db.commit()
    return RunResponse.from_result(
        f"Payroll processed for {result.period}", result, clock
    )


@router.post(
    "/run/{employee_id}",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def run_individual_payroll(
    db: DbSession,
    payroll: Payroll,
    clock: AppClock,
    editor: Editor,
    employee_id: Annotated[str, Path()],
    payload: PeriodRequest,
) -> RunResponse:
    """Process payroll for a single employee."""
    result = await payroll.run_individual_payroll(
        payload.month, payload.year, employee_id, edited_by=editor
    )
    await db.commit()
    return RunResponse.from_result(
        f"Payroll processed for {employee_id} for {result.period}", result, clock
    )


@router.post(
    "/rerun",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def rerun_payroll(
    db: DbSession,
    payroll: Payroll,
    clock: AppClock,
    editor: Editor,
    payload: PeriodRequest,
) -> RunResponse:
    """Recompute every record of the current period from the latest salaries."""
    result = await payroll.rerun_payroll(payload.month, payload.year, edited_by=editor)
    await db.commit()
    return RunResponse.from_result(
        f"Payroll rerun completed for {result.period}", result, clock
    )


# ============================================================================
# History and period views
# ============================================================================


@router.get("/history", response_model=list[PeriodSummaryResponse])
async def list_payroll_history(payroll: Payroll) -> list[PeriodSummaryResponse]:
    """One summary per processed period, newest first."""
    summaries = await payroll.list_payroll_history()
    return [PeriodSummaryResponse.from_summary(s) for s in summaries]


@router.get("/last-run", response_model=LastRunResponse)
async def get_last_payroll_run(payroll: Payroll, clock: AppClock) -> LastRunResponse:
    """The most recent processed period with its records."""
    last = await payroll.get_last_payroll_run()
    if last is None:
        return LastRunResponse(exists=False, message="No payroll has been processed yet")
    return LastRunResponse(
        exists=True,
        summary=PeriodSummaryResponse.from_summary(last.summary),
        payrolls=[PayrollRecordResponse.from_joined(item, clock) for item in last.records],
    )


@router.get(
    "/month/{month}/{year}",
    response_model=PeriodDetailResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_payroll_for_period(
    payroll: Payroll,
    clock: AppClock,
    month: Annotated[str, Path()],
    year: Annotated[str, Path()],
) -> PeriodDetailResponse:
    """Records of one period with employee details."""
    detail = await payroll.get_payroll_for_period(month, year)
    return PeriodDetailResponse(
        month=detail.period.month,
        month_name=detail.period.month_name,
        year=detail.period.year,
        can_edit=detail.can_edit,
        payrolls=[PayrollRecordResponse.from_joined(item, clock) for item in detail.records],
    )


@router.delete(
    "/month/{month}/{year}",
    response_model=DeletePeriodResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def delete_payroll_for_period(
    db: DbSession,
    payroll: Payroll,
    month: Annotated[str, Path()],
    year: Annotated[str, Path()],
) -> DeletePeriodResponse:
    """Delete a past period's payroll. The current period is protected."""
    period = Period.of(month, year)
    deleted = await payroll.delete_payroll_for_period(period.month, period.year)
    await db.commit()
    return DeletePeriodResponse(
        message=f"Deleted {deleted} payroll records for {period}",
        deleted_count=deleted,
        month=period.month,
        year=period.year,
    )


# ============================================================================
# Edits
# ============================================================================


@router.put(
    "/record/{record_id}",
    response_model=PayrollRecordResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def edit_payroll_record(
    db: DbSession,
    payroll: Payroll,
    clock: AppClock,
    editor: Editor,
    record_id: Annotated[UUID, Path()],
    payload: PayrollRecordUpdate,
) -> PayrollRecordResponse:
    """Correct one record. Financial fields are editable in the current period only."""
    components = payload.components()
    record = await payroll.edit_payroll_record(record_id, components, edited_by=editor)
    await db.commit()
    employee = await payroll.directory.get(record.employee_id)
    return PayrollRecordResponse.from_record(record, clock, employee)


@router.put(
    "/records/bulk-update",
    response_model=BulkUpdateResponse,
    status_code=status.HTTP_200_OK,
)
async def edit_payroll_records(
    db: DbSession,
    payroll: Payroll,
    clock: AppClock,
    editor: Editor,
    payload: BulkUpdateRequest,
) -> BulkUpdateResponse:
    """Edit several records; failed items are reported and the rest are applied."""
    updates = []
    for item in payload.updates:
        components = item.components()
        components["payroll_record_id"] = item.payroll_record_id
        updates.append(components)

    result = await payroll.edit_payroll_records(updates, edited_by=editor)
    await db.commit()
    return BulkUpdateResponse(
        message=f"Updated {len(result.updated)} payroll records",
        updated_payrolls=[PayrollRecordResponse.from_record(r, clock) for r in result.updated],
        errors=result.errors,
    )


# ============================================================================
# Payslips
# ============================================================================


@router.get(
    "/payslip/{record_id}",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payslip(
    payslips: Payslips,
    record_id: Annotated[UUID, Path()],
) -> PayslipResponse:
    """Payslip rendered from the record's own snapshots."""
    return PayslipResponse.from_view(await payslips.get_payslip(record_id))


@router.get(
    "/employee-payslips/{employee_id}",
    response_model=list[PayrollRecordResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_employee_payslips(
    payslips: Payslips,
    clock: AppClock,
    employee_id: Annotated[str, Path()],
) -> list[PayrollRecordResponse]:
    """All payroll records of an employee, newest period first."""
    records = await payslips.list_employee_payslips(employee_id)
    return [PayrollRecordResponse.from_record(r, clock) for r in records]

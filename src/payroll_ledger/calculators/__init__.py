"""Salary calculation."""

from payroll_ledger.calculators.salary_calculator import (
    SalaryCalculator,
    calculate_from_ctc,
    derive_totals,
)
from payroll_ledger.calculators.types import LineType, PayslipLine, SalaryBreakdown

__all__ = [
    "SalaryCalculator",
    "calculate_from_ctc",
    "derive_totals",
    "LineType",
    "PayslipLine",
    "SalaryBreakdown",
]

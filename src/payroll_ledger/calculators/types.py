"""Type definitions for the salary calculation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum

# Ordered as they appear on a payslip
EARNING_FIELDS: tuple[str, ...] = (
    "basic_salary",
    "hra",
    "fixed_allowance",
    "conveyance_allowance",
    "children_education_allowance",
    "medical_allowance",
    "shift_allowance",
    "mobile_internet_allowance",
)

DEDUCTION_FIELDS: tuple[str, ...] = (
    "employee_epf",
    "employee_esi",
    "professional_tax",
)

EMPLOYER_FIELDS: tuple[str, ...] = (
    "employer_epf",
    "employer_esi",
)

# Fields a caller may set; totals are always derived
COMPONENT_FIELDS: tuple[str, ...] = ("ctc",) + EARNING_FIELDS + DEDUCTION_FIELDS + EMPLOYER_FIELDS

DERIVED_FIELDS: tuple[str, ...] = ("gross_earnings", "total_deductions", "net_pay")

FINANCIAL_FIELDS: tuple[str, ...] = COMPONENT_FIELDS + DERIVED_FIELDS

COMPONENT_LABELS: dict[str, str] = {
    "basic_salary": "Basic Salary",
    "hra": "House Rent Allowance",
    "fixed_allowance": "Fixed Allowance",
    "conveyance_allowance": "Conveyance Allowance",
    "children_education_allowance": "Children Education Allowance",
    "medical_allowance": "Medical Allowance",
    "shift_allowance": "Shift Allowance",
    "mobile_internet_allowance": "Mobile & Internet Allowance",
    "employee_epf": "Employee EPF",
    "employee_esi": "Employee ESI",
    "professional_tax": "Professional Tax",
    "employer_epf": "Employer EPF",
    "employer_esi": "Employer ESI",
}

ZERO = Decimal("0")


class LineType(str, Enum):
    """Payslip line item types."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"
    EMPLOYER_CONTRIBUTION = "EMPLOYER_CONTRIBUTION"


@dataclass(frozen=True)
class SalaryBreakdown:
    """Monthly compensation structure with derived totals.

    Built only through ``salary_calculator`` so that gross, deductions and
    net always agree with the component values.
    """

    ctc: Decimal = ZERO

    # Earnings
    basic_salary: Decimal = ZERO
    hra: Decimal = ZERO
    fixed_allowance: Decimal = ZERO
    conveyance_allowance: Decimal = ZERO
    children_education_allowance: Decimal = ZERO
    medical_allowance: Decimal = ZERO
    shift_allowance: Decimal = ZERO
    mobile_internet_allowance: Decimal = ZERO

    # Deductions
    employee_epf: Decimal = ZERO
    employee_esi: Decimal = ZERO
    professional_tax: Decimal = ZERO

    # Employer contributions (not part of net pay)
    employer_epf: Decimal = ZERO
    employer_esi: Decimal = ZERO

    gross_earnings: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO

    @property
    def earnings(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in EARNING_FIELDS}

    @property
    def deductions(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in DEDUCTION_FIELDS}

    @property
    def employer_contributions(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in EMPLOYER_FIELDS}

    def components(self) -> dict[str, Decimal]:
        """Settable fields only (no derived totals)."""
        return {name: getattr(self, name) for name in COMPONENT_FIELDS}

    def to_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass
class PayslipLine:
    """A single non-zero line on an assembled payslip."""

    line_type: LineType
    code: str
    label: str
    amount: Decimal


@dataclass
class ComponentUpdate:
    """Partial set of component values supplied by a caller."""

    values: dict[str, Decimal] = field(default_factory=dict)
    status: str | None = None

    @property
    def has_financial_changes(self) -> bool:
        return bool(self.values)

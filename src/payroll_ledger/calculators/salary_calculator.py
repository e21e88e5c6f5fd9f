"""Salary component calculator: annual CTC to a monthly breakdown."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from payroll_ledger.calculators.types import (
    COMPONENT_FIELDS,
    DEDUCTION_FIELDS,
    EARNING_FIELDS,
    ZERO,
    ComponentUpdate,
    SalaryBreakdown,
)
from payroll_ledger.errors import InvalidInputError, ValidationError

# Largest amount a Numeric(14, 2) column holds
MAX_AMOUNT = Decimal("999999999999.99")


class SalaryCalculator:
    """Decomposes annual CTC into monthly components.

    All percentages apply to the monthly CTC rounded to whole units:
    - basic: 50% of monthly CTC
    - HRA: 20% of basic
    - fixed allowance: 15% of monthly CTC
    - remaining = monthly - (basic + HRA + fixed), split by REMAINDER_SPLIT
    - employee EPF: 12% of basic, employee ESI: 0.75% of monthly CTC
    - employer EPF: 12% of basic, employer ESI: 3.25% of gross

    Every amount is rounded half-up to a whole currency unit. The last
    remainder bucket absorbs rounding so the eight earnings always add up
    to the rounded monthly CTC.
    """

    UNIT = Decimal("1")
    MONTHS_PER_YEAR = Decimal("12")

    BASIC_RATE = Decimal("0.50")
    HRA_RATE = Decimal("0.20")
    FIXED_ALLOWANCE_RATE = Decimal("0.15")

    REMAINDER_SPLIT: tuple[tuple[str, Decimal], ...] = (
        ("conveyance_allowance", Decimal("0.15")),
        ("children_education_allowance", Decimal("0.10")),
        ("medical_allowance", Decimal("0.10")),
        ("shift_allowance", Decimal("0.25")),
        ("mobile_internet_allowance", Decimal("0.40")),
    )

    EMPLOYEE_EPF_RATE = Decimal("0.12")
    EMPLOYEE_ESI_RATE = Decimal("0.0075")
    EMPLOYER_EPF_RATE = Decimal("0.12")
    EMPLOYER_ESI_RATE = Decimal("0.0325")

    @classmethod
    def round_to_units(cls, amount: Decimal) -> Decimal:
        """Round half-up to a whole currency unit."""
        try:
            return amount.quantize(cls.UNIT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise InvalidInputError("amount", amount, "out of range") from None

    @classmethod
    def calculate_from_ctc(
        cls,
        ctc: Any,
        professional_tax: Any = ZERO,
    ) -> SalaryBreakdown:
        annual = to_amount(ctc, "ctc")
        tax = to_amount(professional_tax, "professional_tax")

        monthly = cls.round_to_units(annual / cls.MONTHS_PER_YEAR)
        basic = cls.round_to_units(monthly * cls.BASIC_RATE)
        hra = cls.round_to_units(basic * cls.HRA_RATE)
        fixed = cls.round_to_units(monthly * cls.FIXED_ALLOWANCE_RATE)
        remaining = monthly - (basic + hra + fixed)

        split: dict[str, Decimal] = {}
        allocated = ZERO
        last_name = cls.REMAINDER_SPLIT[-1][0]
        for name, weight in cls.REMAINDER_SPLIT[:-1]:
            split[name] = cls.round_to_units(remaining * weight)
            allocated += split[name]
        split[last_name] = remaining - allocated

        components = {
            "ctc": annual,
            "basic_salary": basic,
            "hra": hra,
            "fixed_allowance": fixed,
            **split,
            "employee_epf": cls.round_to_units(basic * cls.EMPLOYEE_EPF_RATE),
            "employee_esi": cls.round_to_units(monthly * cls.EMPLOYEE_ESI_RATE),
            "professional_tax": cls.round_to_units(tax),
            "employer_epf": cls.round_to_units(basic * cls.EMPLOYER_EPF_RATE),
        }
        gross, _, _ = derive_totals(components)
        components["employer_esi"] = cls.round_to_units(gross * cls.EMPLOYER_ESI_RATE)
        return build_breakdown(components)

    @classmethod
    def default_employer_contributions(
        cls, basic_salary: Decimal, gross_earnings: Decimal
    ) -> tuple[Decimal, Decimal]:
        """Statutory employer EPF/ESI for a manually entered structure."""
        return (
            cls.round_to_units(basic_salary * cls.EMPLOYER_EPF_RATE),
            cls.round_to_units(gross_earnings * cls.EMPLOYER_ESI_RATE),
        )


def calculate_from_ctc(ctc: Any, professional_tax: Any = ZERO) -> SalaryBreakdown:
    """Decompose annual CTC into a monthly ``SalaryBreakdown``."""
    return SalaryCalculator.calculate_from_ctc(ctc, professional_tax)


def to_amount(value: Any, field: str) -> Decimal:
    """Coerce a caller-supplied amount to a non-negative Decimal."""
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(field, value, "must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInputError(field, value, "must be a number") from None
    else:
        raise InvalidInputError(field, value, "must be a number")
    if not amount.is_finite():
        raise InvalidInputError(field, value, "must be a finite number")
    if amount < 0:
        raise InvalidInputError(field, value, "must not be negative")
    if amount > MAX_AMOUNT:
        raise InvalidInputError(field, value, f"must not exceed {MAX_AMOUNT}")
    return amount


def derive_totals(components: Mapping[str, Decimal]) -> tuple[Decimal, Decimal, Decimal]:
    """Return (gross_earnings, total_deductions, net_pay) for components."""
    gross = sum((components.get(name, ZERO) for name in EARNING_FIELDS), ZERO)
    deductions = sum((components.get(name, ZERO) for name in DEDUCTION_FIELDS), ZERO)
    return gross, deductions, gross - deductions


def build_breakdown(components: Mapping[str, Decimal]) -> SalaryBreakdown:
    """Build a breakdown from component values, deriving the totals."""
    values = {name: components.get(name, ZERO) for name in COMPONENT_FIELDS}
    gross, deductions, net = derive_totals(values)
    return SalaryBreakdown(
        **values,
        gross_earnings=gross,
        total_deductions=deductions,
        net_pay=net,
    )


def build_manual_breakdown(components: Mapping[str, Any]) -> SalaryBreakdown:
    """Build a breakdown from explicitly entered components.

    Missing employer contributions are filled with statutory defaults when
    the structure has earnings to base them on.
    """
    values = {
        name: to_amount(components[name], name)
        for name in COMPONENT_FIELDS
        if components.get(name) is not None
    }
    gross, _, _ = derive_totals(values)
    default_epf, default_esi = SalaryCalculator.default_employer_contributions(
        values.get("basic_salary", ZERO), gross
    )
    if not values.get("employer_epf"):
        values["employer_epf"] = default_epf
    if not values.get("employer_esi"):
        values["employer_esi"] = default_esi
    return build_breakdown(values)


def apply_update(base: SalaryBreakdown, update: ComponentUpdate) -> SalaryBreakdown:
    """Overlay a partial update on a breakdown and re-derive totals.

    When an earning changes, employer contributions follow the statutory
    rule again unless the update sets them itself.
    """
    values = base.components()
    values.update(update.values)
    if any(name in update.values for name in EARNING_FIELDS):
        gross, _, _ = derive_totals(values)
        default_epf, default_esi = SalaryCalculator.default_employer_contributions(
            values["basic_salary"], gross
        )
        if "employer_epf" not in update.values:
            values["employer_epf"] = default_epf
        if "employer_esi" not in update.values:
            values["employer_esi"] = default_esi
    return build_breakdown(values)


def parse_component_update(components: Mapping[str, Any]) -> ComponentUpdate:
    """Split a caller mapping into component amounts and an optional status.

    Derived totals are not accepted: net pay is never independently settable.
    """
    unknown = set(components) - set(COMPONENT_FIELDS) - {"status"}
    if unknown:
        raise InvalidInputError(
            "components", sorted(unknown), "unknown or non-settable fields"
        )
    values = {
        name: to_amount(value, name)
        for name, value in components.items()
        if name != "status" and value is not None
    }
    status = components.get("status")
    return ComponentUpdate(values=values, status=status)


def validate_breakdown(breakdown: SalaryBreakdown) -> None:
    """Reject structures whose deductions exceed gross earnings."""
    if breakdown.total_deductions > breakdown.gross_earnings:
        raise ValidationError(
            "Deductions cannot exceed gross earnings "
            f"({breakdown.total_deductions} > {breakdown.gross_earnings})",
            gross=breakdown.gross_earnings,
            deductions=breakdown.total_deductions,
        )

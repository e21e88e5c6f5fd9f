"""Employee directory and company settings models.

Both tables are owned by other parts of the back office; the payroll
ledger only reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_ledger.models.base import Base, TimestampMixin, UpdateTimestampMixin


class Employee(Base, TimestampMixin):
    """Employee directory entry."""

    __tablename__ = "employee"

    employee_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    designation: Mapped[str | None] = mapped_column(String, nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_joining: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")


class CompanySettings(Base, TimestampMixin, UpdateTimestampMixin):
    """Global company settings (single row)."""

    __tablename__ = "company_settings"

    company_settings_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    website: Mapped[str | None] = mapped_column(String, nullable=True)
    logo: Mapped[str | None] = mapped_column(String, nullable=True)

    address_street: Mapped[str | None] = mapped_column(String, nullable=True)
    address_city: Mapped[str | None] = mapped_column(String, nullable=True)
    address_state: Mapped[str | None] = mapped_column(String, nullable=True)
    address_zip_code: Mapped[str | None] = mapped_column(String, nullable=True)
    address_country: Mapped[str | None] = mapped_column(String, nullable=True)

    currency_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    currency_symbol: Mapped[str | None] = mapped_column(String(8), nullable=True)
    currency_display: Mapped[str | None] = mapped_column(String, nullable=True)
    currency_exchange_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 6), nullable=True
    )

    pay_schedule: Mapped[str] = mapped_column(String, nullable=False, default="Monthly")

"""Reads the global company settings into immutable snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_ledger.config import Settings, get_settings
from payroll_ledger.models import (
    AddressSnapshot,
    CompanySettings,
    CompanySnapshot,
    CurrencySnapshot,
)


@dataclass(frozen=True)
class SettingsSnapshot:
    """Company and currency context captured for one computation."""

    company: CompanySnapshot
    currency: CurrencySnapshot


class SnapshotProvider:
    """Side-effect-free reader of the single company settings row.

    Used only to stamp records whose financial fields are being computed
    now. Assembling a past record's view never goes through here.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def current(self) -> SettingsSnapshot:
        result = await self.session.execute(
            select(CompanySettings).order_by(CompanySettings.company_settings_id).limit(1)
        )
        row = result.scalar_one_or_none()
        return SettingsSnapshot(
            company=self._company_from(row),
            currency=self._currency_from(row),
        )

    def _company_from(self, row: CompanySettings | None) -> CompanySnapshot:
        if row is None:
            return CompanySnapshot(
                name=self.settings.default_company_name,
                address=AddressSnapshot(country=self.settings.default_country),
            )
        return CompanySnapshot(
            name=row.name or self.settings.default_company_name,
            logo=row.logo or "",
            address=AddressSnapshot(
                street=row.address_street or "",
                city=row.address_city or "",
                state=row.address_state or "",
                zip_code=row.address_zip_code or "",
                country=row.address_country or self.settings.default_country,
            ),
        )

    def _currency_from(self, row: CompanySettings | None) -> CurrencySnapshot:
        code = (row.currency_code if row else None) or self.settings.default_currency_code
        if row is not None and row.currency_code:
            symbol = row.currency_symbol or code
        else:
            symbol = self.settings.default_currency_symbol
        display = (row.currency_display if row else None) or f"{code} ({symbol})"
        rate = row.currency_exchange_rate if row and row.currency_exchange_rate else Decimal("1")
        return CurrencySnapshot(
            code=code,
            symbol=symbol,
            display=display,
            exchange_rate=Decimal(rate),
        )

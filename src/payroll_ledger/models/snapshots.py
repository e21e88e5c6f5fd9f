"""Immutable company and currency snapshots embedded in payroll records.

Snapshots are copied into each record, never referenced, so a record keeps
rendering the company and currency it was computed under after the global
settings change.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class AddressSnapshot:
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AddressSnapshot:
        data = data or {}
        return cls(**{k: str(data.get(k) or "") for k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class CompanySnapshot:
    name: str
    logo: str = ""
    address: AddressSnapshot = field(default_factory=AddressSnapshot)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "logo": self.logo, "address": self.address.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompanySnapshot:
        return cls(
            name=data.get("name") or "",
            logo=data.get("logo") or "",
            address=AddressSnapshot.from_dict(data.get("address")),
        )


@dataclass(frozen=True)
class CurrencySnapshot:
    code: str
    symbol: str
    display: str
    exchange_rate: Decimal = Decimal("1")

    def to_dict(self) -> dict[str, str]:
        # JSON columns cannot hold Decimal
        return {
            "code": self.code,
            "symbol": self.symbol,
            "display": self.display,
            "exchange_rate": str(self.exchange_rate),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CurrencySnapshot:
        return cls(
            code=data.get("code") or "",
            symbol=data.get("symbol") or "",
            display=data.get("display") or "",
            exchange_rate=Decimal(str(data.get("exchange_rate", "1"))),
        )

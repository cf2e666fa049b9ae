from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

UNKNOWN_KEY = "UNKNOWN"


class AssetClass(str, Enum):
    EQUITY = "EQUITY"
    BOND = "BOND"
    CASH = "CASH"
    COMMODITY = "COMMODITY"
    REAL_ESTATE = "REAL_ESTATE"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Weighting:
    key: str         # sector name, country code or account name
    weight: Decimal  # 0..1


@dataclass(frozen=True)
class Position:
    symbol: str
    currency: str
    asset_class: AssetClass
    quantity: Decimal
    market_price: Decimal        # in `currency`
    investment: Decimal          # cost basis, base currency
    value: Decimal               # market value, base currency
    sectors: tuple[Weighting, ...] = ()
    countries: tuple[Weighting, ...] = ()
    accounts: tuple[Weighting, ...] = ()


@dataclass(frozen=True)
class PositionError:
    symbol: str
    reason: str


@dataclass(frozen=True)
class CurrentPositions:
    base_currency: str
    positions: tuple[Position, ...] = ()
    fees: Decimal = Decimal("0")
    errors: tuple[PositionError, ...] = field(default=())

    @property
    def investment(self) -> Decimal:
        return sum((p.investment for p in self.positions), Decimal("0"))

    @property
    def value(self) -> Decimal:
        return sum((p.value for p in self.positions), Decimal("0"))

    @property
    def is_complete(self) -> bool:
        return not self.errors

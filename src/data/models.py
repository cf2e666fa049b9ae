from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class Price:
    symbol: str
    price: Decimal
    currency: str

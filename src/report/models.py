from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any

from src.portfolio.models import PositionError


@dataclass(frozen=True)
class RuleResult:
    key: str
    name: str
    category: str
    evaluation: str
    value: bool
    metrics: dict[str, float] = field(default_factory=dict)


@dataclass
class PortfolioReport:
    user_id: int
    base_currency: str
    rules: list[RuleResult] = field(default_factory=list)
    incomplete: bool = False
    errors: list[PositionError] = field(default_factory=list)
    # Totals in base_currency over the priced positions
    investment: Decimal = Decimal("0")
    value: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "baseCurrency": self.base_currency,
            "investment": float(self.investment),
            "value": float(self.value),
            "incomplete": self.incomplete,
            "errors": [asdict(e) for e in self.errors],
            "rules": [
                {
                    "key": r.key,
                    "name": r.name,
                    "category": r.category,
                    "evaluation": r.evaluation,
                    "value": r.value,
                    "metrics": dict(r.metrics),
                }
                for r in self.rules
            ],
        }

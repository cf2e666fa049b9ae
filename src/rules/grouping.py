"""Grouping and ratio helpers shared by the rules.

A selector maps a position either to a single group key or to a sequence
of ``Weighting`` (sectors, countries, accounts). Weighted positions are
split across groups so that group totals add up to the position totals.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Sequence, Union

from src.portfolio.models import UNKNOWN_KEY, Position, Weighting

ZERO = Decimal("0")
ONE = Decimal("1")

Selector = Callable[[Position], Union[str, Sequence[Weighting]]]
Measure = Callable[["GroupItem"], Decimal]


@dataclass
class GroupItem:
    group_key: str
    investment: Decimal = ZERO
    value: Decimal = ZERO
    positions: list[Position] = field(default_factory=list)


def by_currency(position: Position) -> str:
    return position.currency


def by_asset_class(position: Position) -> str:
    return position.asset_class.value


def by_sector(position: Position) -> Sequence[Weighting]:
    return position.sectors


def by_country(position: Position) -> Sequence[Weighting]:
    return position.countries


def by_account(position: Position) -> Sequence[Weighting]:
    return position.accounts


def investment(item: GroupItem) -> Decimal:
    return item.investment


def value(item: GroupItem) -> Decimal:
    return item.value


def _allocation(selected: Union[str, Sequence[Weighting]]) -> list[tuple[str, Decimal]]:
    if isinstance(selected, str):
        return [(selected, ONE)]

    weights = [(w.key, w.weight) for w in selected if w.weight.is_finite() and w.weight > 0]
    assigned = sum((w for _, w in weights), ZERO)
    if assigned > ONE:
        return [(key, w / assigned) for key, w in weights]
    if assigned < ONE:
        weights.append((UNKNOWN_KEY, ONE - assigned))
    return weights


def group_by_attribute(
    positions: Sequence[Position],
    selector: Selector,
    pinned_key: str | None = None,
) -> list[GroupItem]:
    groups: dict[str, GroupItem] = {}

    for position in positions:
        for key, weight in _allocation(selector(position)):
            item = groups.setdefault(key, GroupItem(group_key=key))
            item.investment += position.investment * weight
            item.value += position.value * weight
            item.positions.append(position)

    if pinned_key is not None and pinned_key not in groups:
        groups[pinned_key] = GroupItem(group_key=pinned_key)

    return list(groups.values())


def find_group(groups: Sequence[GroupItem], key: str) -> GroupItem | None:
    return next((g for g in groups if g.group_key == key), None)


def total(groups: Sequence[GroupItem], measure: Measure) -> Decimal:
    return sum((measure(g) for g in groups), ZERO)


def largest(groups: Sequence[GroupItem], measure: Measure) -> GroupItem | None:
    """First group with the maximal measure; earlier groups win ties."""
    best = None
    for item in groups:
        if best is None or measure(item) > measure(best):
            best = item
    return best


def ratio(part: Decimal, whole: Decimal) -> float:
    if not whole:
        return 0.0
    return float(part) / float(whole)


def format_percent(share: float) -> str:
    return f"{share * 100:.1f}%"

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.data.base import DataProvider
from src.db.models import Account, Asset, Order
from src.exchange.rates import ExchangeRateService
from src.metrics import aggregation_duration_seconds, unresolved_prices_total
from src.portfolio.errors import DataUnavailableError
from src.portfolio.models import (
    AssetClass, CurrentPositions, Position, PositionError, Weighting,
)

logger = logging.getLogger(__name__)
DEFAULT_ACCOUNT = "Default"
ZERO = Decimal("0")


@dataclass
class Holding:
    """Running net position for one symbol while orders are replayed."""
    symbol: str
    asset: Any
    quantity: Decimal = ZERO
    investment: Decimal = ZERO
    accounts: dict[str, Decimal] = field(default_factory=dict)


def _weightings(raw: list[dict] | None, key_field: str) -> tuple[Weighting, ...]:
    if not raw:
        return ()
    items = []
    for item in raw:
        try:
            weight = Decimal(str(item["weight"]))
            key = str(item[key_field])
        except (KeyError, TypeError, ArithmeticError) as e:
            logger.warning(f"Ignoring malformed {key_field} weighting {item!r}: {e}")
            continue
        if not weight.is_finite() or weight <= 0:
            logger.warning(f"Ignoring {key_field} weighting {item!r}: weight must be a positive number")
            continue
        items.append(Weighting(key=key, weight=weight))
    return tuple(items)


def _asset_class(asset: Any) -> AssetClass:
    raw = (getattr(asset, "asset_class", None) or "").upper()
    return AssetClass(raw) if raw in AssetClass.__members__ else AssetClass.UNKNOWN


def net_orders(
    rows: Iterable[tuple[Any, Any, Any]],
    rates: ExchangeRateService,
    base_currency: str,
) -> tuple[dict[str, Holding], Decimal]:
    """Replay filled orders into net holdings (average cost) and total fees.

    ``rows`` are ``(order, asset, account)`` tuples in execution order;
    ``account`` may be None. Amounts are converted into ``base_currency``.
    """
    holdings: dict[str, Holding] = {}
    fees = ZERO

    for order, asset, account in rows:
        currency = (order.currency or asset.currency or base_currency).upper()
        if order.fee:
            fees += rates.to_currency(order.fee, currency, base_currency)

        holding = holdings.setdefault(asset.ticker, Holding(symbol=asset.ticker, asset=asset))
        account_name = account.name if account is not None else DEFAULT_ACCOUNT
        quantity = order.quantity

        if order.type == "BUY":
            holding.quantity += quantity
            holding.investment += rates.to_currency(quantity * order.price, currency, base_currency)
            holding.accounts[account_name] = holding.accounts.get(account_name, ZERO) + quantity
        elif order.type == "SELL":
            sold = min(quantity, holding.quantity)
            if sold < quantity:
                logger.warning(
                    f"Order {order.id} sells {quantity} {asset.ticker} but only {holding.quantity} held, "
                    f"ignoring the excess"
                )
            if sold > 0:
                holding.investment -= holding.investment * (sold / holding.quantity)
                holding.quantity -= sold
            remaining = holding.accounts.get(account_name, ZERO) - quantity
            holding.accounts[account_name] = max(remaining, ZERO)
        else:
            logger.warning(f"Skipping order {order.id} with unknown type {order.type!r}")

    return holdings, fees


def price_holdings(
    holdings: dict[str, Holding],
    fees: Decimal,
    data_provider: DataProvider,
    rates: ExchangeRateService,
    base_currency: str,
) -> CurrentPositions:
    positions: list[Position] = []
    errors: list[PositionError] = []

    for holding in holdings.values():
        if holding.quantity <= 0:
            continue
        try:
            price_obj = data_provider.get_current_price(holding.symbol)
            if price_obj.price is None or price_obj.price <= 0:
                raise ValueError(f"invalid price {price_obj.price}")
        except Exception as e:
            logger.warning(f"No market price for {holding.symbol}, leaving it out: {e}")
            unresolved_prices_total.inc()
            errors.append(PositionError(symbol=holding.symbol, reason=str(e)))
            continue

        currency = (price_obj.currency or holding.asset.currency or base_currency).upper()
        held = sum(holding.accounts.values(), ZERO)
        accounts = tuple(
            Weighting(key=name, weight=qty / held)
            for name, qty in holding.accounts.items() if qty > 0
        ) if held > 0 else ()

        positions.append(Position(
            symbol=holding.symbol,
            currency=currency,
            asset_class=_asset_class(holding.asset),
            quantity=holding.quantity,
            market_price=price_obj.price,
            investment=holding.investment,
            value=rates.to_currency(holding.quantity * price_obj.price, currency, base_currency),
            sectors=_weightings(holding.asset.sectors, "name"),
            countries=_weightings(holding.asset.countries, "code"),
            accounts=accounts,
        ))

    return CurrentPositions(
        base_currency=base_currency,
        positions=tuple(positions),
        fees=fees,
        errors=tuple(errors),
    )


class PortfolioEngine:
    def __init__(self, data_provider: DataProvider, rates: ExchangeRateService):
        self.data = data_provider
        self.rates = rates

    async def get_current_positions(
        self, session: AsyncSession, user_id: int, base_currency: str,
    ) -> CurrentPositions:
        with aggregation_duration_seconds.time():
            try:
                result = await session.execute(
                    select(Order, Asset, Account)
                    .join(Asset, Order.asset_id == Asset.id)
                    .outerjoin(Account, Order.account_id == Account.id)
                    .where(Order.user_id == user_id, Order.status == "EXECUTED")
                    .order_by(Order.executed_at, Order.id)
                )
                rows = result.all()
            except SQLAlchemyError as e:
                raise DataUnavailableError(f"Cannot load orders for user {user_id}: {e}") from e

            holdings, fees = net_orders(rows, self.rates, base_currency)
            positions = price_holdings(holdings, fees, self.data, self.rates, base_currency)

        logger.info(
            f"User {user_id}: {len(positions.positions)} positions, "
            f"{len(positions.errors)} unresolved"
        )
        return positions

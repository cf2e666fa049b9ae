"""Currency conversion for one evaluation run.

An ``ExchangeRateService`` is created per run and caches every rate it
looks up, keyed by ``(from, to, date)``. Lookups that fail are cached too,
so a broken pair is only requested once per run.
"""
import logging
from datetime import date
from decimal import Decimal

from src.data.base import DataProvider
from src.metrics import fx_fallbacks_total

logger = logging.getLogger(__name__)


class ExchangeRateService:
    def __init__(self, data_provider: DataProvider, as_of: date | None = None):
        self.data = data_provider
        self.as_of = as_of or date.today()
        self._rates: dict[tuple[str, str, date], Decimal | None] = {}

    def get_rate(self, from_currency: str, to_currency: str, on: date | None = None) -> Decimal | None:
        """Return the rate for the pair, or None when it cannot be resolved."""
        on = on or self.as_of
        key = (from_currency, to_currency, on)
        if key in self._rates:
            return self._rates[key]

        rate: Decimal | None
        try:
            rate = self.data.get_fx_rate(from_currency, to_currency, on)
            if rate is None or rate <= 0:
                raise ValueError(f"non-positive rate {rate}")
        except Exception as e:
            logger.warning(f"FX {from_currency}->{to_currency} on {on} unavailable: {e}")
            fx_fallbacks_total.labels(pair=f"{from_currency}{to_currency}").inc()
            rate = None
        self._rates[key] = rate
        return rate

    def to_currency(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        on: date | None = None,
    ) -> Decimal:
        if not amount or from_currency == to_currency:
            return amount
        rate = self.get_rate(from_currency, to_currency, on)
        if rate is None:
            return amount
        return amount * rate

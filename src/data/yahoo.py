import logging
from datetime import date, timedelta
from decimal import Decimal

import yfinance as yf
import pandas as pd

from src.data.base import DataProvider
from src.data.models import Price

logger = logging.getLogger(__name__)


class YahooDataProvider(DataProvider):
    def get_current_price(self, symbol: str) -> Price:
        t = yf.Ticker(symbol)
        info = t.fast_info
        last = info.last_price
        if last is None or pd.isna(last):
            raise ValueError(f"No price for {symbol}")
        price = Decimal(str(last))
        currency = getattr(info, "currency", "USD") or "USD"
        return Price(symbol=symbol, price=price, currency=currency.upper())

    def get_historical_close(self, symbol: str, on: date) -> Decimal:
        # Look back a week so weekends and holidays still resolve to the last close
        df = yf.download(
            symbol, start=on - timedelta(days=7), end=on + timedelta(days=1),
            interval="1d", progress=False, auto_adjust=True,
        )
        if df.empty:
            raise ValueError(f"No data for {symbol} on {on.isoformat()}")
        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)
        closes = df["Close"].dropna()
        if closes.empty:
            raise ValueError(f"No close for {symbol} on {on.isoformat()}")
        return Decimal(str(round(float(closes.iloc[-1]), 6)))

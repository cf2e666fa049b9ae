import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pandas as pd

from src.data.models import Price
from src.data.yahoo import YahooDataProvider


@pytest.fixture
def provider():
    return YahooDataProvider()


def test_get_current_price_reads_fast_info(provider):
    ticker = MagicMock()
    ticker.fast_info.last_price = 187.5
    ticker.fast_info.currency = "usd"
    with patch("src.data.yahoo.yf.Ticker", return_value=ticker):
        price = provider.get_current_price("AAPL")
    assert price == Price(symbol="AAPL", price=Decimal("187.5"), currency="USD")


def test_get_current_price_without_quote_raises(provider):
    ticker = MagicMock()
    ticker.fast_info.last_price = None
    with patch("src.data.yahoo.yf.Ticker", return_value=ticker):
        with pytest.raises(ValueError, match="No price"):
            provider.get_current_price("GHOST")


def test_get_fx_rate_same_currency_is_one(provider):
    assert provider.get_fx_rate("EUR", "EUR") == Decimal("1")


def test_get_fx_rate_today_uses_spot(provider):
    with patch.object(provider, "get_current_price",
                      return_value=Price("EURUSD=X", Decimal("1.08"), "USD")) as spot:
        assert provider.get_fx_rate("EUR", "USD") == Decimal("1.08")
    spot.assert_called_once_with("EURUSD=X")


def test_get_fx_rate_past_date_uses_last_close(provider):
    idx = pd.date_range("2024-01-01", periods=3, freq="D")
    df = pd.DataFrame({"Close": [1.09, 1.10, 1.11]}, index=idx)
    with patch("src.data.yahoo.yf.download", return_value=df):
        rate = provider.get_fx_rate("EUR", "USD", on=date(2024, 1, 3))
    assert rate == Decimal("1.11")


def test_get_historical_close_empty_raises(provider):
    with patch("src.data.yahoo.yf.download", return_value=pd.DataFrame()):
        with pytest.raises(ValueError, match="No data"):
            provider.get_historical_close("XXXUSD=X", date(2024, 1, 3))

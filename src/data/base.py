from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from src.data.models import Price


class DataProvider(ABC):
    @abstractmethod
    def get_current_price(self, symbol: str) -> Price: ...

    @abstractmethod
    def get_historical_close(self, symbol: str, on: date) -> Decimal: ...

    def get_fx_rate(self, from_currency: str, to_currency: str, on: date | None = None) -> Decimal:
        if from_currency == to_currency:
            return Decimal("1")
        fx_symbol = f"{from_currency}{to_currency}=X"
        if on is None or on >= date.today():
            return self.get_current_price(fx_symbol).price
        return self.get_historical_close(fx_symbol, on)

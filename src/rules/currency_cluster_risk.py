from dataclasses import dataclass

from src.portfolio.models import CurrentPositions
from src.portfolio.settings import UserSettings
from src.rules.base import Evaluation, Rule, RuleSettings, no_positions
from src.rules.concentration import ClusterRiskRule
from src.rules.grouping import (
    by_currency, find_group, format_percent, group_by_attribute,
    investment, largest, ratio, total, value,
)


@dataclass(frozen=True)
class BaseCurrencySettings(RuleSettings):
    base_currency: str = "USD"


class BaseCurrencyRule(Rule):
    """Passes when the base currency is the largest currency group."""
    measure = staticmethod(investment)
    scope = "initial investment"
    category = "currencyClusterRisk"

    def get_settings(self, user_settings: UserSettings) -> BaseCurrencySettings:
        return BaseCurrencySettings(
            is_active=self.is_active(user_settings),
            base_currency=user_settings.base_currency,
        )

    def evaluate(self, settings: BaseCurrencySettings, positions: CurrentPositions) -> Evaluation:
        if not positions.positions:
            return no_positions()

        base = settings.base_currency
        groups = group_by_attribute(positions.positions, by_currency, base)
        top = largest(groups, self.measure)
        share = ratio(self.measure(find_group(groups, base)), total(groups, self.measure))
        metrics = {"ratio": share}

        if top.group_key != base:
            return Evaluation(
                evaluation=(
                    f"The major part of your {self.scope} is not in your base currency "
                    f"({format_percent(share)} in {base})"
                ),
                value=False,
                metrics=metrics,
            )
        return Evaluation(
            evaluation=(
                f"The major part of your {self.scope} is in your base currency "
                f"({format_percent(share)} in {base})"
            ),
            value=True,
            metrics=metrics,
        )


class CurrencyClusterRiskBaseCurrencyInitialInvestment(BaseCurrencyRule):
    key = "currency_cluster_risk_base_currency_initial_investment"
    name = "Initial Investment: Base Currency"


class CurrencyClusterRiskBaseCurrencyCurrentInvestment(BaseCurrencyRule):
    key = "currency_cluster_risk_base_currency_current_investment"
    name = "Current Investment: Base Currency"
    measure = staticmethod(value)
    scope = "current investment"


class CurrencyClusterRiskInitialInvestment(ClusterRiskRule):
    key = "currency_cluster_risk_initial_investment"
    name = "Initial Investment: Currency Cluster"
    category = "currencyClusterRisk"
    selector = staticmethod(by_currency)
    dimension = "currency"
    measure = staticmethod(investment)
    scope = "initial investment"


class CurrencyClusterRiskCurrentInvestment(ClusterRiskRule):
    key = "currency_cluster_risk_current_investment"
    name = "Current Investment: Currency Cluster"
    category = "currencyClusterRisk"
    selector = staticmethod(by_currency)
    dimension = "currency"

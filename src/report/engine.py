import logging
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.data.base import DataProvider
from src.exchange.rates import ExchangeRateService
from src.metrics import reports_total, rule_verdicts_total
from src.portfolio.engine import PortfolioEngine
from src.portfolio.errors import DataUnavailableError
from src.portfolio.models import CurrentPositions
from src.portfolio.settings import UserSettings, load_user_settings
from src.report.models import PortfolioReport, RuleResult
from src.rules.account_cluster_risk import (
    AccountClusterRiskCurrentInvestment,
    AccountClusterRiskInitialInvestment,
    AccountClusterRiskSingleAccount,
)
from src.rules.base import Rule
from src.rules.concentration import (
    AssetClassClusterRiskEquity,
    CountryClusterRiskCurrentInvestment,
    SectorClusterRiskCurrentInvestment,
)
from src.rules.currency_cluster_risk import (
    CurrencyClusterRiskBaseCurrencyCurrentInvestment,
    CurrencyClusterRiskBaseCurrencyInitialInvestment,
    CurrencyClusterRiskCurrentInvestment,
    CurrencyClusterRiskInitialInvestment,
)
from src.rules.fees import FeeRatioInitialInvestment

logger = logging.getLogger(__name__)

# Report order follows this list
RULE_CATALOG: list[type[Rule]] = [
    CurrencyClusterRiskBaseCurrencyInitialInvestment,
    CurrencyClusterRiskBaseCurrencyCurrentInvestment,
    CurrencyClusterRiskInitialInvestment,
    CurrencyClusterRiskCurrentInvestment,
    AccountClusterRiskInitialInvestment,
    AccountClusterRiskCurrentInvestment,
    AccountClusterRiskSingleAccount,
    SectorClusterRiskCurrentInvestment,
    CountryClusterRiskCurrentInvestment,
    AssetClassClusterRiskEquity,
    FeeRatioInitialInvestment,
]

FAILED_EVALUATION = "This rule could not be evaluated"


def evaluate_rules(
    rules: Sequence[Rule],
    positions: CurrentPositions,
    user_settings: UserSettings,
) -> list[RuleResult]:
    """Run every active rule against one positions snapshot, in order."""
    results = []
    for rule in rules:
        settings = rule.get_settings(user_settings)
        if not settings.is_active:
            logger.debug(f"Rule {rule.key} inactive, skipped")
            continue
        try:
            evaluation = rule.evaluate(settings, positions)
        except Exception:
            logger.exception(f"Rule {rule.key} failed")
            results.append(RuleResult(
                key=rule.key, name=rule.name, category=rule.category,
                evaluation=FAILED_EVALUATION, value=False,
            ))
            continue
        results.append(RuleResult(
            key=rule.key, name=rule.name, category=rule.category,
            evaluation=evaluation.evaluation, value=evaluation.value,
            metrics=dict(evaluation.metrics),
        ))
    return results


class ReportEngine:
    def __init__(self, data_provider: DataProvider, catalog: Sequence[type[Rule]] = RULE_CATALOG):
        self.data = data_provider
        self.rules = [rule_cls() for rule_cls in catalog]

    async def evaluate_all(self, session: AsyncSession, user_id: int) -> PortfolioReport:
        try:
            user_settings = await load_user_settings(session, user_id)
            # Fresh rate cache per run
            rates = ExchangeRateService(self.data)
            positions = await PortfolioEngine(self.data, rates).get_current_positions(
                session, user_id, user_settings.base_currency,
            )
        except DataUnavailableError as e:
            logger.error(f"Checkup for user {user_id} failed: {e}")
            reports_total.labels(result="failed").inc()
            raise

        results = evaluate_rules(self.rules, positions, user_settings)
        for r in results:
            rule_verdicts_total.labels(rule=r.key, value=str(r.value).lower()).inc()

        incomplete = not positions.is_complete or any(
            r.evaluation == FAILED_EVALUATION for r in results
        )
        reports_total.labels(result="incomplete" if incomplete else "completed").inc()
        logger.info(
            f"Checkup for user {user_id}: {sum(r.value for r in results)}/{len(results)} rules passed"
            + (" (incomplete)" if incomplete else "")
        )
        return PortfolioReport(
            user_id=user_id,
            base_currency=user_settings.base_currency,
            rules=results,
            incomplete=incomplete,
            errors=list(positions.errors),
            investment=positions.investment,
            value=positions.value,
        )

from src.portfolio.models import UNKNOWN_KEY, CurrentPositions
from src.portfolio.settings import UserSettings
from src.rules.base import Evaluation, Rule, RuleSettings, no_positions
from src.rules.concentration import ClusterRiskRule
from src.rules.grouping import by_account, group_by_attribute, investment


class AccountClusterRiskInitialInvestment(ClusterRiskRule):
    key = "account_cluster_risk_initial_investment"
    name = "Initial Investment: Account Cluster"
    category = "accountClusterRisk"
    selector = staticmethod(by_account)
    dimension = "account"
    measure = staticmethod(investment)
    scope = "initial investment"


class AccountClusterRiskCurrentInvestment(ClusterRiskRule):
    key = "account_cluster_risk_current_investment"
    name = "Current Investment: Account Cluster"
    category = "accountClusterRisk"
    selector = staticmethod(by_account)
    dimension = "account"


class AccountClusterRiskSingleAccount(Rule):
    key = "account_cluster_risk_single_account"
    name = "Single Account"
    category = "accountClusterRisk"

    def get_settings(self, user_settings: UserSettings) -> RuleSettings:
        return RuleSettings(is_active=self.is_active(user_settings))

    def evaluate(self, settings: RuleSettings, positions: CurrentPositions) -> Evaluation:
        if not positions.positions:
            return no_positions()

        accounts = [
            g.group_key for g in group_by_attribute(positions.positions, by_account)
            if g.group_key != UNKNOWN_KEY
        ]
        metrics = {"accounts": float(len(accounts))}
        if len(accounts) <= 1:
            return Evaluation(
                evaluation="Your net worth is managed by a single account",
                value=False,
                metrics=metrics,
            )
        return Evaluation(
            evaluation=f"Your net worth is managed by {len(accounts)} accounts",
            value=True,
            metrics=metrics,
        )

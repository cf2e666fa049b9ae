from dataclasses import dataclass

from src.portfolio.models import CurrentPositions
from src.portfolio.settings import UserSettings
from src.rules.base import Evaluation, Rule, RuleSettings, no_positions, parse_ratio
from src.rules.grouping import format_percent, ratio


@dataclass(frozen=True)
class FeeRatioSettings(RuleSettings):
    threshold: float = 0.01


class FeeRatioInitialInvestment(Rule):
    key = "fee_ratio_initial_investment"
    name = "Fee Ratio"
    category = "fees"
    default_options = {"is_active": True, "threshold": 0.01}

    def get_settings(self, user_settings: UserSettings) -> FeeRatioSettings:
        return FeeRatioSettings(
            is_active=self.is_active(user_settings),
            threshold=self.option(user_settings, "threshold", parse_ratio),
        )

    def evaluate(self, settings: FeeRatioSettings, positions: CurrentPositions) -> Evaluation:
        if not positions.positions:
            return no_positions()

        share = ratio(positions.fees, positions.investment)
        metrics = {"ratio": share, "threshold": settings.threshold}

        if share > settings.threshold:
            return Evaluation(
                evaluation=(
                    f"The fees do exceed {format_percent(settings.threshold)} of your "
                    f"initial investment ({format_percent(share)})"
                ),
                value=False,
                metrics=metrics,
            )
        return Evaluation(
            evaluation=(
                f"The fees do not exceed {format_percent(settings.threshold)} of your "
                f"initial investment ({format_percent(share)})"
            ),
            value=True,
            metrics=metrics,
        )

"""Cluster risk: no single group may hold more than a set share of the portfolio."""
import logging
from dataclasses import dataclass

from src.portfolio.models import UNKNOWN_KEY, AssetClass, CurrentPositions
from src.portfolio.settings import UserSettings
from src.rules.base import Evaluation, Rule, RuleSettings, no_positions, parse_ratio
from src.rules.grouping import (
    by_asset_class, by_country, by_sector, find_group, format_percent,
    group_by_attribute, largest, ratio, total, value,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdSettings(RuleSettings):
    threshold: float = 0.5


class ClusterRiskRule(Rule):
    """Passes while the largest group stays at or below ``threshold``.

    Holdings without data for the grouping (``UNKNOWN``) count towards the
    whole but are never reported as the largest group.

    Subclasses pick the grouping (``selector``) and whether groups are
    compared on cost basis or market value (``measure``).
    """
    selector = staticmethod(by_sector)
    measure = staticmethod(value)
    scope = "current investment"
    dimension = "sector"
    default_options = {"is_active": True, "threshold": 0.5}

    def get_settings(self, user_settings: UserSettings) -> ThresholdSettings:
        return ThresholdSettings(
            is_active=self.is_active(user_settings),
            threshold=self.option(user_settings, "threshold", parse_ratio),
        )

    def evaluate(self, settings: ThresholdSettings, positions: CurrentPositions) -> Evaluation:
        if not positions.positions:
            return no_positions()

        groups = group_by_attribute(positions.positions, self.selector)
        whole = total(groups, self.measure)
        if not whole:
            return Evaluation(evaluation=f"Your {self.scope} is zero", value=False)

        top = largest([g for g in groups if g.group_key != UNKNOWN_KEY], self.measure)
        if top is None:
            return Evaluation(
                evaluation=f"There is no {self.dimension} data for your {self.scope}",
                value=True,
                metrics={"ratio": 0.0, "threshold": settings.threshold},
            )
        share = ratio(self.measure(top), whole)
        metrics = {"ratio": share, "threshold": settings.threshold}

        if share > settings.threshold:
            return Evaluation(
                evaluation=(
                    f"Over {format_percent(settings.threshold)} of your {self.scope} "
                    f"is in {top.group_key} ({format_percent(share)})"
                ),
                value=False,
                metrics=metrics,
            )
        return Evaluation(
            evaluation=(
                f"The major part of your {self.scope} is in {top.group_key} "
                f"({format_percent(share)}) and does not exceed "
                f"{format_percent(settings.threshold)}"
            ),
            value=True,
            metrics=metrics,
        )


class SectorClusterRiskCurrentInvestment(ClusterRiskRule):
    key = "sector_cluster_risk_current_investment"
    name = "Current Investment: Sector Cluster"
    category = "sectorClusterRisk"
    selector = staticmethod(by_sector)
    default_options = {"is_active": True, "threshold": 0.3}


class CountryClusterRiskCurrentInvestment(ClusterRiskRule):
    key = "country_cluster_risk_current_investment"
    name = "Current Investment: Country Cluster"
    category = "countryClusterRisk"
    selector = staticmethod(by_country)
    dimension = "country"
    default_options = {"is_active": True, "threshold": 0.3}


@dataclass(frozen=True)
class RangeSettings(RuleSettings):
    threshold_min: float = 0.0
    threshold_max: float = 1.0


class AssetClassClusterRiskEquity(Rule):
    key = "asset_class_cluster_risk_equity"
    name = "Equity Allocation"
    category = "assetClassClusterRisk"
    default_options = {"is_active": True, "threshold_min": 0.5, "threshold_max": 0.8}

    def get_settings(self, user_settings: UserSettings) -> RangeSettings:
        low = self.option(user_settings, "threshold_min", parse_ratio)
        high = self.option(user_settings, "threshold_max", parse_ratio)
        if low > high:
            logger.warning(f"Rule {self.key}: minimum {low} above maximum {high}, using defaults")
            low = self.default_options["threshold_min"]
            high = self.default_options["threshold_max"]
        return RangeSettings(
            is_active=self.is_active(user_settings),
            threshold_min=low,
            threshold_max=high,
        )

    def evaluate(self, settings: RangeSettings, positions: CurrentPositions) -> Evaluation:
        if not positions.positions:
            return no_positions()

        equity = AssetClass.EQUITY.value
        groups = group_by_attribute(positions.positions, by_asset_class, equity)
        share = ratio(find_group(groups, equity).value, total(groups, value))
        metrics = {
            "ratio": share,
            "threshold_min": settings.threshold_min,
            "threshold_max": settings.threshold_max,
        }

        if share < settings.threshold_min:
            return Evaluation(
                evaluation=(
                    f"The equity part of your current investment ({format_percent(share)}) "
                    f"is below {format_percent(settings.threshold_min)}"
                ),
                value=False,
                metrics=metrics,
            )
        if share > settings.threshold_max:
            return Evaluation(
                evaluation=(
                    f"The equity part of your current investment ({format_percent(share)}) "
                    f"exceeds {format_percent(settings.threshold_max)}"
                ),
                value=False,
                metrics=metrics,
            )
        return Evaluation(
            evaluation=(
                f"The equity part of your current investment ({format_percent(share)}) "
                f"is within {format_percent(settings.threshold_min)} and "
                f"{format_percent(settings.threshold_max)}"
            ),
            value=True,
            metrics=metrics,
        )

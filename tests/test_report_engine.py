"""Tests for the rule catalog, evaluate_rules and ReportEngine.evaluate_all."""
import json
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from src.portfolio.errors import DataUnavailableError
from src.portfolio.models import AssetClass, CurrentPositions, Position, PositionError, Weighting
from src.portfolio.settings import UserSettings
from src.report.engine import FAILED_EVALUATION, RULE_CATALOG, ReportEngine, evaluate_rules
from src.rules.base import Evaluation


def _position(symbol, currency, amount):
    return Position(
        symbol=symbol, currency=currency, asset_class=AssetClass.EQUITY,
        quantity=Decimal("1"), market_price=Decimal(amount),
        investment=Decimal(amount), value=Decimal(amount),
        sectors=(Weighting("Technology", Decimal("1")),),
        countries=(Weighting("US", Decimal("1")),),
        accounts=(Weighting("Broker", Decimal("1")),),
    )


def _positions(errors=()):
    return CurrentPositions(
        base_currency="USD",
        positions=(_position("A", "USD", "6000"), _position("B", "EUR", "4000")),
        fees=Decimal("150"),
        errors=tuple(errors),
    )


def _rules():
    return [rule_cls() for rule_cls in RULE_CATALOG]


# ---------------------------------------------------------------------------
# evaluate_rules
# ---------------------------------------------------------------------------

def test_catalog_keys_are_unique_and_ordered():
    keys = [rule_cls.key for rule_cls in RULE_CATALOG]
    assert len(keys) == len(set(keys))
    assert keys[0] == "currency_cluster_risk_base_currency_initial_investment"
    assert keys[-1] == "fee_ratio_initial_investment"


def test_all_rules_report_in_catalog_order():
    results = evaluate_rules(_rules(), _positions(), UserSettings(base_currency="USD"))
    assert [r.key for r in results] == [rule_cls.key for rule_cls in RULE_CATALOG]
    assert all(isinstance(r.value, bool) for r in results)


def test_inactive_rule_is_left_out_of_report():
    off = "account_cluster_risk_single_account"
    user = UserSettings(base_currency="USD", rules={off: {"is_active": False}})
    results = evaluate_rules(_rules(), _positions(), user)
    assert off not in [r.key for r in results]
    assert len(results) == len(RULE_CATALOG) - 1


def test_report_is_deterministic():
    user = UserSettings(base_currency="USD")
    first = evaluate_rules(_rules(), _positions(), user)
    second = evaluate_rules(_rules(), _positions(), user)
    assert first == second


def test_fee_verdict_in_report():
    results = evaluate_rules(_rules(), _positions(), UserSettings(base_currency="USD"))
    fee = next(r for r in results if r.key == "fee_ratio_initial_investment")
    assert fee.value is False
    assert fee.category == "fees"


def test_failing_rule_does_not_abort_report():
    broken = MagicMock()
    broken.key, broken.name, broken.category = "broken", "Broken", "test"
    broken.get_settings.return_value = MagicMock(is_active=True)
    broken.evaluate.side_effect = RuntimeError("boom")
    healthy = MagicMock()
    healthy.key, healthy.name, healthy.category = "healthy", "Healthy", "test"
    healthy.get_settings.return_value = MagicMock(is_active=True)
    healthy.evaluate.return_value = Evaluation(evaluation="fine", value=True)

    results = evaluate_rules([broken, healthy], _positions(), UserSettings(base_currency="USD"))
    assert [r.key for r in results] == ["broken", "healthy"]
    assert results[0].evaluation == FAILED_EVALUATION
    assert results[0].value is False
    assert results[1].value is True


# ---------------------------------------------------------------------------
# ReportEngine.evaluate_all
# ---------------------------------------------------------------------------

def _engine_with(positions, user_settings=None):
    engine = ReportEngine(MagicMock())
    settings_mock = AsyncMock(return_value=user_settings or UserSettings(base_currency="USD"))
    portfolio = MagicMock()
    portfolio.get_current_positions = AsyncMock(return_value=positions)
    return engine, settings_mock, portfolio


@pytest.mark.asyncio
async def test_evaluate_all_aggregates_once_and_builds_report():
    engine, settings_mock, portfolio = _engine_with(_positions())
    with (
        patch("src.report.engine.load_user_settings", settings_mock),
        patch("src.report.engine.PortfolioEngine", return_value=portfolio),
    ):
        report = await engine.evaluate_all(MagicMock(), user_id=7)

    portfolio.get_current_positions.assert_awaited_once()
    args = portfolio.get_current_positions.await_args.args
    assert args[1:] == (7, "USD")
    assert report.user_id == 7
    assert report.incomplete is False
    assert len(report.rules) == len(RULE_CATALOG)
    base = report.rules[0]
    assert base.value is True
    assert "60.0%" in base.evaluation


@pytest.mark.asyncio
async def test_evaluate_all_flags_partial_prices():
    missing = PositionError(symbol="GHOST", reason="No price for GHOST")
    engine, settings_mock, portfolio = _engine_with(_positions(errors=[missing]))
    with (
        patch("src.report.engine.load_user_settings", settings_mock),
        patch("src.report.engine.PortfolioEngine", return_value=portfolio),
    ):
        report = await engine.evaluate_all(MagicMock(), user_id=1)

    assert report.incomplete is True
    assert report.errors == [missing]
    assert len(report.rules) == len(RULE_CATALOG)


@pytest.mark.asyncio
async def test_evaluate_all_propagates_data_unavailable():
    engine = ReportEngine(MagicMock())
    portfolio = MagicMock()
    portfolio.get_current_positions = AsyncMock(side_effect=DataUnavailableError("db down"))
    with (
        patch("src.report.engine.load_user_settings",
              AsyncMock(return_value=UserSettings(base_currency="USD"))),
        patch("src.report.engine.PortfolioEngine", return_value=portfolio),
    ):
        with pytest.raises(DataUnavailableError):
            await engine.evaluate_all(MagicMock(), user_id=1)


@pytest.mark.asyncio
async def test_report_serializes_to_json():
    engine, settings_mock, portfolio = _engine_with(
        _positions(errors=[PositionError(symbol="GHOST", reason="missing")])
    )
    with (
        patch("src.report.engine.load_user_settings", settings_mock),
        patch("src.report.engine.PortfolioEngine", return_value=portfolio),
    ):
        report = await engine.evaluate_all(MagicMock(), user_id=3)

    payload = json.loads(json.dumps(report.to_dict()))
    assert payload["incomplete"] is True
    assert payload["investment"] == 10000.0
    assert payload["value"] == 10000.0
    assert payload["errors"] == [{"symbol": "GHOST", "reason": "missing"}]
    assert payload["rules"][0]["name"] == "Initial Investment: Base Currency"
    assert set(payload["rules"][0]) == {"key", "name", "category", "evaluation", "value", "metrics"}

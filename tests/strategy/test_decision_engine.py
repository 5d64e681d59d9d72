"""Tests for the multi-factor decision cascade."""

import math

import pytest

from sentinel_app.config.defaults import StrategyParams
from sentinel_app.models.indicators import (
    BandPosition,
    PrimaryAction,
    SecondaryAction,
    TrendZone,
    ValuationZone,
)
from sentinel_app.strategy import (
    LeverageBreach,
    TopSignal,
    ZoneBased,
    classify,
    classify_valuation_zone,
    evaluate,
    secondary_action,
)


def plain_renderer(snapshot, signal):
    return "report"


class TestLeverageBreaker:
    """Test the first circuit breaker."""

    def test_high_leverage_halts_everything(self, make_snapshot):
        """Leverage 2.0 halts both assets even in the cheapest zone."""
        signal = evaluate(make_snapshot(account_leverage=2.0, valuation_index=0.30))

        assert signal.action_asset_a is PrimaryAction.HALT
        assert signal.action_asset_b is SecondaryAction.HALT
        assert signal.amount_factor == 0.0
        assert signal.is_halted
        assert "2.00" in signal.warning_message

    def test_limit_itself_does_not_halt(self, make_snapshot):
        """The comparison is strict: exactly 1.5x is allowed."""
        signal = evaluate(make_snapshot(account_leverage=1.5), renderer=plain_renderer)
        assert signal.action_asset_a is PrimaryAction.DCA_BUY

    def test_leverage_wins_over_top_signal(self, make_snapshot):
        snapshot = make_snapshot(account_leverage=1.6, trend_cross_signal=True)
        assert isinstance(classify(snapshot), LeverageBreach)

    def test_configurable_limit(self, make_snapshot):
        params = StrategyParams(max_leverage=3.0)
        signal = evaluate(make_snapshot(account_leverage=2.0), params, renderer=plain_renderer)
        assert not signal.is_halted


class TestTopSignal:
    """Test the second circuit breaker."""

    def test_trend_cross(self, make_snapshot):
        signal = evaluate(make_snapshot(trend_cross_signal=True, valuation_index=0.30))

        assert signal.action_asset_a is PrimaryAction.SELL_ALERT
        assert signal.action_asset_b is SecondaryAction.SELL_ALERT
        assert signal.amount_factor == 0.0
        assert signal.is_halted
        assert signal.has_warning

    def test_above_upper_band(self, make_snapshot):
        snapshot = make_snapshot(trend_zone=TrendZone.ABOVE_UPPER_BAND)
        assert isinstance(classify(snapshot), TopSignal)
        assert evaluate(snapshot).action_asset_a is PrimaryAction.SELL_ALERT

    def test_below_band_is_not_a_top(self, make_snapshot):
        snapshot = make_snapshot(trend_zone=TrendZone.BELOW_BAND)
        assert isinstance(classify(snapshot), ZoneBased)


class TestValuationZones:
    """Test zone breakpoints and amount factors."""

    @pytest.mark.parametrize("index,zone", [
        (0.0, ValuationZone.STRONG_BUY),
        (0.4499, ValuationZone.STRONG_BUY),
        (0.45, ValuationZone.DCA_BUY),
        (1.1999, ValuationZone.DCA_BUY),
        (1.20, ValuationZone.HOLD),
        (4.999, ValuationZone.HOLD),
        (5.00, ValuationZone.SELL),
        (50.0, ValuationZone.SELL),
    ])
    def test_breakpoints_belong_to_upper_zone(self, index, zone):
        assert classify_valuation_zone(index) is zone

    @pytest.mark.parametrize("index,action,factor", [
        (0.30, PrimaryAction.STRONG_BUY, 1.5),
        (0.45, PrimaryAction.DCA_BUY, 1.0),
        (1.20, PrimaryAction.HOLD, 0.0),
        (5.00, PrimaryAction.SELL, 0.0),
    ])
    def test_zone_actions(self, make_snapshot, index, action, factor):
        signal = evaluate(make_snapshot(valuation_index=index), renderer=plain_renderer)

        assert signal.action_asset_a is action
        assert signal.amount_factor == factor
        assert not signal.is_halted
        assert not signal.has_warning

    def test_strong_buy_with_cheap_asset_b(self, make_snapshot):
        """Index 0.30 with asset B in the lower band buys both heavily."""
        signal = evaluate(make_snapshot(
            valuation_index=0.30, asset_b_band_position=BandPosition.LOWER
        ))

        assert signal.action_asset_a is PrimaryAction.STRONG_BUY
        assert signal.action_asset_b is SecondaryAction.BUY_HEAVY
        assert signal.amount_factor == 1.5

    def test_sell_zone(self, make_snapshot):
        signal = evaluate(make_snapshot(valuation_index=6.0))

        assert signal.action_asset_a is PrimaryAction.SELL
        assert signal.amount_factor == 0.0

    def test_nan_index_does_not_raise(self, make_snapshot):
        """Out-of-range numbers are compared at face value."""
        signal = evaluate(make_snapshot(valuation_index=math.nan), renderer=plain_renderer)
        assert signal.action_asset_a is PrimaryAction.SELL


class TestOverheatOverride:
    """Test the dispersion override in buying zones."""

    def test_overheat_in_dca_zone(self, make_snapshot):
        """Index 0.70 with Z 7.0 pauses buying."""
        signal = evaluate(make_snapshot(valuation_index=0.70, dispersion_z=7.0))

        assert signal.action_asset_a is PrimaryAction.HOLD_CAUTION
        assert signal.amount_factor == 0.0
        assert not signal.is_halted
        assert "7.00" in signal.warning_message

    def test_threshold_is_strict(self, make_snapshot):
        signal = evaluate(make_snapshot(dispersion_z=6.0), renderer=plain_renderer)
        assert signal.action_asset_a is PrimaryAction.DCA_BUY

    @pytest.mark.parametrize("index,action", [
        (2.0, PrimaryAction.HOLD),
        (6.0, PrimaryAction.SELL),
    ])
    def test_never_fires_outside_buying_zones(self, make_snapshot, index, action):
        signal = evaluate(make_snapshot(valuation_index=index, dispersion_z=10.0),
                          renderer=plain_renderer)

        assert signal.action_asset_a is action
        assert not signal.has_warning

    def test_overheat_downgrades_asset_b(self, make_snapshot):
        """Buying is disallowed, so a cheap asset B only follows."""
        signal = evaluate(make_snapshot(
            valuation_index=0.30, dispersion_z=8.0, asset_b_band_position=BandPosition.LOWER
        ))
        assert signal.action_asset_b is SecondaryAction.FOLLOW_PRIMARY


class TestSecondaryAction:
    """Test the asset B sub-strategy."""

    def test_lower_band_needs_buying_allowed(self):
        assert secondary_action(BandPosition.LOWER, True) is SecondaryAction.BUY_HEAVY
        assert secondary_action(BandPosition.LOWER, False) is SecondaryAction.FOLLOW_PRIMARY

    def test_upper_band_always_sells(self):
        assert secondary_action(BandPosition.UPPER, True) is SecondaryAction.SELL_OR_SWAP
        assert secondary_action(BandPosition.UPPER, False) is SecondaryAction.SELL_OR_SWAP

    def test_middle_band_follows(self):
        assert secondary_action(BandPosition.MIDDLE, True) is SecondaryAction.FOLLOW_PRIMARY

    def test_hold_zone_with_cheap_asset_b(self, make_snapshot):
        signal = evaluate(make_snapshot(
            valuation_index=2.0, asset_b_band_position=BandPosition.LOWER
        ))
        assert signal.action_asset_b is SecondaryAction.FOLLOW_PRIMARY


class TestEvaluate:
    """Test evaluation as a whole."""

    def test_idempotent(self, make_snapshot):
        """Evaluating the same snapshot twice gives equal signals."""
        snapshot = make_snapshot(valuation_index=0.30, asset_b_band_position=BandPosition.UPPER)
        assert evaluate(snapshot) == evaluate(snapshot)

    def test_custom_renderer(self, make_snapshot):
        signal = evaluate(make_snapshot(), renderer=plain_renderer)
        assert signal.report_body == "report"

    def test_default_renderer_produces_report(self, make_snapshot):
        signal = evaluate(make_snapshot())
        assert "DCA BUY" in signal.report_body

    def test_to_dict_uses_wire_identifiers(self, make_snapshot):
        signal = evaluate(make_snapshot(asset_b_band_position=BandPosition.UPPER),
                          renderer=plain_renderer)
        data = signal.to_dict()

        assert data["action_asset_a"] == "DCA_BUY"
        assert data["action_asset_b"] == "SELL_OR_SWAP_BTC"
        assert data["amount_factor"] == 1.0

    def test_zone_classification_variant(self, make_snapshot):
        classification = classify(make_snapshot(valuation_index=0.70, dispersion_z=7.0))
        assert classification == ZoneBased(zone=ValuationZone.DCA_BUY, overheated=True)
